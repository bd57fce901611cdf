"""Pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

import pytest
from fakes import ALICE, BASE_URL, BOB, SECRET_KEY, FakeDecisionService
from flask import Flask
from flask.testing import FlaskClient

from stepup.app import create_app
from stepup.core.authenticator import Authenticator
from stepup.core.config import (
    PROP_ACTION_CODE,
    PROP_API_HOST_BASE_URL,
    PROP_ENROL_BY_DEFAULT,
    PROP_SECRET_KEY,
    AppConfig,
    NodeSettings,
)
from stepup.core.users import UserDirectory


@pytest.fixture
def flow_properties() -> dict[str, Any]:
    """Provider properties for a configured node (enrollment not forced)."""
    return {
        PROP_SECRET_KEY: SECRET_KEY,
        PROP_API_HOST_BASE_URL: BASE_URL,
        PROP_ACTION_CODE: "sign-in",
        PROP_ENROL_BY_DEFAULT: "false",
    }


@pytest.fixture
def service() -> FakeDecisionService:
    """Fake remote decision service."""
    return FakeDecisionService()


@pytest.fixture
def users() -> UserDirectory:
    """User directory with alice and bob, both using the password 'correct-horse'."""
    return UserDirectory([ALICE, BOB])


@pytest.fixture
def app(
    flow_properties: dict[str, Any],
    service: FakeDecisionService,
    users: UserDirectory,
) -> Generator[Flask, None, None]:
    """Create application for testing against the fake decision service."""
    app_config = AppConfig(node=NodeSettings(realm="test", client_id="web", properties=flow_properties))
    authenticator = Authenticator.from_properties(flow_properties, client_factory=service.client_factory())
    app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test-secret-key",
            "STEPUP_AUTHENTICATOR": authenticator,
            "STEPUP_USERS": users,
        },
        app_config=app_config,
    )
    yield app


@pytest.fixture
def client(app: Flask) -> FlaskClient:
    """Create test client."""
    return app.test_client()


_STEPUP_ENV = (
    "HOST",
    "PORT",
    "DEBUG",
    "REALM",
    "CLIENT_ID",
    "SECRET_KEY",
    "TENANT_ID",
    "BASE_URL",
    "ACTION_CODE",
    "ENROL_BY_DEFAULT",
    "LOG_LEVEL",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep STEPUP_* variables from the outer environment out of config loading."""
    for key in _STEPUP_ENV:
        monkeypatch.delenv(f"STEPUP_{key}", raising=False)
