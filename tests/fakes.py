"""Test doubles for the remote decision service and the hosting platform."""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import httpx

from stepup.core.config import FlowConfig
from stepup.core.errors import RemoteError
from stepup.core.host import LoginAttempt
from stepup.core.outcome import FailureKind
from stepup.core.redirect import CallbackContext
from stepup.core.remote.client import RemoteDecisionClient
from stepup.core.remote.models import (
    TrackRequest,
    TrackResponse,
    UserActionState,
    ValidateChallengeRequest,
    ValidateChallengeResponse,
)
from stepup.core.users import UserRecord, hash_password

BASE_URL = "https://api.example.com/v1"
SECRET_KEY = "test-tenant-secret"
CHALLENGE_URL = "https://challenge.example.com/c/abc123"
PASSWORD = "correct-horse"

# One hash for every test user; PBKDF2 at full strength is slow
_PASSWORD_HASH, _PASSWORD_SALT = hash_password(PASSWORD, bytes(32))

ALICE = UserRecord(id="user-1", username="alice", password_hash=_PASSWORD_HASH, password_salt=_PASSWORD_SALT)
BOB = UserRecord(id="user-2", username="bob", password_hash=_PASSWORD_HASH, password_salt=_PASSWORD_SALT)


@dataclass
class FakeDecisionService:
    """Stand-in for the remote decision service behind an httpx.MockTransport."""

    track_response: dict[str, Any] = field(
        default_factory=lambda: {"state": "ALLOW", "url": CHALLENGE_URL, "isEnrolled": True}
    )
    validate_response: dict[str, Any] = field(
        default_factory=lambda: {"state": "CHALLENGE_SUCCEEDED", "userId": "user-1", "isValid": True}
    )
    status_code: int = 200
    error: Exception | None = None
    requests: list[httpx.Request] = field(default_factory=list)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if request.url.path.endswith("/track"):
            return httpx.Response(self.status_code, json=self.track_response)
        if request.url.path.endswith("/validate-challenge"):
            return httpx.Response(self.status_code, json=self.validate_response)
        return httpx.Response(404, json={"error": "not_found"})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def client_factory(self) -> Callable[[FlowConfig], RemoteDecisionClient]:
        def factory(config: FlowConfig) -> RemoteDecisionClient:
            return RemoteDecisionClient.from_config(config, transport=self.transport())

        return factory

    def json_bodies(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests]


class FakeClient:
    """In-process replacement for RemoteDecisionClient used by state machine tests."""

    def __init__(
        self,
        track: TrackResponse | RemoteError | None = None,
        validate: ValidateChallengeResponse | RemoteError | None = None,
    ) -> None:
        self._track = track or TrackResponse(state=UserActionState.ALLOW, url=CHALLENGE_URL, is_enrolled=True)
        self._validate = validate or ValidateChallengeResponse(
            state=UserActionState.CHALLENGE_SUCCEEDED, user_id="user-1"
        )
        self.track_requests: list[TrackRequest] = []
        self.validate_requests: list[ValidateChallengeRequest] = []

    @property
    def call_count(self) -> int:
        return len(self.track_requests) + len(self.validate_requests)

    def track(self, request: TrackRequest) -> TrackResponse:
        self.track_requests.append(request)
        if isinstance(self._track, RemoteError):
            raise self._track
        return self._track

    def validate_challenge(self, request: ValidateChallengeRequest) -> ValidateChallengeResponse:
        self.validate_requests.append(request)
        if isinstance(self._validate, RemoteError):
            raise self._validate
        return self._validate

    def close(self) -> None:
        pass

    def __enter__(self) -> FakeClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class FakeHost:
    """AuthenticationHost that records every call made to it."""

    def __init__(
        self,
        attempt: LoginAttempt | None = None,
        users: list[UserRecord] | None = None,
        password: str = PASSWORD,
    ) -> None:
        self.attempt = attempt or LoginAttempt(remote_address="203.0.113.7")
        self.users = {u.id: u for u in (users if users is not None else [ALICE, BOB])}
        self.password = password
        self.bound: UserRecord | None = None
        self.calls: list[tuple[str, Any]] = []
        self.session_codes = 0

    def login_attempt(self) -> LoginAttempt:
        return self.attempt

    def callback_context(self) -> CallbackContext:
        self.session_codes += 1
        return CallbackContext(
            base_uri="https://idp.example.com/",
            realm="test",
            client_id="web",
            execution_id="exec-1",
            tab_id="tab-1",
            session_code=f"code-{self.session_codes}",
            action_url="https://idp.example.com/realms/test/login-actions/authenticate",
        )

    def lookup_user_by_id(self, user_id: str) -> UserRecord | None:
        return self.users.get(user_id)

    def lookup_user_by_username(self, username: str) -> UserRecord | None:
        for user in self.users.values():
            if user.username == username:
                return user
        return None

    def verify_password(self, user: UserRecord, password: str) -> bool:
        return password == self.password

    def bind_user(self, user: UserRecord) -> None:
        self.bound = user
        self.calls.append(("bind_user", user.id))

    def render_form(self, error: str | None = None, failure: FailureKind | None = None) -> None:
        self.calls.append(("render_form", (error, failure)))

    def redirect(self, url: str) -> None:
        self.calls.append(("redirect", url))

    def succeed(self) -> None:
        self.calls.append(("succeed", None))

    def fail(self, kind: FailureKind) -> None:
        self.calls.append(("fail", kind))
