"""Flask application factory."""

from __future__ import annotations

import os
import secrets
import uuid
from typing import TYPE_CHECKING

from flask import Flask

from stepup.core.authenticator import Authenticator
from stepup.core.config import load_config
from stepup.core.logging import configure_logging
from stepup.core.users import UserDirectory

if TYPE_CHECKING:
    from stepup.core.config import AppConfig


def create_app(config: dict | None = None, app_config: AppConfig | None = None) -> Flask:
    """Create and configure the Flask application.

    The authenticator is built here, so a node with missing provider
    properties fails at startup rather than on the first login.

    Args:
        config: Optional Flask configuration overrides. ``STEPUP_AUTHENTICATOR``
            and ``STEPUP_USERS`` may be supplied directly (used by tests).
        app_config: Application configuration. Loads from file/env if not provided.

    Returns:
        Configured Flask application instance.

    Raises:
        ConfigError: If the authenticator node is not configured.
    """
    app = Flask(__name__)
    config = dict(config or {})

    if app_config is None:
        app_config = load_config()

    secret_key = (
        os.environ.get("STEPUP_FLASK_SECRET_KEY")
        or app_config.server.secret_key
        or secrets.token_hex(32)
    )

    app.config.from_mapping(
        SECRET_KEY=secret_key,
        STEPUP_REALM=app_config.node.realm,
        STEPUP_CLIENT_ID=app_config.node.client_id,
        STEPUP_AUTHENTICATOR_PATH=app_config.node.authenticator_path,
        STEPUP_EXECUTION_ID=str(
            uuid.uuid5(uuid.NAMESPACE_URL, f"{app_config.node.realm}/{app_config.node.authenticator_path}")
        ),
    )
    app.config.from_mapping(config)

    if "STEPUP_AUTHENTICATOR" not in app.config:
        app.config["STEPUP_AUTHENTICATOR"] = Authenticator.from_properties(app_config.node.properties)

    if "STEPUP_USERS" not in app.config:
        app.config["STEPUP_USERS"] = UserDirectory.from_config(app_config.users)

    if not app.config.get("TESTING"):
        configure_logging(
            level=app_config.logging.level,
            trace_enabled=app_config.logging.trace_enabled,
            log_file=app_config.logging.log_file,
        )

    from stepup.web import routes

    routes.init_app(app)

    return app


def run_server(
    app_config: AppConfig | None = None,
    host: str | None = None,
    port: int | None = None,
) -> None:
    """Run the Flask development server.

    Args:
        app_config: Application configuration. Loads from file/env if not provided.
        host: Override host from config.
        port: Override port from config.
    """
    if app_config is None:
        app_config = load_config()

    server_host = host or app_config.server.host
    server_port = port or app_config.server.port

    app = create_app(app_config=app_config)
    app.debug = app_config.server.debug

    print("Starting stepup server...")
    print(f"  URL: http://{server_host}:{server_port}")
    print("")

    app.run(host=server_host, port=server_port)
