"""Login and challenge callback routes for the step-up authenticator."""

from __future__ import annotations

import logging
import secrets
from typing import TYPE_CHECKING, cast

from flask import Blueprint, abort, current_app, render_template, request, session

from stepup.web.host import (
    SESSION_CODE_KEY,
    FlaskHost,
    generate_csrf_token,
    validate_csrf_token,
)

if TYPE_CHECKING:
    from werkzeug.wrappers import Response as WerkzeugResponse

    from stepup.core.authenticator import Authenticator

logger = logging.getLogger("stepup.flow")

flow_bp = Blueprint(
    "flow",
    __name__,
    url_prefix="/realms/<realm>/<authenticator>",
)


def get_authenticator() -> Authenticator:
    """Get the shared authenticator from the app context."""
    return cast("Authenticator", current_app.config["STEPUP_AUTHENTICATOR"])


def _host_for(realm: str, authenticator: str) -> FlaskHost:
    """Create a host for the request, rejecting unknown realms or authenticators."""
    if realm != current_app.config["STEPUP_REALM"]:
        abort(404)
    if authenticator != current_app.config["STEPUP_AUTHENTICATOR_PATH"]:
        abort(404)
    return FlaskHost(realm=realm, authenticator_path=authenticator)


def _finish(host: FlaskHost) -> str | WerkzeugResponse | tuple[str, int]:
    if host.response is None:
        abort(500)
    return host.response


@flow_bp.route("/login", methods=["GET", "POST"])
def login(realm: str, authenticator: str) -> str | WerkzeugResponse | tuple[str, int]:
    """Show the login form, or process submitted credentials or a token."""
    host = _host_for(realm, authenticator)

    if request.method == "GET":
        get_authenticator().authenticate(host)
        return _finish(host)

    if not validate_csrf_token():
        html = render_template(
            "login.html",
            error="Invalid request. Please try again.",
            csrf_token=generate_csrf_token(),
            realm=realm,
            authenticator=authenticator,
        )
        return html, 400

    get_authenticator().action(host)
    return _finish(host)


@flow_bp.route("/callback", methods=["GET"])
def callback(realm: str, authenticator: str) -> str | WerkzeugResponse | tuple[str, int]:
    """Resume the flow after the remote challenge.

    The remote service redirects here with the callback URL built during
    risk evaluation plus a ``token`` query parameter. The session code is
    single-use and must match the one issued to this browser session.
    """
    host = _host_for(realm, authenticator)

    expected = session.pop(SESSION_CODE_KEY, None)
    received = request.args.get("kc_session_code", "")
    if not expected or not secrets.compare_digest(str(expected), received):
        logger.warning("Challenge callback with missing or stale session code")
        return render_template("error.html", message="Your sign-in session has expired."), 400

    get_authenticator().action(host)
    return _finish(host)
