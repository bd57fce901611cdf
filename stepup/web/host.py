"""Flask implementation of the authentication host interface."""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING, cast

from flask import current_app, redirect, render_template, request, session, url_for

from stepup.core.host import LoginAttempt
from stepup.core.outcome import INVALID_CREDENTIALS_MESSAGE, FailureKind
from stepup.core.redirect import CallbackContext

if TYPE_CHECKING:
    from werkzeug.wrappers import Response as WerkzeugResponse

    from stepup.core.host import User
    from stepup.core.users import UserDirectory, UserRecord

# Session key constants
SESSION_USER_KEY = "stepup_user_id"
SESSION_CODE_KEY = "stepup_session_code"
SESSION_TAB_KEY = "stepup_tab_id"
CSRF_TOKEN_KEY = "csrf_token"

# HTTP status for each terminal failure
FAILURE_STATUS = {
    FailureKind.INVALID_CREDENTIALS: 401,
    FailureKind.INVALID_USER: 401,
    FailureKind.ACCESS_DENIED: 401,
    FailureKind.INTERNAL_ERROR: 500,
}

FAILURE_MESSAGES = {
    FailureKind.INVALID_CREDENTIALS: INVALID_CREDENTIALS_MESSAGE,
    FailureKind.INVALID_USER: "Your sign-in could not be completed.",
    FailureKind.ACCESS_DENIED: "Access denied.",
    FailureKind.INTERNAL_ERROR: "An internal error occurred. Please try again later.",
}


def get_users() -> UserDirectory:
    """Get the user directory from the app context."""
    return cast("UserDirectory", current_app.config["STEPUP_USERS"])


def generate_csrf_token() -> str:
    """Generate a CSRF token and store it in the session."""
    if CSRF_TOKEN_KEY not in session:
        session[CSRF_TOKEN_KEY] = secrets.token_hex(32)
    return str(session[CSRF_TOKEN_KEY])


def validate_csrf_token() -> bool:
    """Validate the CSRF token from the form."""
    form_token = request.form.get("csrf_token")
    session_token = session.get(CSRF_TOKEN_KEY)
    if not form_token or not session_token:
        return False
    return secrets.compare_digest(form_token, session_token)


def get_tab_id() -> str:
    """Get the browser tab id of the authentication session, creating one if needed."""
    if SESSION_TAB_KEY not in session:
        session[SESSION_TAB_KEY] = secrets.token_urlsafe(8)
    return str(session[SESSION_TAB_KEY])


class FlaskHost:
    """AuthenticationHost bound to the current Flask request.

    The outcome of the interaction is collected in ``response`` for the
    route to return.
    """

    def __init__(self, realm: str, authenticator_path: str) -> None:
        self.realm = realm
        self.authenticator_path = authenticator_path
        self.user: UserRecord | None = None
        self.response: str | WerkzeugResponse | tuple[str, int] | None = None

    @property
    def execution_id(self) -> str:
        return str(current_app.config["STEPUP_EXECUTION_ID"])

    def login_attempt(self) -> LoginAttempt:
        return LoginAttempt.from_params(
            form=request.form,
            query=request.args,
            remote_address=request.remote_addr or "",
            user_agent=request.headers.get("User-Agent"),
        )

    def callback_context(self) -> CallbackContext:
        session_code = secrets.token_urlsafe(32)
        session[SESSION_CODE_KEY] = session_code
        tab_id = get_tab_id()

        action_url = url_for(
            "flow.login",
            realm=self.realm,
            authenticator=self.authenticator_path,
            session_code=session_code,
            execution=self.execution_id,
            tab_id=tab_id,
            _external=True,
        )

        return CallbackContext(
            base_uri=request.host_url,
            realm=self.realm,
            client_id=str(current_app.config["STEPUP_CLIENT_ID"]),
            execution_id=self.execution_id,
            tab_id=tab_id,
            session_code=session_code,
            action_url=action_url,
            authenticator_path=self.authenticator_path,
        )

    def lookup_user_by_id(self, user_id: str) -> UserRecord | None:
        return get_users().get_by_id(user_id)

    def lookup_user_by_username(self, username: str) -> UserRecord | None:
        return get_users().get_by_username(username)

    def verify_password(self, user: User, password: str) -> bool:
        record = get_users().get_by_id(user.id)
        if record is None:
            return False
        return get_users().verify_password(record, password)

    def bind_user(self, user: User) -> None:
        self.user = get_users().get_by_id(user.id)

    def render_form(self, error: str | None = None, failure: FailureKind | None = None) -> None:
        html = render_template(
            "login.html",
            error=error,
            csrf_token=generate_csrf_token(),
            realm=self.realm,
            authenticator=self.authenticator_path,
        )
        self.response = (html, 401) if failure is not None else html

    def redirect(self, url: str) -> None:
        self.response = redirect(url, code=302)

    def succeed(self) -> None:
        if self.user is not None:
            session[SESSION_USER_KEY] = self.user.id
        session.pop(SESSION_CODE_KEY, None)
        session.pop(SESSION_TAB_KEY, None)
        self.response = redirect(url_for("main.index"))

    def fail(self, kind: FailureKind) -> None:
        session.pop(SESSION_CODE_KEY, None)
        self.response = (
            render_template("error.html", message=FAILURE_MESSAGES[kind]),
            FAILURE_STATUS[kind],
        )
