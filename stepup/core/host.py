"""Interface between the authentication flow and its hosting platform.

The state machine never talks to a concrete identity provider. Everything it
needs from the host (request inputs, user lookups, password checks, and the
imperative calls that end an interaction) goes through AuthenticationHost.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from stepup.core.outcome import FailureKind
    from stepup.core.redirect import CallbackContext


@runtime_checkable
class User(Protocol):
    """A user resolved from the host's identity store."""

    @property
    def id(self) -> str: ...

    @property
    def username(self) -> str: ...


@dataclass(frozen=True)
class LoginAttempt:
    """Inputs of one HTTP interaction of a login attempt."""

    remote_address: str
    username: str | None = None
    password: str | None = None
    token: str | None = None
    user_agent: str | None = None

    @property
    def has_token(self) -> bool:
        """Whether the token path is active for this interaction."""
        return bool(self.token)

    def __repr__(self) -> str:
        return (
            f"LoginAttempt(remote_address={self.remote_address!r}, username={self.username!r}, "
            f"password={'***' if self.password else None}, token={'***' if self.token else None}, "
            f"user_agent={self.user_agent!r})"
        )

    @classmethod
    def from_params(
        cls,
        form: Mapping[str, str],
        query: Mapping[str, str],
        remote_address: str,
        user_agent: str | None = None,
    ) -> LoginAttempt:
        """Build an attempt from the form and query parameters.

        A ``token`` form field takes precedence over a ``token`` query
        parameter; the query parameter is only used when the form has none.
        """
        token = form.get("token")
        if token is None:
            token = query.get("token")

        return cls(
            remote_address=remote_address,
            username=form.get("username"),
            password=form.get("password"),
            token=token,
            user_agent=user_agent,
        )


class AuthenticationHost(Protocol):
    """Capabilities the hosting platform provides to one interaction."""

    def login_attempt(self) -> LoginAttempt:
        """Inputs of the current HTTP interaction."""
        ...

    def callback_context(self) -> CallbackContext:
        """Identifiers for the callback URL, issuing a fresh session code."""
        ...

    def lookup_user_by_id(self, user_id: str) -> User | None: ...

    def lookup_user_by_username(self, username: str) -> User | None: ...

    def verify_password(self, user: User, password: str) -> bool: ...

    def bind_user(self, user: User) -> None:
        """Attach the user to the authentication session."""
        ...

    def render_form(self, error: str | None = None, failure: FailureKind | None = None) -> None:
        """Show the login form, optionally with an error after a recoverable failure."""
        ...

    def redirect(self, url: str) -> None:
        """Send the browser to an external challenge page."""
        ...

    def succeed(self) -> None:
        """Mark this authenticator step as complete."""
        ...

    def fail(self, kind: FailureKind) -> None:
        """Fail the authentication outright."""
        ...
