"""Terminal outcomes of the authentication state machine."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stepup.core.host import AuthenticationHost

logger = logging.getLogger("stepup.flow")

INVALID_CREDENTIALS_MESSAGE = "Invalid username or password"


class FailureKind(StrEnum):
    """Why an authentication attempt failed."""

    INVALID_CREDENTIALS = "invalid_credentials"
    INVALID_USER = "invalid_user"
    ACCESS_DENIED = "access_denied"
    INTERNAL_ERROR = "internal_error"


@dataclass(frozen=True)
class ShowForm:
    """Render the login form."""

    error: str | None = None


@dataclass(frozen=True)
class ShowChallengeRedirect:
    """Send the browser to the remote challenge page."""

    url: str


@dataclass(frozen=True)
class Success:
    """The user is authenticated."""

    user_id: str


@dataclass(frozen=True)
class Failure:
    """The attempt failed.

    ``form_error`` is set for recoverable failures: the form is shown again
    with that message instead of ending the flow.
    """

    kind: FailureKind
    form_error: str | None = None

    @property
    def recoverable(self) -> bool:
        return self.form_error is not None


Outcome = ShowForm | ShowChallengeRedirect | Success | Failure


def apply_outcome(outcome: Outcome, host: AuthenticationHost) -> None:
    """Translate an outcome into the host's imperative calls."""
    if isinstance(outcome, ShowForm):
        host.render_form(error=outcome.error)
    elif isinstance(outcome, ShowChallengeRedirect):
        host.redirect(outcome.url)
    elif isinstance(outcome, Success):
        host.succeed()
    elif isinstance(outcome, Failure):
        if outcome.recoverable:
            host.render_form(error=outcome.form_error, failure=outcome.kind)
        else:
            logger.info(f"Authentication failed: {outcome.kind}")
            host.fail(outcome.kind)
    else:
        raise TypeError(f"Unknown outcome: {outcome!r}")
