"""Authentication state machine.

Sequences one HTTP interaction of a login attempt into a single Outcome:

    Init -> TokenValidation | CredentialCheck -> risk evaluation -> Outcome

- Init: nothing submitted yet, show the login form.
- TokenValidation: a challenge token came back from the remote service
  (form field first, then query parameter); validate it and resolve the user.
- CredentialCheck: verify username and password with the host, then ask the
  remote service to evaluate the risk of the login ("track").

The machine keeps no per-request state; everything it needs arrives through
the LoginAttempt and the AuthenticationHost.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from stepup.core.errors import RemoteError
from stepup.core.outcome import (
    INVALID_CREDENTIALS_MESSAGE,
    Failure,
    FailureKind,
    Outcome,
    ShowChallengeRedirect,
    ShowForm,
    Success,
)
from stepup.core.remote.models import (
    TrackAttributes,
    TrackRequest,
    TrackResponse,
    UserActionState,
    ValidateChallengeRequest,
)

if TYPE_CHECKING:
    from stepup.core.config import FlowConfig
    from stepup.core.host import AuthenticationHost, LoginAttempt, User
    from stepup.core.remote.client import RemoteDecisionClient

logger = logging.getLogger("stepup.flow")

# States accepted as proof that the out-of-band challenge was passed
VALIDATED_STATES = frozenset({UserActionState.CHALLENGE_SUCCEEDED, UserActionState.ALLOW})


class AuthenticationStateMachine:
    """Decides the outcome of one interaction of a login attempt."""

    def __init__(self, config: FlowConfig, client: RemoteDecisionClient) -> None:
        self.config = config
        self.client = client

    @staticmethod
    def start() -> Outcome:
        """First entry into the flow: render the login form.

        Nothing has been submitted yet, so no remote call is made.
        """
        return ShowForm()

    def evaluate(self, attempt: LoginAttempt, host: AuthenticationHost) -> Outcome:
        """Run the state machine for a submitted interaction.

        Args:
            attempt: Inputs of the current interaction.
            host: Host capabilities (user store, callback identifiers).

        Returns:
            Exactly one Outcome. Unexpected errors become INTERNAL_ERROR.
        """
        try:
            if attempt.has_token:
                return self._validate_token(attempt.token or "", host)
            return self._check_credentials(attempt, host)
        except Exception:
            logger.exception("Unexpected error during authentication")
            return Failure(FailureKind.INTERNAL_ERROR)

    def _validate_token(self, token: str, host: AuthenticationHost) -> Outcome:
        logger.info("Validating challenge token")
        try:
            response = self.client.validate_challenge(ValidateChallengeRequest(token=token))
        except RemoteError as e:
            logger.error(f"Challenge validation failed: {e}")
            return Failure(FailureKind.INTERNAL_ERROR)

        logger.info(f"Challenge validation state: {response.state}")
        if response.state not in VALIDATED_STATES:
            return Failure(FailureKind.ACCESS_DENIED)

        user = host.lookup_user_by_id(response.user_id) if response.user_id else None
        if user is None:
            logger.warning(f"No user found for validated challenge (user id {response.user_id!r})")
            return Failure(FailureKind.INVALID_USER)

        host.bind_user(user)
        return Success(user.id)

    def _check_credentials(self, attempt: LoginAttempt, host: AuthenticationHost) -> Outcome:
        if not attempt.username or not attempt.password:
            logger.warning("Username or password is missing")
            return Failure(FailureKind.INVALID_CREDENTIALS, INVALID_CREDENTIALS_MESSAGE)

        user = host.lookup_user_by_username(attempt.username)
        if user is None:
            logger.warning(f"User not found for username: {attempt.username}")
            return Failure(FailureKind.INVALID_USER, INVALID_CREDENTIALS_MESSAGE)

        if not host.verify_password(user, attempt.password):
            logger.warning(f"Invalid password for username: {attempt.username}")
            return Failure(FailureKind.INVALID_CREDENTIALS, INVALID_CREDENTIALS_MESSAGE)

        host.bind_user(user)
        return self._evaluate_risk(user, attempt, host)

    def _evaluate_risk(self, user: User, attempt: LoginAttempt, host: AuthenticationHost) -> Outcome:
        request = TrackRequest(
            action=self.config.action_code,
            user_id=user.id,
            attributes=TrackAttributes(
                redirect_url=host.callback_context().build_url(),
                ip_address=attempt.remote_address,
                user_agent=attempt.user_agent,
                username=user.username,
            ),
        )

        try:
            response = self.client.track(request)
        except RemoteError as e:
            logger.error(f"Risk evaluation failed: {e}")
            return Failure(FailureKind.INTERNAL_ERROR)

        logger.info(
            f"Risk evaluation for {user.username}: state={response.state} "
            f"enrolled={response.is_enrolled}"
        )
        return self.decide(response, user.id)

    def decide(self, response: TrackResponse, user_id: str) -> Outcome:
        """Apply the decision policy to a track response.

        Users who are not enrolled yet are sent to the challenge page to
        enroll when ``enroll_by_default`` is set, unless the service blocks
        them. Every other non-BLOCK state redirects in that branch, ALLOW
        included. A redirect without an absolute challenge URL is a
        malformed response and ends in INTERNAL_ERROR.
        """
        if self.config.enroll_by_default and not response.is_enrolled:
            if response.state == UserActionState.BLOCK:
                return Failure(FailureKind.ACCESS_DENIED)
            return self._challenge(response)

        if response.state == UserActionState.CHALLENGE_REQUIRED:
            return self._challenge(response)
        if response.state == UserActionState.ALLOW:
            return Success(user_id)
        return Failure(FailureKind.ACCESS_DENIED)

    def _challenge(self, response: TrackResponse) -> Outcome:
        if not response.has_challenge_url or response.url is None:
            logger.error(f"Track response for state {response.state} has no usable challenge URL")
            return Failure(FailureKind.INTERNAL_ERROR)
        return ShowChallengeRedirect(response.url)
