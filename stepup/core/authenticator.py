"""Authenticator entry point used by the hosting platform.

One Authenticator instance is shared by every request for a node. It holds
only the resolved FlowConfig and a client factory; each interaction gets its
own remote client, closed as soon as the interaction is decided.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from stepup.core.config import FlowConfig
from stepup.core.flow import AuthenticationStateMachine
from stepup.core.outcome import Outcome, apply_outcome
from stepup.core.remote.client import RemoteDecisionClient

if TYPE_CHECKING:
    from stepup.core.host import AuthenticationHost, User

logger = logging.getLogger("stepup.flow")

ClientFactory = Callable[[FlowConfig], RemoteDecisionClient]


class Authenticator:
    """Step-up authenticator for one configured node."""

    def __init__(
        self,
        config: FlowConfig,
        client_factory: ClientFactory = RemoteDecisionClient.from_config,
    ) -> None:
        self._config = config
        self._client_factory = client_factory

    @classmethod
    def from_properties(
        cls,
        properties: Mapping[str, Any] | None,
        client_factory: ClientFactory = RemoteDecisionClient.from_config,
    ) -> Authenticator:
        """Create an authenticator, resolving its configuration up front.

        Raises:
            ConfigError: If required provider properties are missing.
        """
        return cls(FlowConfig.from_properties(properties), client_factory)

    @property
    def config(self) -> FlowConfig:
        return self._config

    def requires_user(self) -> bool:
        """The authenticator identifies the user itself."""
        return False

    def configured_for(self, user: User) -> bool:
        return True

    def authenticate(self, host: AuthenticationHost) -> Outcome:
        """Handle the first interaction: show the login form."""
        outcome = AuthenticationStateMachine.start()
        apply_outcome(outcome, host)
        return outcome

    def action(self, host: AuthenticationHost) -> Outcome:
        """Handle a submitted interaction (credentials or challenge token)."""
        attempt = host.login_attempt()
        logger.info(
            f"Processing {'token' if attempt.has_token else 'credential'} "
            f"submission from {attempt.remote_address}"
        )

        with self._client_factory(self._config) as client:
            outcome = AuthenticationStateMachine(self._config, client).evaluate(attempt, host)

        apply_outcome(outcome, host)
        return outcome
