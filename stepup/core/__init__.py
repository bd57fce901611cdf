"""Core step-up authentication flow."""

from stepup.core.authenticator import Authenticator
from stepup.core.config import FlowConfig
from stepup.core.errors import ConfigError, RemoteError, RemoteTimeoutError, StepUpError
from stepup.core.flow import AuthenticationStateMachine
from stepup.core.host import AuthenticationHost, LoginAttempt, User
from stepup.core.logging import (
    HTTPExchange,
    LoggingClient,
    LogLevel,
    ProtocolLogger,
    configure_logging,
    get_protocol_logger,
    redact_sensitive,
    set_protocol_logger,
)
from stepup.core.outcome import (
    Failure,
    FailureKind,
    Outcome,
    ShowChallengeRedirect,
    ShowForm,
    Success,
    apply_outcome,
)
from stepup.core.redirect import CallbackContext, build_callback_url

__all__ = [
    # Flow
    "AuthenticationStateMachine",
    "Authenticator",
    "FlowConfig",
    # Host interface
    "AuthenticationHost",
    "CallbackContext",
    "LoginAttempt",
    "User",
    "build_callback_url",
    # Outcomes
    "Failure",
    "FailureKind",
    "Outcome",
    "ShowChallengeRedirect",
    "ShowForm",
    "Success",
    "apply_outcome",
    # Errors
    "ConfigError",
    "RemoteError",
    "RemoteTimeoutError",
    "StepUpError",
    # Logging
    "HTTPExchange",
    "LoggingClient",
    "LogLevel",
    "ProtocolLogger",
    "configure_logging",
    "get_protocol_logger",
    "redact_sensitive",
    "set_protocol_logger",
]
