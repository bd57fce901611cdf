"""Exceptions raised by the step-up authentication flow."""

from __future__ import annotations


class StepUpError(Exception):
    """Base exception for step-up flow errors."""


class ConfigError(StepUpError):
    """Raised when the authenticator configuration is missing or invalid."""


class RemoteError(StepUpError):
    """Raised when a call to the remote decision service fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RemoteTimeoutError(RemoteError):
    """Raised when the remote decision service does not answer in time."""
