"""Client for the remote risk-and-challenge service.

Wraps the two calls the authentication flow needs:

- ``track``: evaluate the risk of an action and get a decision plus a
  challenge URL.
- ``validate_challenge``: exchange a one-time challenge token for the
  outcome of an out-of-band challenge.

Every failure (transport error, timeout, non-2xx status, unparsable body)
surfaces as a RemoteError. Nothing is retried.
"""

from __future__ import annotations

from types import TracebackType
from typing import TYPE_CHECKING, Any

import httpx

from stepup.core.errors import RemoteError, RemoteTimeoutError
from stepup.core.logging import LoggingClient, ProtocolLogger, get_protocol_logger
from stepup.core.remote.models import (
    TrackRequest,
    TrackResponse,
    ValidateChallengeRequest,
    ValidateChallengeResponse,
)

if TYPE_CHECKING:
    from stepup.core.config import FlowConfig

DEFAULT_TIMEOUT = 10.0

TRACK_PATH = "/track"
VALIDATE_CHALLENGE_PATH = "/validate-challenge"


class RemoteDecisionClient:
    """Client for the remote decision service.

    Authenticates with HTTP Basic auth, using the tenant secret key as the
    username and an empty password.
    """

    def __init__(
        self,
        secret_key: str,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
        protocol_logger: ProtocolLogger | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            secret_key: Tenant secret key.
            base_url: API base URL, e.g. ``https://api.example.com/v1``.
            timeout: Timeout in seconds applied to each call.
            transport: Optional httpx transport (used by tests).
            protocol_logger: Optional protocol logger for HTTP traffic capture.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._secret_key = secret_key
        self._transport = transport
        self._protocol_logger = protocol_logger or get_protocol_logger()
        self._http_client: LoggingClient | None = None

    @classmethod
    def from_config(
        cls,
        config: FlowConfig,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> RemoteDecisionClient:
        """Create a client for a resolved FlowConfig."""
        return cls(
            secret_key=config.secret_key,
            base_url=config.base_url,
            timeout=timeout,
            transport=transport,
        )

    @property
    def http_client(self) -> LoggingClient:
        """Get or create HTTP client with logging."""
        if self._http_client is None:
            self._http_client = LoggingClient(
                protocol_logger=self._protocol_logger,
                auth=httpx.BasicAuth(self._secret_key, ""),
                timeout=self.timeout,
                transport=self._transport,
                headers={"Accept": "application/json"},
            )
        return self._http_client

    def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client is not None:
            self._http_client.close()
            self._http_client = None

    def __enter__(self) -> RemoteDecisionClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def track(self, request: TrackRequest) -> TrackResponse:
        """Evaluate the risk of an action.

        Args:
            request: Action, user and request attributes.

        Returns:
            TrackResponse with the decision state and challenge URL.

        Raises:
            RemoteError: If the call fails for any reason.
        """
        data = self._post(TRACK_PATH, request.to_dict())
        return TrackResponse.from_dict(data)

    def validate_challenge(self, request: ValidateChallengeRequest) -> ValidateChallengeResponse:
        """Validate a challenge token.

        Args:
            request: The one-time token returned to the callback URL.

        Returns:
            ValidateChallengeResponse with the decision state and user id.

        Raises:
            RemoteError: If the call fails for any reason.
        """
        data = self._post(VALIDATE_CHALLENGE_PATH, request.to_dict())
        return ValidateChallengeResponse.from_dict(data)

    def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url}{path}"

        try:
            response = self.http_client.post(url, json=payload)
        except httpx.TimeoutException as e:
            raise RemoteTimeoutError(f"Request to {path} timed out: {e}") from e
        except httpx.HTTPError as e:
            raise RemoteError(f"HTTP error calling {path}: {e}") from e

        if not response.is_success:
            raise RemoteError(
                f"Request to {path} failed with status {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise RemoteError(
                f"Response from {path} is not valid JSON",
                status_code=response.status_code,
            ) from e

        if not isinstance(data, dict):
            raise RemoteError(
                f"Response from {path} is not a JSON object",
                status_code=response.status_code,
            )

        return data
