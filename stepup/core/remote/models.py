"""Request and response models for the remote decision service."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any
from urllib.parse import urlsplit

from stepup.core.errors import RemoteError

logger = logging.getLogger("stepup.protocol")


class UserActionState(StrEnum):
    """Decision states returned by the remote service."""

    ALLOW = "ALLOW"
    BLOCK = "BLOCK"
    CHALLENGE_REQUIRED = "CHALLENGE_REQUIRED"
    CHALLENGE_SUCCEEDED = "CHALLENGE_SUCCEEDED"
    CHALLENGE_FAILED = "CHALLENGE_FAILED"
    REVIEW_REQUIRED = "REVIEW_REQUIRED"
    REVIEW_SUCCEEDED = "REVIEW_SUCCEEDED"
    REVIEW_FAILED = "REVIEW_FAILED"

    @classmethod
    def parse(cls, value: Any) -> UserActionState:
        """Parse a state value, treating anything unrecognized as BLOCK.

        Only the exact state names match; ``"allow"`` is not ALLOW.
        """
        if isinstance(value, str) and value in cls.__members__:
            return cls(value)
        if value is not None:
            logger.warning(f"Unrecognized action state {value!r}, treating as BLOCK")
        return cls.BLOCK


@dataclass
class TrackAttributes:
    """Context sent along with a tracked action."""

    redirect_url: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    username: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the service's JSON shape, omitting empty values."""
        data = {
            "redirectUrl": self.redirect_url,
            "ipAddress": self.ip_address,
            "userAgent": self.user_agent,
            "username": self.username,
        }
        return {k: v for k, v in data.items() if v is not None}


@dataclass
class TrackRequest:
    """Request to evaluate the risk of an action for a user."""

    action: str
    user_id: str
    attributes: TrackAttributes = field(default_factory=TrackAttributes)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the service's JSON shape."""
        return {
            "action": self.action,
            "userId": self.user_id,
            "attributes": self.attributes.to_dict(),
        }


@dataclass
class TrackResponse:
    """Risk decision for a tracked action."""

    state: UserActionState
    url: str | None = None
    is_enrolled: bool = False
    idempotency_key: str | None = None

    # Raw response for debugging
    raw_response: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def has_challenge_url(self) -> bool:
        """Whether ``url`` is an absolute http(s) URL the browser can be sent to."""
        if not self.url:
            return False
        parts = urlsplit(self.url)
        return parts.scheme in ("http", "https") and bool(parts.netloc)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TrackResponse:
        """Build from the service's JSON response.

        Raises:
            RemoteError: If ``url`` is present but not a string, or
                ``isEnrolled`` is present but not a JSON boolean.
        """
        url = data.get("url")
        if url is not None and not isinstance(url, str):
            raise RemoteError(f"Malformed track response: url is {type(url).__name__}, expected string")

        is_enrolled = data.get("isEnrolled", False)
        if not isinstance(is_enrolled, bool):
            raise RemoteError(
                f"Malformed track response: isEnrolled is {type(is_enrolled).__name__}, expected boolean"
            )

        return cls(
            state=UserActionState.parse(data.get("state")),
            url=url or None,
            is_enrolled=is_enrolled,
            idempotency_key=data.get("idempotencyKey"),
            raw_response=data,
        )


@dataclass
class ValidateChallengeRequest:
    """Request exchanging a one-time challenge token for its outcome."""

    token: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to the service's JSON shape."""
        return {"token": self.token}


@dataclass
class ValidateChallengeResponse:
    """Outcome of an out-of-band challenge."""

    state: UserActionState
    user_id: str | None = None
    is_valid: bool | None = None
    action: str | None = None

    # Raw response for debugging
    raw_response: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ValidateChallengeResponse:
        """Build from the service's JSON response."""
        user_id = data.get("userId")
        return cls(
            state=UserActionState.parse(data.get("state")),
            user_id=str(user_id) if user_id is not None else None,
            is_valid=data["isValid"] if isinstance(data.get("isValid"), bool) else None,
            action=data.get("action"),
            raw_response=data,
        )
