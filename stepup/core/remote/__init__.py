"""Remote risk-and-challenge service client."""

from stepup.core.remote.client import RemoteDecisionClient
from stepup.core.remote.models import (
    TrackAttributes,
    TrackRequest,
    TrackResponse,
    UserActionState,
    ValidateChallengeRequest,
    ValidateChallengeResponse,
)

__all__ = [
    "RemoteDecisionClient",
    "TrackAttributes",
    "TrackRequest",
    "TrackResponse",
    "UserActionState",
    "ValidateChallengeRequest",
    "ValidateChallengeResponse",
]
