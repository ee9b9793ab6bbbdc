from admission.schemas.event import AvailabilityResponse, EventResponse, EventSync
from admission.schemas.join_request import (
    FinalizeResponse,
    HoldExtension,
    JoinRequestCreate,
    JoinRequestInvite,
    JoinRequestPage,
    JoinRequestResponse,
    PromotionResponse,
    WaitlistReorder,
)

__all__ = [
    "AvailabilityResponse", "EventResponse", "EventSync",
    "FinalizeResponse", "HoldExtension", "JoinRequestCreate", "JoinRequestInvite", "JoinRequestPage",
    "JoinRequestResponse", "PromotionResponse", "WaitlistReorder",
]
