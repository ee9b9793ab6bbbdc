"""
Ports to the systems around the admission engine.

Both are called only after the status write has committed. A failure in a
collaborator is logged and never undoes the write.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID

from admission.core.logging import get_logger
from admission.domain.models import JoinRequest

logger = get_logger(__name__)


# Change types, one per status change the engine can make
JOIN_REQUEST_RECEIVED = "join_request_received"
REQUEST_APPROVED = "request_approved"
REQUEST_DECLINED = "request_declined"
REQUEST_WAITLISTED = "request_waitlisted"
REQUEST_CANCELLED = "request_cancelled"
HOLD_EXTENDED = "hold_extended"
HOLD_EXPIRED = "hold_expired"

_HOST_FACING = {JOIN_REQUEST_RECEIVED, REQUEST_CANCELLED}


@dataclass(frozen=True)
class RequestChange:
    """Description of a status change, addressed to the user who should hear about it."""

    type: str
    request_id: UUID
    event_id: UUID
    recipient_id: UUID
    requester_id: UUID
    party_size: int
    status: str
    hold_expires_at: Optional[datetime] = None

    @classmethod
    def of(cls, change_type: str, request: JoinRequest, host_id: UUID) -> "RequestChange":
        recipient = host_id if change_type in _HOST_FACING else request.requester_id
        return cls(
            type=change_type,
            request_id=request.id,
            event_id=request.event_id,
            recipient_id=recipient,
            requester_id=request.requester_id,
            party_size=request.party_size,
            status=request.status.value,
            hold_expires_at=request.hold_expires_at,
        )


class ChangeNotifier(ABC):
    @abstractmethod
    async def notify(self, change: RequestChange) -> None:
        pass


class ParticipantRegistry(ABC):
    @abstractmethod
    async def add_participant(self, request: JoinRequest) -> None:
        """Create the confirmed participant record for an approved request."""


class LoggingNotifier(ChangeNotifier):
    """Hands changes to the log pipeline; delivery lives elsewhere."""

    async def notify(self, change: RequestChange) -> None:
        logger.info(
            "notification_emitted",
            type=change.type,
            request_id=str(change.request_id),
            event_id=str(change.event_id),
            recipient_id=str(change.recipient_id),
            party_size=change.party_size,
        )


class LoggingParticipantRegistry(ParticipantRegistry):
    async def add_participant(self, request: JoinRequest) -> None:
        logger.info(
            "participant_requested",
            request_id=str(request.id),
            event_id=str(request.event_id),
            user_id=str(request.requester_id),
            party_size=request.party_size,
        )
