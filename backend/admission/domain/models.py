"""
Plain domain records passed between the repositories, the ledger and the
services. The ORM models in admission.models map onto these.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from admission.domain.status import RequestStatus


class EventStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


@dataclass(frozen=True)
class EventRecord:
    id: UUID
    host_id: UUID
    capacity_total: int
    is_public: bool = True
    status: EventStatus = EventStatus.PUBLISHED
    version: int = 1

    @property
    def accepts_requests(self) -> bool:
        return self.status == EventStatus.PUBLISHED


@dataclass
class JoinRequest:
    id: UUID
    event_id: UUID
    requester_id: UUID
    party_size: int
    status: RequestStatus
    created_at: datetime
    updated_at: datetime
    note: Optional[str] = None
    hold_expires_at: Optional[datetime] = None
    waitlist_pos: Optional[float] = None


@dataclass(frozen=True)
class Availability:
    total: int
    confirmed: int
    held: int
    available: int


@dataclass
class EventSnapshot:
    """An event and its full request set, read together at one version."""

    event: EventRecord
    requests: list[JoinRequest] = field(default_factory=list)

    @property
    def version(self) -> int:
        return self.event.version

    def find(self, request_id: UUID) -> Optional[JoinRequest]:
        for request in self.requests:
            if request.id == request_id:
                return request
        return None
