"""
Read-only views over events and join requests.

Nothing here writes: lapsed holds are reported as expired through the
effective status, never finalized as a side effect of reading.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID

from admission.core.clock import Clock, SystemClock
from admission.core.config import Settings, get_settings
from admission.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from admission.domain import ledger
from admission.domain.expiry import with_effective_status
from admission.domain.models import Availability, JoinRequest
from admission.domain.status import RequestStatus
from admission.repositories.base import JoinRequestRepository


@dataclass(frozen=True)
class RequestPage:
    items: list[JoinRequest]
    total_count: int
    limit: int
    offset: int

    @property
    def next_offset(self) -> Optional[int]:
        end = self.offset + self.limit
        return end if end < self.total_count else None


class AvailabilityQuery:

    def __init__(
        self,
        repository: JoinRequestRepository,
        clock: Optional[Clock] = None,
        settings: Optional[Settings] = None,
    ):
        self.repository = repository
        self.clock = clock or SystemClock()
        self.settings = settings or get_settings()

    async def availability(self, event_id: UUID, now: Optional[datetime] = None) -> Availability:
        snapshot = await self.repository.load_snapshot(event_id)
        if snapshot is None:
            raise NotFoundError("Event", event_id)
        return ledger.availability(snapshot.event, snapshot.requests, now or self.clock.now())

    async def list_requests(
        self,
        event_id: UUID,
        actor_id: UUID,
        status: Optional[RequestStatus] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> RequestPage:
        """Host view of an event's requests, newest first, filtered by effective status."""
        limit = self.settings.DEFAULT_PAGE_SIZE if limit is None else limit
        if not 1 <= limit <= self.settings.MAX_PAGE_SIZE:
            raise ValidationError("limit", limit, f"limit must be between 1 and {self.settings.MAX_PAGE_SIZE}")
        if offset < 0:
            raise ValidationError("offset", offset, "offset must not be negative")

        event = await self.repository.get_event(event_id)
        if event is None:
            raise NotFoundError("Event", event_id)
        if event.host_id != actor_id:
            raise PermissionDeniedError("Only the event host can list join requests")

        now = self.clock.now()
        items, total = await self.repository.list_requests(event_id, now, status=status, limit=limit, offset=offset)
        return RequestPage(
            items=[with_effective_status(r, now) for r in items],
            total_count=total,
            limit=limit,
            offset=offset,
        )

    async def get_request(self, request_id: UUID, actor_id: UUID) -> JoinRequest:
        request = await self.repository.get_request(request_id)
        if request is None:
            raise NotFoundError("Join request", request_id)
        if request.requester_id != actor_id:
            event = await self.repository.get_event(request.event_id)
            if event is None or event.host_id != actor_id:
                raise PermissionDeniedError("Not allowed to view this request")
        return with_effective_status(request, self.clock.now())

    async def list_my_requests(self, requester_id: UUID) -> list[JoinRequest]:
        now = self.clock.now()
        return [with_effective_status(r, now) for r in await self.repository.list_for_requester(requester_id)]
