"""
In-process repository.

Keeps copies of every record so callers can never mutate stored state by
accident. The version compare-and-set in `save` runs without awaiting, so it
is atomic with respect to other coroutines on the same loop.
"""

import asyncio
from dataclasses import replace
from datetime import datetime
from typing import Optional, Sequence
from uuid import UUID

from admission.domain.expiry import effective_status, hold_lapsed
from admission.domain.models import EventRecord, EventSnapshot, JoinRequest
from admission.domain.status import RequestStatus
from admission.repositories.base import JoinRequestRepository


class InMemoryJoinRequestRepository(JoinRequestRepository):

    def __init__(self):
        self._events: dict[UUID, EventRecord] = {}
        self._requests: dict[UUID, JoinRequest] = {}
        self.save_calls = 0

    async def put_event(self, event: EventRecord, expected_version: Optional[int] = None) -> Optional[EventRecord]:
        existing = self._events.get(event.id)
        if expected_version is not None and (existing is None or existing.version != expected_version):
            return None
        version = existing.version + 1 if existing else event.version
        stored = replace(event, version=version)
        self._events[event.id] = stored
        return stored

    async def get_event(self, event_id: UUID) -> Optional[EventRecord]:
        return self._events.get(event_id)

    async def load_snapshot(self, event_id: UUID) -> Optional[EventSnapshot]:
        event = self._events.get(event_id)
        if event is None:
            return None
        requests = [replace(r) for r in self._requests.values() if r.event_id == event_id]
        # Yield like a real database round-trip would, so concurrent
        # operations can interleave between read and write.
        await asyncio.sleep(0)
        return EventSnapshot(event=event, requests=requests)

    async def save(self, event_id: UUID, expected_version: int, changes: Sequence[JoinRequest]) -> bool:
        self.save_calls += 1
        event = self._events.get(event_id)
        if event is None or event.version != expected_version:
            return False
        self._events[event_id] = replace(event, version=event.version + 1)
        for request in changes:
            self._requests[request.id] = replace(request)
        return True

    async def get_request(self, request_id: UUID) -> Optional[JoinRequest]:
        request = self._requests.get(request_id)
        return replace(request) if request else None

    async def list_requests(
        self,
        event_id: UUID,
        now: datetime,
        status: Optional[RequestStatus] = None,
        limit: int = 25,
        offset: int = 0,
    ) -> tuple[list[JoinRequest], int]:
        matches = [
            r
            for r in self._requests.values()
            if r.event_id == event_id and (status is None or effective_status(r, now) == status)
        ]
        matches.sort(key=lambda r: r.created_at, reverse=True)
        page = [replace(r) for r in matches[offset:offset + limit]]
        return page, len(matches)

    async def list_for_requester(self, requester_id: UUID) -> list[JoinRequest]:
        mine = [replace(r) for r in self._requests.values() if r.requester_id == requester_id]
        mine.sort(key=lambda r: r.created_at, reverse=True)
        return mine

    async def events_with_lapsed_holds(self, now: datetime) -> list[UUID]:
        return sorted({r.event_id for r in self._requests.values() if hold_lapsed(r, now)}, key=str)
