"""
Storage port for events and their join requests.

Implementations:
- SqlAlchemyJoinRequestRepository: PostgreSQL (or any SQLAlchemy async dialect)
- InMemoryJoinRequestRepository: single-process dict store for tests and local runs
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, Sequence
from uuid import UUID

from admission.domain.models import EventRecord, EventSnapshot, JoinRequest
from admission.domain.status import RequestStatus


class JoinRequestRepository(ABC):

    @abstractmethod
    async def put_event(self, event: EventRecord, expected_version: Optional[int] = None) -> Optional[EventRecord]:
        """
        Insert or refresh the mirrored event (capacity, visibility, status).

        An existing event keeps its version history: the stored version is
        bumped rather than replaced, so in-flight writes see a conflict.
        With `expected_version`, returns None instead of writing when the
        stored version has moved on.
        """

    @abstractmethod
    async def get_event(self, event_id: UUID) -> Optional[EventRecord]:
        pass

    @abstractmethod
    async def load_snapshot(self, event_id: UUID) -> Optional[EventSnapshot]:
        """Event plus its whole request set, or None if the event is unknown."""

    @abstractmethod
    async def save(self, event_id: UUID, expected_version: int, changes: Sequence[JoinRequest]) -> bool:
        """
        Write inserted/updated requests if the event is still at `expected_version`.

        Returns False (and writes nothing) when another writer got there
        first; the caller re-reads and decides again.
        """

    @abstractmethod
    async def get_request(self, request_id: UUID) -> Optional[JoinRequest]:
        pass

    @abstractmethod
    async def list_requests(
        self,
        event_id: UUID,
        now: datetime,
        status: Optional[RequestStatus] = None,
        limit: int = 25,
        offset: int = 0,
    ) -> tuple[list[JoinRequest], int]:
        """
        Newest-first page of an event's requests and the total match count.

        `status` filters on the effective status at `now`: a pending request
        whose hold has lapsed matches EXPIRED, not PENDING.
        """

    @abstractmethod
    async def list_for_requester(self, requester_id: UUID) -> list[JoinRequest]:
        pass

    @abstractmethod
    async def events_with_lapsed_holds(self, now: datetime) -> list[UUID]:
        pass
