"""
SQLAlchemy-backed repository.

CONCURRENCY STRATEGY: Optimistic Locking on the event row
==========================================================

The request set of an event has no single row to lock, so the event row
carries a `version` counter that stands for "the request set as last seen".

  1. Read the event (and its version), then its requests
  2. Decide in Python (ledger + state machine)
  3. UPDATE events SET version = version + 1
     WHERE id = :event_id AND version = :seen_version
  4. rowcount == 0 -> someone else wrote first, nothing is written, caller retries
  5. Otherwise write the request rows in the same transaction and commit

The event is read before its requests: a write landing between the two
reads moves the version past the one we saw, so step 3 fails rather than
committing a decision made on a mixed view.

The UPDATE in step 3 takes the row lock, so two writers that saw the same
version serialize there and the second one matches zero rows.
"""

from datetime import datetime
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from admission.core.logging import get_logger
from admission.domain.models import EventRecord, EventSnapshot, EventStatus, JoinRequest
from admission.domain.status import RequestStatus
from admission.models.event import Event
from admission.models.join_request import JoinRequestRow
from admission.repositories.base import JoinRequestRepository

logger = get_logger(__name__)


def _to_event(row: Event) -> EventRecord:
    return EventRecord(
        id=row.id,
        host_id=row.host_id,
        capacity_total=row.capacity_total,
        is_public=row.is_public,
        status=EventStatus(row.status),
        version=row.version,
    )


def _to_request(row: JoinRequestRow) -> JoinRequest:
    return JoinRequest(
        id=row.id,
        event_id=row.event_id,
        requester_id=row.requester_id,
        party_size=row.party_size,
        note=row.note,
        status=RequestStatus(row.status),
        hold_expires_at=row.hold_expires_at,
        waitlist_pos=row.waitlist_pos,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_row(request: JoinRequest) -> JoinRequestRow:
    return JoinRequestRow(
        id=request.id,
        event_id=request.event_id,
        requester_id=request.requester_id,
        party_size=request.party_size,
        note=request.note,
        status=request.status.value,
        hold_expires_at=request.hold_expires_at,
        waitlist_pos=request.waitlist_pos,
        created_at=request.created_at,
        updated_at=request.updated_at,
    )


def _effective_status_clause(status: RequestStatus, now: datetime):
    """SQL form of admission.domain.expiry.effective_status == status."""
    live_hold = or_(JoinRequestRow.hold_expires_at.is_(None), JoinRequestRow.hold_expires_at > now)
    if status == RequestStatus.PENDING:
        return and_(JoinRequestRow.status == RequestStatus.PENDING.value, live_hold)
    if status == RequestStatus.EXPIRED:
        return or_(
            JoinRequestRow.status == RequestStatus.EXPIRED.value,
            and_(
                JoinRequestRow.status == RequestStatus.PENDING.value,
                JoinRequestRow.hold_expires_at <= now,
            ),
        )
    return JoinRequestRow.status == status.value


class SqlAlchemyJoinRequestRepository(JoinRequestRepository):

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def put_event(self, event: EventRecord, expected_version: Optional[int] = None) -> Optional[EventRecord]:
        async with self._session_factory() as session:
            async with session.begin():
                row = await session.get(Event, event.id, with_for_update=True)
                if expected_version is not None and (row is None or row.version != expected_version):
                    return None
                if row is None:
                    row = Event(
                        id=event.id,
                        host_id=event.host_id,
                        capacity_total=event.capacity_total,
                        is_public=event.is_public,
                        status=event.status.value,
                        version=event.version,
                    )
                    session.add(row)
                else:
                    row.host_id = event.host_id
                    row.capacity_total = event.capacity_total
                    row.is_public = event.is_public
                    row.status = event.status.value
                    row.version = row.version + 1
                await session.flush()
                stored = _to_event(row)
        logger.info("event_synced", event_id=str(event.id), capacity=event.capacity_total, version=stored.version)
        return stored

    async def get_event(self, event_id: UUID) -> Optional[EventRecord]:
        async with self._session_factory() as session:
            row = await session.get(Event, event_id)
            return _to_event(row) if row else None

    async def load_snapshot(self, event_id: UUID) -> Optional[EventSnapshot]:
        async with self._session_factory() as session:
            event = (await session.execute(select(Event).where(Event.id == event_id))).scalar_one_or_none()
            if event is None:
                return None
            record = _to_event(event)
            result = await session.execute(
                select(JoinRequestRow).where(JoinRequestRow.event_id == event_id)
            )
            requests = [_to_request(row) for row in result.scalars().all()]
        return EventSnapshot(event=record, requests=requests)

    async def save(self, event_id: UUID, expected_version: int, changes: Sequence[JoinRequest]) -> bool:
        async with self._session_factory() as session:
            async with session.begin():
                update_result = await session.execute(
                    update(Event)
                    .where(Event.id == event_id, Event.version == expected_version)
                    .values(version=Event.version + 1)
                )
                if update_result.rowcount == 0:
                    logger.info("request_set_version_conflict", event_id=str(event_id), seen_version=expected_version)
                    return False
                for request in changes:
                    await session.merge(_to_row(request))
        return True

    async def get_request(self, request_id: UUID) -> Optional[JoinRequest]:
        async with self._session_factory() as session:
            row = await session.get(JoinRequestRow, request_id)
            return _to_request(row) if row else None

    async def list_requests(
        self,
        event_id: UUID,
        now: datetime,
        status: Optional[RequestStatus] = None,
        limit: int = 25,
        offset: int = 0,
    ) -> tuple[list[JoinRequest], int]:
        query = select(JoinRequestRow).where(JoinRequestRow.event_id == event_id)
        if status is not None:
            query = query.where(_effective_status_clause(status, now))

        async with self._session_factory() as session:
            count_query = select(func.count()).select_from(query.subquery())
            total = (await session.execute(count_query)).scalar() or 0

            page_query = (
                query
                .order_by(JoinRequestRow.created_at.desc(), JoinRequestRow.id)
                .offset(offset)
                .limit(limit)
            )
            result = await session.execute(page_query)
            items = [_to_request(row) for row in result.scalars().all()]

        return items, total

    async def list_for_requester(self, requester_id: UUID) -> list[JoinRequest]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(JoinRequestRow)
                .where(JoinRequestRow.requester_id == requester_id)
                .order_by(JoinRequestRow.created_at.desc())
            )
            return [_to_request(row) for row in result.scalars().all()]

    async def events_with_lapsed_holds(self, now: datetime) -> list[UUID]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(JoinRequestRow.event_id)
                .where(
                    JoinRequestRow.status == RequestStatus.PENDING.value,
                    JoinRequestRow.hold_expires_at <= now,
                )
                .distinct()
            )
            return list(result.scalars().all())
