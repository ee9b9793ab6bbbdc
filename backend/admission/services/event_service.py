"""
Mirror of events pushed by the event lifecycle service.

The admission engine does not create or publish events; it keeps the fields
it needs (host, capacity, visibility, lifecycle status) in sync so every
capacity decision reads them in the same snapshot as the request set.
"""

from datetime import datetime

from admission.core.exceptions import CapacityError, ConcurrencyConflict, ValidationError
from admission.core.logging import get_logger
from admission.domain import ledger
from admission.domain.models import EventRecord
from admission.repositories.base import JoinRequestRepository

logger = get_logger(__name__)

MAX_SYNC_ATTEMPTS = 3


async def sync_event(repository: JoinRequestRepository, event: EventRecord, now: datetime) -> EventRecord:
    """
    Insert or update an event.

    Shrinking capacity below the seats already confirmed or held is refused
    with CapacityError; the change is applied conditionally on the request
    set version it was checked against.
    """
    if event.capacity_total < 0:
        raise ValidationError("capacity_total", event.capacity_total, "capacity_total must not be negative")

    for attempt in range(1, MAX_SYNC_ATTEMPTS + 1):
        snapshot = await repository.load_snapshot(event.id)
        if snapshot is None:
            stored = await repository.put_event(event)
            logger.info("event_registered", event_id=str(event.id), capacity=event.capacity_total)
            return stored

        current = ledger.availability(snapshot.event, snapshot.requests, now)
        committed = current.confirmed + current.held
        if event.capacity_total < committed:
            logger.warning(
                "event_capacity_shrink_rejected",
                event_id=str(event.id),
                requested_capacity=event.capacity_total,
                committed=committed,
            )
            raise CapacityError(requested=committed, available=event.capacity_total)

        stored = await repository.put_event(event, expected_version=snapshot.version)
        if stored is not None:
            logger.info(
                "event_updated",
                event_id=str(event.id),
                capacity=event.capacity_total,
                status=event.status.value,
                version=stored.version,
            )
            return stored

        logger.info("event_sync_retry", event_id=str(event.id), attempt=attempt)

    raise ConcurrencyConflict(attempts=MAX_SYNC_ATTEMPTS)
