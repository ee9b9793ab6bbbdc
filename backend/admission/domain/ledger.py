"""
Capacity ledger: seats for an event derived from its request set.

    confirmed = sum(party_size) over approved requests
    held      = sum(party_size) over pending requests whose hold is still live
    available = total - confirmed - held

Both sums use the effective status, so a lapsed hold stops counting the
instant it lapses. Nothing here touches storage.
"""

from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

from admission.core.exceptions import LedgerInconsistencyError
from admission.core.logging import get_logger
from admission.domain.expiry import effective_status
from admission.domain.models import Availability, EventRecord, JoinRequest
from admission.domain.status import RequestStatus

logger = get_logger(__name__)


def availability(
    event: EventRecord,
    requests: Iterable[JoinRequest],
    now: datetime,
    exclude: Optional[UUID] = None,
) -> Availability:
    """
    Compute {total, confirmed, held, available} for `event`.

    `exclude` drops one request from the sums; approval uses it to recheck
    capacity without the target's own hold.
    """
    confirmed = 0
    held = 0
    for request in requests:
        if request.event_id != event.id or request.id == exclude:
            continue
        status = effective_status(request, now)
        if status == RequestStatus.APPROVED:
            confirmed += request.party_size
        elif status == RequestStatus.PENDING:
            held += request.party_size

    available = event.capacity_total - confirmed - held
    if available < 0:
        logger.error(
            "ledger_inconsistent",
            event_id=str(event.id),
            total=event.capacity_total,
            confirmed=confirmed,
            held=held,
        )
        raise LedgerInconsistencyError(
            f"Event {event.id} is overcommitted: {confirmed} confirmed + {held} held > {event.capacity_total}",
            {"total": event.capacity_total, "confirmed": confirmed, "held": held, "available": available},
        )

    return Availability(total=event.capacity_total, confirmed=confirmed, held=held, available=available)
