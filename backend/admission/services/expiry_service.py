"""
Durable hold expiry.

Reads already treat a lapsed hold as expired (admission.domain.expiry); this
service writes that fact down so it shows up in stored records without live
computation. Finalizing is idempotent: a second run over the same event finds
nothing to do and writes nothing.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from admission.core.clock import Clock, SystemClock
from admission.core.config import Settings, get_settings
from admission.core.exceptions import AdmissionError
from admission.core.logging import get_logger
from admission.core.metrics import holds_finalized, record_transition, sweep_event_failures
from admission.domain.expiry import expire, lapsed_holds
from admission.domain.models import EventSnapshot, JoinRequest
from admission.domain.status import RequestStatus
from admission.repositories.base import JoinRequestRepository
from admission.services import collaborators
from admission.services.collaborators import ChangeNotifier, LoggingNotifier, RequestChange
from admission.services.interfaces.admission import AdmissionStrategy
from admission.services.interfaces.local_lock_admission import LocalLockAdmission
from admission.services.request_set import Decision, RequestSetWriter

logger = get_logger(__name__)


class HoldExpiryService:

    def __init__(
        self,
        repository: JoinRequestRepository,
        clock: Optional[Clock] = None,
        strategy: Optional[AdmissionStrategy] = None,
        notifier: Optional[ChangeNotifier] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self.repository = repository
        self.clock = clock or SystemClock()
        self.notifier = notifier or LoggingNotifier()
        self.writer = RequestSetWriter(
            repository,
            strategy or LocalLockAdmission(),
            self.clock,
            max_attempts=settings.MAX_RETRY_ATTEMPTS,
            backoff_seconds=settings.RETRY_BACKOFF_SECONDS,
        )

    async def finalize_expired_holds(self, event_id: UUID, now: Optional[datetime] = None) -> list[JoinRequest]:
        """
        Write `expired` for every stored-pending request of the event whose
        hold_expires_at <= now. Returns the requests it finalized.
        """

        def decide(snapshot: EventSnapshot, at: datetime) -> Decision:
            finalized = [expire(r, at) for r in lapsed_holds(snapshot.requests, at)]
            return Decision(changes=finalized, result=finalized)

        decision = await self.writer.apply(event_id, "finalize", decide, now=now)
        finalized: list[JoinRequest] = decision.result
        if not finalized:
            return []

        holds_finalized.inc(len(finalized))
        logger.info("holds_finalized", event_id=str(event_id), count=len(finalized))
        for request in finalized:
            record_transition(RequestStatus.PENDING.value, RequestStatus.EXPIRED.value)
            try:
                await self.notifier.notify(RequestChange.of(collaborators.HOLD_EXPIRED, request, decision.event.host_id))
            except Exception:
                logger.exception("notification_failed", type=collaborators.HOLD_EXPIRED, request_id=str(request.id))
        return finalized

    async def finalize_all_expired_holds(self, now: Optional[datetime] = None) -> int:
        """
        Finalize every event that has lapsed holds. Returns the number of
        requests finalized.

        An event that fails (a hot event exhausting its retries, a ledger
        inconsistency) is logged and skipped so the rest still get finalized;
        the next pass picks it up again.
        """
        now = now or self.clock.now()
        total = 0
        failed: list[str] = []
        for event_id in await self.repository.events_with_lapsed_holds(now):
            try:
                total += len(await self.finalize_expired_holds(event_id, now=now))
            except AdmissionError as exc:
                sweep_event_failures.labels(error=exc.code).inc()
                logger.warning("hold_finalization_failed", event_id=str(event_id), error=exc.code, message=exc.message)
                failed.append(str(event_id))

        if failed:
            logger.warning("hold_finalization_incomplete", finalized=total, failed_events=failed)
        return total
