"""
Atomic read-decide-write against one event's request set.

    async with strategy.hold(event_id):          # per-event gate
        for attempt in 1..MAX_RETRY_ATTEMPTS:
            snapshot = load event + requests      # version N
            changes = decide(snapshot, now)       # may raise a domain error
            save(changes) if version still N      # compare-and-set
            conflict -> back off, re-read, decide again

A domain error raised by `decide` aborts immediately without writing.
Running out of attempts raises ConcurrencyConflict.
"""

import asyncio
import random
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional
from uuid import UUID

from admission.core.clock import Clock
from admission.core.exceptions import ConcurrencyConflict, NotFoundError
from admission.core.logging import get_logger
from admission.core.metrics import admission_latency, concurrency_conflicts, write_retries
from admission.domain.models import EventRecord, EventSnapshot, JoinRequest
from admission.domain.status import RequestStatus
from admission.repositories.base import JoinRequestRepository
from admission.services.interfaces.admission import AdmissionStrategy

logger = get_logger(__name__)


@dataclass
class Decision:
    """What an operation wants written, and what it hands back to its caller."""

    changes: list[JoinRequest] = field(default_factory=list)
    result: Any = None
    event: Optional[EventRecord] = None
    previous_status: Optional[RequestStatus] = None


class RequestSetWriter:

    def __init__(
        self,
        repository: JoinRequestRepository,
        strategy: AdmissionStrategy,
        clock: Clock,
        max_attempts: int = 3,
        backoff_seconds: float = 0.02,
    ):
        self.repository = repository
        self.strategy = strategy
        self.clock = clock
        self.max_attempts = max(1, max_attempts)
        self.backoff_seconds = backoff_seconds

    async def apply(
        self,
        event_id: UUID,
        operation: str,
        decide: Callable[[EventSnapshot, datetime], Decision],
        now: Optional[datetime] = None,
    ) -> Decision:
        started = time.perf_counter()
        async with self.strategy.hold(event_id):
            for attempt in range(1, self.max_attempts + 1):
                snapshot = await self.repository.load_snapshot(event_id)
                if snapshot is None:
                    raise NotFoundError("Event", event_id)

                decision = decide(snapshot, now or self.clock.now())
                decision.event = snapshot.event
                if not decision.changes:
                    return decision

                if await self.repository.save(event_id, snapshot.version, decision.changes):
                    admission_latency.labels(operation=operation).observe(time.perf_counter() - started)
                    if attempt > 1:
                        logger.info("request_set_write_succeeded_after_retry", event_id=str(event_id), attempt=attempt)
                    return decision

                write_retries.inc()
                logger.info(
                    "request_set_retry",
                    event_id=str(event_id),
                    operation=operation,
                    attempt=attempt,
                    reason="version_conflict",
                )
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.backoff_seconds * attempt * random.uniform(0.5, 1.5))

        concurrency_conflicts.inc()
        logger.warning("request_set_conflict_exhausted", event_id=str(event_id), operation=operation)
        raise ConcurrencyConflict(attempts=self.max_attempts)
