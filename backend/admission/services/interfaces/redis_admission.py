"""
Distributed per-event lock backed by Redis.

Every worker serializes operations on the same event through one Redis key,
`admission:event:{event_id}`. The lock has a timeout so a crashed worker can
never wedge an event, and acquisition has a bounded wait: if it runs out the
operation fails with ConcurrencyConflict instead of queueing forever.

A Redis outage also surfaces as ConcurrencyConflict; there is no fail-open path.
"""

import time
from contextlib import asynccontextmanager
from uuid import UUID

from redis.exceptions import LockError, RedisError

from admission.core.exceptions import ConcurrencyConflict
from admission.core.logging import get_logger
from admission.core.metrics import gate_wait, redis_lock_errors
from admission.infrastructure.redis_client import RedisClient
from admission.services.interfaces.admission import AdmissionStrategy

logger = get_logger(__name__)


class RedisLockAdmission(AdmissionStrategy):
    """
    Use when:
    - Several API workers serve the same events
    - Flash demand on a handful of events
    """

    name = "redis_lock"

    def __init__(self, client, lock_timeout: float = 5.0, wait_timeout: float = 2.0):
        self.redis = client
        self.lock_timeout = lock_timeout
        self.wait_timeout = wait_timeout

    @staticmethod
    def key_for(event_id: UUID) -> str:
        return f"admission:event:{event_id}"

    @asynccontextmanager
    async def hold(self, event_id: UUID):
        lock = self.redis.lock(
            self.key_for(event_id),
            timeout=self.lock_timeout,
            blocking_timeout=self.wait_timeout,
        )
        started = time.perf_counter()
        try:
            acquired = await lock.acquire()
        except RedisError as e:
            redis_lock_errors.inc()
            logger.error("redis_lock_failed", event_id=str(event_id), error=str(e))
            raise ConcurrencyConflict(attempts=0, message="Admission lock unavailable. Please try again.") from e

        if not acquired:
            redis_lock_errors.inc()
            logger.warning("redis_lock_timeout", event_id=str(event_id), waited=self.wait_timeout)
            raise ConcurrencyConflict(attempts=0, message="Event is busy. Please try again.")

        gate_wait.labels(strategy=self.name).observe(time.perf_counter() - started)
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError as e:
                # Lock outlived its timeout
                redis_lock_errors.inc()
                logger.warning("redis_lock_release_failed", event_id=str(event_id), error=str(e))

    async def close(self) -> None:
        await RedisClient.close()
