"""
Per-event asyncio locks for a single worker process.
"""

import asyncio
import time
from contextlib import asynccontextmanager
from uuid import UUID

from admission.core.metrics import gate_wait
from admission.services.interfaces.admission import AdmissionStrategy


class LocalLockAdmission(AdmissionStrategy):
    """
    Pessimistic within one process: operations on the same event queue up
    behind one asyncio.Lock, so the version check almost never fails.

    Use when:
    - A single API worker (or sticky routing per event)
    - Bursts of guests requesting the last few seats
    """

    name = "local_lock"

    def __init__(self):
        self._locks: dict[UUID, asyncio.Lock] = {}
        self._waiters: dict[UUID, int] = {}

    @asynccontextmanager
    async def hold(self, event_id: UUID):
        lock = self._locks.setdefault(event_id, asyncio.Lock())
        self._waiters[event_id] = self._waiters.get(event_id, 0) + 1
        started = time.perf_counter()
        try:
            async with lock:
                gate_wait.labels(strategy=self.name).observe(time.perf_counter() - started)
                yield
        finally:
            self._waiters[event_id] -= 1
            if self._waiters[event_id] == 0:
                # Nobody else is queued on this event; drop the lock
                del self._waiters[event_id]
                del self._locks[event_id]
