"""
Per-event admission strategy interface.
Decides how capacity-affecting operations on one event are serialized before
they reach the version-checked write.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from uuid import UUID


class AdmissionStrategy(ABC):
    """
    Interface for per-event serialization strategies.

    Implementations:
    - OptimisticAdmission: no gate, rely on version compare-and-set + retry
    - LocalLockAdmission: asyncio.Lock per event inside one worker process
    - RedisLockAdmission: distributed lock per event shared by all workers

    Whatever the gate, the repository write is still version-checked, so a
    gate only reduces conflicts.
    """

    name = "abstract"

    @abstractmethod
    def hold(self, event_id: UUID) -> AbstractAsyncContextManager[None]:
        """
        Exclusive section for one event's read-decide-write.

        Operations on different events must never block each other.
        Raises ConcurrencyConflict if the section cannot be entered within
        a bounded wait.
        """

    async def close(self) -> None:
        """Release any connections held by the strategy."""
