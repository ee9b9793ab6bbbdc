"""
Optimistic admission strategy - no gate.
Relies entirely on the request-set version check and bounded retries.
"""

from contextlib import asynccontextmanager
from uuid import UUID

from admission.services.interfaces.admission import AdmissionStrategy


class OptimisticAdmission(AdmissionStrategy):
    """
    Use when:
    - Few concurrent requests per event
    - Several workers and no Redis available
    Losers of a race may see ConcurrencyConflict once retries run out.
    """

    name = "optimistic"

    @asynccontextmanager
    async def hold(self, event_id: UUID):
        yield
