"""
Background loop that makes hold expiry durable.

Started from the application lifespan when EXPIRY_SWEEP_INTERVAL_SECONDS > 0.
Deployments with an external scheduler can disable it and call
POST /api/v1/events/{event_id}/requests/finalize-expired instead.
"""

import asyncio

from admission.core.logging import get_logger
from admission.core.metrics import last_sweep_finalized
from admission.services.expiry_service import HoldExpiryService

logger = get_logger(__name__)


async def sweep_once(service: HoldExpiryService) -> int:
    finalized = await service.finalize_all_expired_holds()
    last_sweep_finalized.set(finalized)
    if finalized:
        logger.info("expiry_sweep_completed", finalized=finalized)
    return finalized


async def run_sweeper(service: HoldExpiryService, interval_seconds: float) -> None:
    logger.info("expiry_sweeper_started", interval_seconds=interval_seconds)
    while True:
        try:
            await sweep_once(service)
        except asyncio.CancelledError:
            raise
        except Exception:
            # Keep sweeping; the next pass retries whatever failed
            logger.exception("expiry_sweep_failed")
        await asyncio.sleep(interval_seconds)
