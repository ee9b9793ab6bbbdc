"""
Admission strategy factory.
Configures which per-event serialization strategy to use.
"""

from typing import Optional

from admission.core.config import get_settings
from admission.core.logging import get_logger
from admission.services.interfaces.admission import AdmissionStrategy
from admission.services.interfaces.local_lock_admission import LocalLockAdmission
from admission.services.interfaces.optimistic_admission import OptimisticAdmission
from admission.services.interfaces.redis_admission import RedisLockAdmission

logger = get_logger(__name__)


def get_admission_strategy(strategy: Optional[str] = None) -> AdmissionStrategy:
    """
    Build the configured admission strategy.

    - optimistic: version check + retry only
    - local_lock: one asyncio.Lock per event (default, single worker)
    - redis_lock: one Redis lock per event (multiple workers)

    Selected by the ADMISSION_STRATEGY setting unless passed explicitly.
    """
    settings = get_settings()
    strategy = strategy or settings.ADMISSION_STRATEGY

    if strategy == "redis_lock":
        from admission.infrastructure.redis_client import get_redis

        return RedisLockAdmission(
            get_redis(),
            lock_timeout=settings.REDIS_LOCK_TIMEOUT_SECONDS,
            wait_timeout=settings.REDIS_LOCK_WAIT_SECONDS,
        )
    if strategy == "optimistic":
        return OptimisticAdmission()
    if strategy == "local_lock":
        return LocalLockAdmission()
    raise ValueError(f"Unknown ADMISSION_STRATEGY: {strategy}")


# Singleton instance
_strategy: Optional[AdmissionStrategy] = None


def get_admission() -> AdmissionStrategy:
    """Get admission strategy singleton."""
    global _strategy
    if _strategy is None:
        _strategy = get_admission_strategy()
        logger.info("admission_strategy_selected", strategy=_strategy.name)
    return _strategy


async def close_admission() -> None:
    global _strategy
    if _strategy is not None:
        await _strategy.close()
        _strategy = None
