"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .admission import AdmissionStrategy
from .local_lock_admission import LocalLockAdmission
from .optimistic_admission import OptimisticAdmission
from .redis_admission import RedisLockAdmission

__all__ = ['AdmissionStrategy', 'LocalLockAdmission', 'OptimisticAdmission', 'RedisLockAdmission']
