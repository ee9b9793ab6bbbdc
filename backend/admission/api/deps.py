"""
FastAPI dependencies wiring the services together.

Tests override get_repository, get_clock, get_notifier and
get_participant_registry through app.dependency_overrides.
"""

from functools import lru_cache
from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status

from admission.core.clock import Clock, SystemClock
from admission.core.config import get_settings
from admission.db.session import get_sessionmaker
from admission.repositories.base import JoinRequestRepository
from admission.repositories.memory_repository import InMemoryJoinRequestRepository
from admission.repositories.sqlalchemy_repository import SqlAlchemyJoinRequestRepository
from admission.services.admission_service import AdmissionService
from admission.services.collaborators import (
    ChangeNotifier,
    LoggingNotifier,
    LoggingParticipantRegistry,
    ParticipantRegistry,
)
from admission.services.expiry_service import HoldExpiryService
from admission.services.interfaces.admission import AdmissionStrategy
from admission.services.query_service import AvailabilityQuery
from admission.services.strategy_factory import get_admission


@lru_cache()
def get_repository() -> JoinRequestRepository:
    if get_settings().REPOSITORY_BACKEND == "memory":
        return InMemoryJoinRequestRepository()
    return SqlAlchemyJoinRequestRepository(get_sessionmaker())


@lru_cache()
def get_clock() -> Clock:
    return SystemClock()


def get_strategy() -> AdmissionStrategy:
    return get_admission()


@lru_cache()
def get_notifier() -> ChangeNotifier:
    return LoggingNotifier()


@lru_cache()
def get_participant_registry() -> ParticipantRegistry:
    return LoggingParticipantRegistry()


def get_admission_service(
    repository: JoinRequestRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
    strategy: AdmissionStrategy = Depends(get_strategy),
    notifier: ChangeNotifier = Depends(get_notifier),
    participants: ParticipantRegistry = Depends(get_participant_registry),
) -> AdmissionService:
    return AdmissionService(
        repository,
        clock=clock,
        strategy=strategy,
        notifier=notifier,
        participants=participants,
    )


def get_expiry_service(
    repository: JoinRequestRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
    strategy: AdmissionStrategy = Depends(get_strategy),
    notifier: ChangeNotifier = Depends(get_notifier),
) -> HoldExpiryService:
    return HoldExpiryService(repository, clock=clock, strategy=strategy, notifier=notifier)


def get_query(
    repository: JoinRequestRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
) -> AvailabilityQuery:
    return AvailabilityQuery(repository, clock=clock)


async def get_actor_id(x_actor_id: Optional[str] = Header(None, alias="X-Actor-Id")) -> UUID:
    """Caller identity, authenticated upstream and forwarded as a header."""
    if not x_actor_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Actor-Id header",
        )
    try:
        return UUID(x_actor_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Actor-Id must be a UUID",
        )
