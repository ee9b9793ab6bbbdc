"""
Pytest fixtures for the admission engine, its collaborators, and the HTTP client.

Services run against the in-memory repository and a ManualClock, so hold
expiry is driven by moving the clock rather than sleeping.
"""

from typing import AsyncGenerator
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from admission.api.deps import (
    get_clock,
    get_notifier,
    get_participant_registry,
    get_repository,
    get_strategy,
)
from admission.core.clock import ManualClock
from admission.domain.models import EventRecord, EventStatus, JoinRequest
from admission.main import app
from admission.repositories.memory_repository import InMemoryJoinRequestRepository
from admission.services.admission_service import AdmissionService
from admission.services.collaborators import ChangeNotifier, ParticipantRegistry, RequestChange
from admission.services.expiry_service import HoldExpiryService
from admission.services.interfaces.local_lock_admission import LocalLockAdmission
from admission.services.query_service import AvailabilityQuery


class RecordingNotifier(ChangeNotifier):
    def __init__(self):
        self.changes: list[RequestChange] = []

    async def notify(self, change: RequestChange) -> None:
        self.changes.append(change)

    def types(self) -> list[str]:
        return [c.type for c in self.changes]


class RecordingParticipants(ParticipantRegistry):
    def __init__(self):
        self.added: list[JoinRequest] = []

    async def add_participant(self, request: JoinRequest) -> None:
        self.added.append(request)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def repository() -> InMemoryJoinRequestRepository:
    return InMemoryJoinRequestRepository()


@pytest.fixture
def strategy() -> LocalLockAdmission:
    return LocalLockAdmission()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def participants() -> RecordingParticipants:
    return RecordingParticipants()


@pytest.fixture
def host_id() -> UUID:
    return uuid4()


@pytest.fixture
def service(repository, clock, strategy, notifier, participants) -> AdmissionService:
    return AdmissionService(
        repository,
        clock=clock,
        strategy=strategy,
        notifier=notifier,
        participants=participants,
    )


@pytest.fixture
def expiry(repository, clock, strategy, notifier) -> HoldExpiryService:
    return HoldExpiryService(repository, clock=clock, strategy=strategy, notifier=notifier)


@pytest.fixture
def query(repository, clock) -> AvailabilityQuery:
    return AvailabilityQuery(repository, clock=clock)


@pytest_asyncio.fixture
async def make_event(repository, host_id):
    """Factory registering a published public event with the given capacity."""

    async def _make(capacity: int = 20, **overrides) -> EventRecord:
        fields = {
            "id": uuid4(),
            "host_id": host_id,
            "capacity_total": capacity,
            "is_public": True,
            "status": EventStatus.PUBLISHED,
        }
        fields.update(overrides)
        return await repository.put_event(EventRecord(**fields))

    return _make


@pytest_asyncio.fixture
async def event(make_event) -> EventRecord:
    """Published event with 20 seats."""
    return await make_event(capacity=20)


@pytest_asyncio.fixture(scope="function")
async def client(repository, clock, strategy, notifier, participants) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with storage, time and collaborators swapped for test doubles."""
    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_strategy] = lambda: strategy
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_participant_registry] = lambda: participants

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()