"""
Tests for join request admission: capacity checks, host decisions, holds.
"""

from datetime import timedelta
from uuid import uuid4

import pytest

from admission.core.exceptions import (
    CapacityError,
    DuplicateRequestError,
    EventClosedError,
    NotFoundError,
    PermissionDeniedError,
    StateError,
    ValidationError,
)
from admission.domain.models import EventStatus
from admission.domain.status import RequestStatus
from admission.services import collaborators
from admission.services.admission_service import AdmissionService
from admission.services.collaborators import ChangeNotifier, ParticipantRegistry


class FailingNotifier(ChangeNotifier):
    async def notify(self, change):
        raise RuntimeError("mail relay down")


class FailingParticipants(ParticipantRegistry):
    async def add_participant(self, request):
        raise RuntimeError("roster service down")


async def seats(query, event):
    a = await query.availability(event.id)
    return a.confirmed, a.held, a.available


# ----------------------------------------------------------------------
# Walkthrough: 20 seats, 5 confirmed, one hold of 3
# ----------------------------------------------------------------------


@pytest.mark.asyncio
async def test_capacity_walkthrough(service, query, event, host_id, clock):
    """Create, reject, hold and approve against a partly filled event."""
    confirmed = await service.create_request(event.id, uuid4(), 5)
    await service.approve_request(confirmed.id, host_id)
    clock.advance(minutes=1)
    original = await service.create_request(event.id, uuid4(), 3)

    assert await seats(query, event) == (5, 3, 12)

    with pytest.raises(CapacityError) as exc_info:
        await service.create_request(event.id, uuid4(), 15)
    assert exc_info.value.available == 12
    assert exc_info.value.requested == 15
    assert "12 available, requested 15" in exc_info.value.message

    small = await service.create_request(event.id, uuid4(), 2)
    assert small.status == RequestStatus.PENDING
    assert small.hold_expires_at == clock.now() + timedelta(minutes=30)
    assert await seats(query, event) == (5, 5, 10)

    approved = await service.approve_request(original.id, host_id)
    assert approved.status == RequestStatus.APPROVED
    assert approved.hold_expires_at is None
    assert await seats(query, event) == (8, 2, 10)


@pytest.mark.asyncio
async def test_rejected_create_writes_nothing(service, repository, query, make_event):
    event = await make_event(capacity=4)
    await service.create_request(event.id, uuid4(), 3)
    saves = repository.save_calls
    version = (await repository.get_event(event.id)).version
    before = await seats(query, event)

    with pytest.raises(CapacityError):
        await service.create_request(event.id, uuid4(), 2)

    assert repository.save_calls == saves
    assert (await repository.get_event(event.id)).version == version
    assert await seats(query, event) == before


@pytest.mark.asyncio
async def test_request_can_take_exactly_the_remaining_seats(service, query, make_event):
    event = await make_event(capacity=6)
    await service.create_request(event.id, uuid4(), 6)

    assert await seats(query, event) == (0, 6, 0)


# ----------------------------------------------------------------------
# Input validation and event checks
# ----------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.parametrize("party_size", [0, -1, True, 2.5, "3"])
async def test_invalid_party_size_is_rejected(service, repository, event, party_size):
    with pytest.raises(ValidationError) as exc_info:
        await service.create_request(event.id, uuid4(), party_size)

    assert exc_info.value.field == "party_size"
    assert repository.save_calls == 0


@pytest.mark.asyncio
async def test_note_is_trimmed_and_bounded(service, event):
    request = await service.create_request(event.id, uuid4(), 1, note="  see you there  ")
    assert request.note == "see you there"

    blank = await service.create_request(event.id, uuid4(), 1, note="   ")
    assert blank.note is None

    with pytest.raises(ValidationError):
        await service.create_request(event.id, uuid4(), 1, note="x" * 501)


@pytest.mark.asyncio
async def test_unknown_event_is_not_found(service):
    with pytest.raises(NotFoundError) as exc_info:
        await service.create_request(uuid4(), uuid4(), 1)

    assert exc_info.value.resource == "Event"


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [EventStatus.DRAFT, EventStatus.CANCELLED, EventStatus.COMPLETED])
async def test_unpublished_event_refuses_requests(service, make_event, status):
    event = await make_event(capacity=10, status=status)

    with pytest.raises(EventClosedError):
        await service.create_request(event.id, uuid4(), 1)


@pytest.mark.asyncio
async def test_private_event_only_takes_host_invites(service, query, make_event, host_id):
    event = await make_event(capacity=10, is_public=False)
    guest = uuid4()

    with pytest.raises(EventClosedError):
        await service.create_request(event.id, guest, 1)

    invited = await service.invite_guest(event.id, host_id, guest, 3, note="  plus two  ")
    assert invited.requester_id == guest
    assert invited.status == RequestStatus.PENDING
    assert invited.note == "plus two"
    assert await seats(query, event) == (0, 3, 7)


@pytest.mark.asyncio
async def test_invite_follows_create_rules(service, make_event, host_id):
    event = await make_event(capacity=2, is_public=False)
    guest = uuid4()

    with pytest.raises(PermissionDeniedError):
        await service.invite_guest(event.id, uuid4(), guest, 1)
    with pytest.raises(CapacityError):
        await service.invite_guest(event.id, host_id, guest, 3)
    with pytest.raises(ValidationError):
        await service.invite_guest(event.id, host_id, guest, 0)

    await service.invite_guest(event.id, host_id, guest, 1)
    with pytest.raises(DuplicateRequestError):
        await service.invite_guest(event.id, host_id, guest, 1)


@pytest.mark.asyncio
async def test_second_active_request_from_same_guest_is_rejected(service, event, host_id, clock):
    guest = uuid4()
    first = await service.create_request(event.id, guest, 2)

    with pytest.raises(DuplicateRequestError):
        await service.create_request(event.id, guest, 1)

    await service.waitlist_request(first.id, host_id)
    with pytest.raises(DuplicateRequestError):
        await service.create_request(event.id, guest, 1)

    await service.decline_request(first.id, host_id)
    again = await service.create_request(event.id, guest, 1)
    assert again.status == RequestStatus.PENDING


@pytest.mark.asyncio
async def test_guest_may_request_again_after_hold_lapses(service, event, clock):
    guest = uuid4()
    await service.create_request(event.id, guest, 2)
    clock.advance(minutes=31)

    again = await service.create_request(event.id, guest, 2)

    assert again.status == RequestStatus.PENDING


# ----------------------------------------------------------------------
# Host decisions
# ----------------------------------------------------------------------


@pytest.mark.asyncio
async def test_only_host_can_decide(service, event):
    request = await service.create_request(event.id, uuid4(), 1)

    with pytest.raises(PermissionDeniedError):
        await service.approve_request(request.id, uuid4())
    with pytest.raises(PermissionDeniedError):
        await service.decline_request(request.id, request.requester_id)


@pytest.mark.asyncio
async def test_unknown_request_is_not_found(service, host_id):
    with pytest.raises(NotFoundError) as exc_info:
        await service.approve_request(uuid4(), host_id)

    assert exc_info.value.resource == "Join request"


@pytest.mark.asyncio
async def test_approving_twice_is_a_state_error(service, event, host_id):
    request = await service.create_request(event.id, uuid4(), 1)
    await service.approve_request(request.id, host_id)

    with pytest.raises(StateError) as exc_info:
        await service.approve_request(request.id, host_id)

    assert exc_info.value.current_status == "approved"


@pytest.mark.asyncio
@pytest.mark.parametrize("action", ["decline_request", "cancel_request"])
async def test_releasing_a_hold_frees_its_seats(service, query, event, host_id, action):
    request = await service.create_request(event.id, uuid4(), 4)
    _, _, before = await seats(query, event)

    actor_id = host_id if action == "decline_request" else request.requester_id
    await getattr(service, action)(request.id, actor_id)

    _, _, after = await seats(query, event)
    assert after == before + 4


@pytest.mark.asyncio
async def test_lapsing_a_hold_frees_its_seats(service, query, event, clock):
    await service.create_request(event.id, uuid4(), 4)
    _, _, before = await seats(query, event)

    clock.advance(minutes=30)

    _, _, after = await seats(query, event)
    assert after == before + 4


@pytest.mark.asyncio
async def test_waitlisted_request_holds_no_seats(service, query, event, host_id):
    request = await service.create_request(event.id, uuid4(), 4)

    waitlisted = await service.waitlist_request(request.id, host_id)

    assert waitlisted.status == RequestStatus.WAITLISTED
    assert waitlisted.hold_expires_at is None
    assert await seats(query, event) == (0, 0, 20)


@pytest.mark.asyncio
async def test_waitlisted_approval_rechecks_capacity(service, query, make_event, host_id):
    event = await make_event(capacity=5)
    parked = await service.create_request(event.id, uuid4(), 3)
    await service.waitlist_request(parked.id, host_id)
    await service.create_request(event.id, uuid4(), 4)

    with pytest.raises(CapacityError) as exc_info:
        await service.approve_request(parked.id, host_id)

    assert exc_info.value.available == 1
    assert (await query.get_request(parked.id, host_id)).status == RequestStatus.WAITLISTED


@pytest.mark.asyncio
async def test_waitlisted_request_is_promoted_manually(service, query, make_event, host_id):
    event = await make_event(capacity=5)
    parked = await service.create_request(event.id, uuid4(), 3)
    await service.waitlist_request(parked.id, host_id)
    other = await service.create_request(event.id, uuid4(), 4)
    await service.cancel_request(other.id, other.requester_id)

    # Nothing promotes it on its own
    assert (await query.get_request(parked.id, host_id)).status == RequestStatus.WAITLISTED

    approved = await service.approve_request(parked.id, host_id)
    assert approved.status == RequestStatus.APPROVED
    assert await seats(query, event) == (3, 0, 2)


@pytest.mark.asyncio
async def test_lapsed_hold_cannot_be_approved(service, event, host_id, clock):
    request = await service.create_request(event.id, uuid4(), 2)
    clock.advance(minutes=45)

    with pytest.raises(StateError) as exc_info:
        await service.approve_request(request.id, host_id)

    assert exc_info.value.current_status == "expired"


@pytest.mark.asyncio
async def test_host_action_finalizes_lapsed_holds(service, repository, event, host_id, clock, notifier):
    stale = await service.create_request(event.id, uuid4(), 2)
    clock.advance(minutes=20)
    fresh = await service.create_request(event.id, uuid4(), 2)
    clock.advance(minutes=15)

    await service.approve_request(fresh.id, host_id)

    stored = await repository.get_request(stale.id)
    assert stored.status == RequestStatus.EXPIRED
    assert stored.hold_expires_at is None
    assert collaborators.HOLD_EXPIRED in notifier.types()


# ----------------------------------------------------------------------
# Guest cancellation
# ----------------------------------------------------------------------


@pytest.mark.asyncio
async def test_cancel_requires_requester(service, event, host_id):
    request = await service.create_request(event.id, uuid4(), 1)

    with pytest.raises(PermissionDeniedError):
        await service.cancel_request(request.id, host_id)


@pytest.mark.asyncio
async def test_cancel_after_hold_lapsed_is_a_state_error(service, event, clock):
    request = await service.create_request(event.id, uuid4(), 2)
    clock.advance(minutes=30, seconds=1)

    with pytest.raises(StateError) as exc_info:
        await service.cancel_request(request.id, request.requester_id)

    assert exc_info.value.message == "hold already expired"


@pytest.mark.asyncio
async def test_cancel_approved_request_is_a_state_error(service, event, host_id):
    request = await service.create_request(event.id, uuid4(), 1)
    await service.approve_request(request.id, host_id)

    with pytest.raises(StateError):
        await service.cancel_request(request.id, request.requester_id)


# ----------------------------------------------------------------------
# Hold extension
# ----------------------------------------------------------------------


@pytest.mark.asyncio
async def test_extend_adds_minutes_to_stored_expiry(service, repository, event, host_id, clock):
    request = await service.create_request(event.id, uuid4(), 2)
    original = request.hold_expires_at
    clock.advance(minutes=10)

    extended = await service.extend_hold(request.id, host_id, minutes=15)

    assert extended.hold_expires_at == original + timedelta(minutes=15)
    assert (await repository.get_request(request.id)).hold_expires_at == original + timedelta(minutes=15)


@pytest.mark.asyncio
async def test_extended_hold_keeps_counting(service, query, event, host_id, clock):
    request = await service.create_request(event.id, uuid4(), 2)
    await service.extend_hold(request.id, host_id, minutes=30)
    clock.advance(minutes=45)

    assert await seats(query, event) == (0, 2, 18)


@pytest.mark.asyncio
async def test_extend_fails_once_hold_lapsed(service, event, host_id, clock):
    request = await service.create_request(event.id, uuid4(), 2)
    clock.advance(minutes=31)

    with pytest.raises(StateError):
        await service.extend_hold(request.id, host_id, minutes=30)


@pytest.mark.asyncio
async def test_extend_fails_for_non_pending_request(service, event, host_id):
    request = await service.create_request(event.id, uuid4(), 2)
    await service.waitlist_request(request.id, host_id)

    with pytest.raises(StateError):
        await service.extend_hold(request.id, host_id, minutes=30)


@pytest.mark.asyncio
@pytest.mark.parametrize("minutes", [0, 4, 121])
async def test_extend_minutes_are_bounded(service, event, host_id, minutes):
    request = await service.create_request(event.id, uuid4(), 2)

    with pytest.raises(ValidationError):
        await service.extend_hold(request.id, host_id, minutes=minutes)


@pytest.mark.asyncio
async def test_extend_is_host_only(service, event):
    request = await service.create_request(event.id, uuid4(), 2)

    with pytest.raises(PermissionDeniedError):
        await service.extend_hold(request.id, request.requester_id, minutes=30)


# ----------------------------------------------------------------------
# Collaborators
# ----------------------------------------------------------------------


@pytest.mark.asyncio
async def test_changes_are_announced_to_the_right_party(service, event, host_id, notifier, participants):
    request = await service.create_request(event.id, uuid4(), 2)
    await service.extend_hold(request.id, host_id, minutes=10)
    await service.approve_request(request.id, host_id)

    assert notifier.types() == [
        collaborators.JOIN_REQUEST_RECEIVED,
        collaborators.HOLD_EXTENDED,
        collaborators.REQUEST_APPROVED,
    ]
    assert notifier.changes[0].recipient_id == host_id
    assert notifier.changes[2].recipient_id == request.requester_id
    assert [p.id for p in participants.added] == [request.id]


@pytest.mark.asyncio
async def test_collaborator_failures_do_not_undo_the_write(repository, clock, strategy, query, event, host_id):
    service = AdmissionService(
        repository,
        clock=clock,
        strategy=strategy,
        notifier=FailingNotifier(),
        participants=FailingParticipants(),
    )
    request = await service.create_request(event.id, uuid4(), 2)

    approved = await service.approve_request(request.id, host_id)

    assert approved.status == RequestStatus.APPROVED
    assert (await repository.get_request(request.id)).status == RequestStatus.APPROVED
    assert await seats(query, event) == (2, 0, 18)
