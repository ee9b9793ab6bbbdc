"""
Admission service: the only place capacity is authoritatively checked.

Guest-facing screens may pre-check availability, but their view can be stale
the instant another guest is admitted; every create and approve re-runs the
ledger inside the event's atomic section (see request_set.RequestSetWriter).

Operations
----------
create_request   guest asks to join, holding party_size seats for the hold TTL
approve_request  host confirms a pending or waitlisted request (capacity recheck)
decline_request  host rejects a pending or waitlisted request
waitlist_request host parks a pending request; it stops holding seats
cancel_request   guest withdraws their own live pending request
extend_hold      host pushes a live hold's expiry out by N minutes
invite_guest     host files a request on a guest's behalf (also for private events)
reorder_waitlist host sets a waitlisted request's promotion priority
promote_next     host approves the first waitlisted request that fits

Host actions also finalize any lapsed holds on the event in the same write.
"""

import math
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID, uuid4

from admission.core.clock import Clock, SystemClock
from admission.core.config import Settings, get_settings
from admission.core.exceptions import (
    CapacityError,
    DuplicateRequestError,
    EventClosedError,
    NotFoundError,
    PermissionDeniedError,
    StateError,
    ValidationError,
)
from admission.core.logging import get_logger
from admission.core.metrics import holds_finalized, record_admission, record_transition
from admission.domain import ledger
from admission.domain.expiry import effective_status, expire, lapsed_holds
from admission.domain.models import EventRecord, EventSnapshot, JoinRequest
from admission.domain.status import RequestAction, RequestStatus, next_status
from admission.repositories.base import JoinRequestRepository
from admission.services import collaborators
from admission.services.collaborators import (
    ChangeNotifier,
    LoggingNotifier,
    LoggingParticipantRegistry,
    ParticipantRegistry,
    RequestChange,
)
from admission.services.interfaces.admission import AdmissionStrategy
from admission.services.interfaces.local_lock_admission import LocalLockAdmission
from admission.services.request_set import Decision, RequestSetWriter

logger = get_logger(__name__)

NOTE_MAX_LENGTH = 500

# Effective statuses that block a second request from the same guest
_ACTIVE_STATUSES = frozenset({RequestStatus.PENDING, RequestStatus.WAITLISTED, RequestStatus.APPROVED})

_CHANGE_FOR_ACTION = {
    RequestAction.APPROVE: collaborators.REQUEST_APPROVED,
    RequestAction.DECLINE: collaborators.REQUEST_DECLINED,
    RequestAction.WAITLIST: collaborators.REQUEST_WAITLISTED,
    RequestAction.CANCEL: collaborators.REQUEST_CANCELLED,
}


def _require_host(event: EventRecord, actor_id: UUID) -> None:
    if event.host_id != actor_id:
        raise PermissionDeniedError("Only the event host can manage join requests")


def _require_request(snapshot: EventSnapshot, request_id: UUID) -> JoinRequest:
    request = snapshot.find(request_id)
    if request is None:
        raise NotFoundError("Join request", request_id)
    return request


def _waitlist_order(request: JoinRequest) -> tuple:
    # Unpositioned requests go last, oldest first
    return (request.waitlist_pos is None, request.waitlist_pos or 0.0, request.created_at)


def _clean_note(note: Optional[str]) -> Optional[str]:
    if note is None:
        return None
    note = note.strip()
    if not note:
        return None
    if len(note) > NOTE_MAX_LENGTH:
        raise ValidationError("note", len(note), f"Note must be at most {NOTE_MAX_LENGTH} characters")
    return note


class AdmissionService:

    def __init__(
        self,
        repository: JoinRequestRepository,
        clock: Optional[Clock] = None,
        strategy: Optional[AdmissionStrategy] = None,
        notifier: Optional[ChangeNotifier] = None,
        participants: Optional[ParticipantRegistry] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.repository = repository
        self.clock = clock or SystemClock()
        self.notifier = notifier or LoggingNotifier()
        self.participants = participants or LoggingParticipantRegistry()
        self.writer = RequestSetWriter(
            repository,
            strategy or LocalLockAdmission(),
            self.clock,
            max_attempts=self.settings.MAX_RETRY_ATTEMPTS,
            backoff_seconds=self.settings.RETRY_BACKOFF_SECONDS,
        )

    @property
    def hold_duration(self) -> timedelta:
        return timedelta(minutes=self.settings.JOIN_HOLD_TTL_MIN)

    # ------------------------------------------------------------------
    # Guest operations
    # ------------------------------------------------------------------

    async def create_request(
        self,
        event_id: UUID,
        requester_id: UUID,
        party_size: int,
        note: Optional[str] = None,
    ) -> JoinRequest:
        """
        Create a pending request holding `party_size` seats.

        Raises ValidationError before touching capacity, then NotFoundError,
        EventClosedError, DuplicateRequestError or CapacityError. A rejected
        request writes nothing. Private events only take requests through
        invite_guest.
        """
        return await self._create(event_id, requester_id, party_size, note)

    async def _create(
        self,
        event_id: UUID,
        requester_id: UUID,
        party_size: int,
        note: Optional[str],
        invited_by: Optional[UUID] = None,
    ) -> JoinRequest:
        if isinstance(party_size, bool) or not isinstance(party_size, int) or party_size < 1:
            raise ValidationError("party_size", party_size, "party_size must be an integer of at least 1")
        note = _clean_note(note)

        def decide(snapshot: EventSnapshot, now: datetime) -> Decision:
            event = snapshot.event
            if invited_by is not None:
                _require_host(event, invited_by)
            if not event.accepts_requests:
                raise EventClosedError(
                    f"Event is {event.status.value} and not accepting join requests",
                    action="create",
                )
            if not event.is_public and invited_by is None:
                raise EventClosedError("Event is private", action="create")

            for existing in snapshot.requests:
                if existing.requester_id != requester_id:
                    continue
                status = effective_status(existing, now)
                if status in _ACTIVE_STATUSES:
                    raise DuplicateRequestError(
                        "Already have an active request for this event",
                        current_status=status.value,
                        action="create",
                    )

            seats = ledger.availability(event, snapshot.requests, now)
            if party_size > seats.available:
                record_admission("create", admitted=False)
                logger.warning(
                    "join_request_rejected_no_capacity",
                    event_id=str(event_id),
                    requested=party_size,
                    available=seats.available,
                )
                raise CapacityError(requested=party_size, available=seats.available)

            request = JoinRequest(
                id=uuid4(),
                event_id=event_id,
                requester_id=requester_id,
                party_size=party_size,
                note=note,
                status=RequestStatus.PENDING,
                hold_expires_at=now + self.hold_duration,
                created_at=now,
                updated_at=now,
            )
            return Decision(changes=[request], result=request)

        decision = await self.writer.apply(event_id, "create", decide)
        request = decision.result
        record_admission("create", admitted=True)
        logger.info(
            "join_request_created",
            request_id=str(request.id),
            event_id=str(event_id),
            requester_id=str(requester_id),
            party_size=party_size,
            hold_expires_at=request.hold_expires_at.isoformat(),
            invited_by=str(invited_by) if invited_by else None,
        )
        await self._notify(collaborators.JOIN_REQUEST_RECEIVED, request, decision.event)
        return request

    async def cancel_request(self, request_id: UUID, requester_id: UUID) -> JoinRequest:
        """Withdraw a live pending request. A lapsed hold cannot be cancelled."""
        event_id = await self._event_of(request_id)

        def decide(snapshot: EventSnapshot, now: datetime) -> Decision:
            request = _require_request(snapshot, request_id)
            if request.requester_id != requester_id:
                raise PermissionDeniedError("Only the requester can cancel this request")
            current = effective_status(request, now)
            if current == RequestStatus.EXPIRED and request.status == RequestStatus.PENDING:
                raise StateError("hold already expired", current_status=current.value, action="cancel")
            target = next_status(current, RequestAction.CANCEL)
            updated = replace(request, status=target, hold_expires_at=None, updated_at=now)
            return Decision(changes=[updated], result=updated, previous_status=current)

        decision = await self.writer.apply(event_id, "cancel", decide)
        return await self._after_transition(decision, RequestAction.CANCEL, actor_id=requester_id)

    # ------------------------------------------------------------------
    # Host operations
    # ------------------------------------------------------------------

    async def invite_guest(
        self,
        event_id: UUID,
        actor_id: UUID,
        guest_id: UUID,
        party_size: int,
        note: Optional[str] = None,
    ) -> JoinRequest:
        """
        Host files a pending request for `guest_id`. Same capacity and
        duplicate rules as create_request, but private events accept it.
        """
        return await self._create(event_id, guest_id, party_size, note, invited_by=actor_id)

    async def approve_request(self, request_id: UUID, actor_id: UUID) -> JoinRequest:
        """
        Confirm a pending or waitlisted request.

        Capacity is rechecked without the request's own hold, so approving a
        pending request moves its seats from held to confirmed and leaves
        `available` unchanged. Waitlisted requests hold nothing and need
        `party_size` free seats.
        """
        return await self._host_transition(request_id, actor_id, RequestAction.APPROVE)

    async def decline_request(self, request_id: UUID, actor_id: UUID) -> JoinRequest:
        return await self._host_transition(request_id, actor_id, RequestAction.DECLINE)

    async def waitlist_request(self, request_id: UUID, actor_id: UUID) -> JoinRequest:
        return await self._host_transition(request_id, actor_id, RequestAction.WAITLIST)

    async def extend_hold(self, request_id: UUID, actor_id: UUID, minutes: int = 30) -> JoinRequest:
        """
        Push a live hold out by `minutes`, added to the stored expiry (not to now),
        so repeated extensions compound predictably.
        """
        low = self.settings.HOLD_EXTENSION_MIN_MINUTES
        high = self.settings.HOLD_EXTENSION_MAX_MINUTES
        if isinstance(minutes, bool) or not isinstance(minutes, int) or not low <= minutes <= high:
            raise ValidationError("minutes", minutes, f"Extension must be between {low} and {high} minutes")

        event_id = await self._event_of(request_id)

        def decide(snapshot: EventSnapshot, now: datetime) -> Decision:
            _require_host(snapshot.event, actor_id)
            request = _require_request(snapshot, request_id)
            current = effective_status(request, now)
            if current == RequestStatus.EXPIRED and request.status == RequestStatus.PENDING:
                raise StateError("hold already expired", current_status=current.value, action="extend")
            if current != RequestStatus.PENDING:
                raise StateError(
                    f"Cannot extend the hold of a request that is {current.value}",
                    current_status=current.value,
                    action="extend",
                )
            base = request.hold_expires_at or now
            updated = replace(request, hold_expires_at=base + timedelta(minutes=minutes), updated_at=now)
            return Decision(changes=[updated], result=updated)

        decision = await self.writer.apply(event_id, "extend", decide)
        request = decision.result
        logger.info(
            "join_request_hold_extended",
            request_id=str(request_id),
            actor_id=str(actor_id),
            minutes=minutes,
            hold_expires_at=request.hold_expires_at.isoformat(),
        )
        await self._notify(collaborators.HOLD_EXTENDED, request, decision.event)
        return request

    async def reorder_waitlist(self, request_id: UUID, actor_id: UUID, position: float) -> JoinRequest:
        """Set a waitlisted request's priority. Lower positions are promoted first."""
        if isinstance(position, bool) or not isinstance(position, (int, float)) or not math.isfinite(position):
            raise ValidationError("waitlist_pos", position, "waitlist_pos must be a finite number")

        event_id = await self._event_of(request_id)

        def decide(snapshot: EventSnapshot, now: datetime) -> Decision:
            _require_host(snapshot.event, actor_id)
            request = _require_request(snapshot, request_id)
            current = effective_status(request, now)
            if current != RequestStatus.WAITLISTED:
                raise StateError(
                    f"Cannot reorder a request that is {current.value}",
                    current_status=current.value,
                    action="reorder",
                )
            updated = replace(request, waitlist_pos=float(position), updated_at=now)
            return Decision(changes=[updated], result=updated)

        decision = await self.writer.apply(event_id, "reorder", decide)
        logger.info(
            "join_request_reordered",
            request_id=str(request_id),
            actor_id=str(actor_id),
            waitlist_pos=decision.result.waitlist_pos,
        )
        return decision.result

    async def promote_next(self, event_id: UUID, actor_id: UUID) -> Optional[JoinRequest]:
        """
        Approve the first waitlisted request, by (waitlist_pos, created_at),
        whose party fits the seats available right now. Smaller parties
        further down the list go ahead of one that does not fit.

        Returns None when nothing fits. Only runs when a host asks; freeing
        seats never promotes anyone on its own.
        """

        def decide(snapshot: EventSnapshot, now: datetime) -> Decision:
            _require_host(snapshot.event, actor_id)
            seats = ledger.availability(snapshot.event, snapshot.requests, now)
            candidates = [
                r
                for r in snapshot.requests
                if effective_status(r, now) == RequestStatus.WAITLISTED and r.party_size <= seats.available
            ]
            if not candidates:
                return Decision(result=seats)

            chosen = min(candidates, key=_waitlist_order)
            target = next_status(RequestStatus.WAITLISTED, RequestAction.APPROVE)
            updated = replace(chosen, status=target, waitlist_pos=None, updated_at=now)
            finalized = [expire(r, now) for r in lapsed_holds(snapshot.requests, now)]
            return Decision(
                changes=[updated, *finalized],
                result=updated,
                previous_status=RequestStatus.WAITLISTED,
            )

        decision = await self.writer.apply(event_id, "promote", decide)
        if not decision.changes:
            record_admission("promote", admitted=False)
            logger.info(
                "waitlist_promotion_skipped",
                event_id=str(event_id),
                available=decision.result.available,
            )
            return None

        record_admission("promote", admitted=True)
        return await self._after_transition(decision, RequestAction.APPROVE, actor_id=actor_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _event_of(self, request_id: UUID) -> UUID:
        # event_id never changes, so a plain read outside the atomic section is enough
        request = await self.repository.get_request(request_id)
        if request is None:
            raise NotFoundError("Join request", request_id)
        return request.event_id

    async def _host_transition(self, request_id: UUID, actor_id: UUID, action: RequestAction) -> JoinRequest:
        event_id = await self._event_of(request_id)

        def decide(snapshot: EventSnapshot, now: datetime) -> Decision:
            _require_host(snapshot.event, actor_id)
            request = _require_request(snapshot, request_id)
            current = effective_status(request, now)
            target = next_status(current, action)

            if action == RequestAction.APPROVE:
                seats = ledger.availability(snapshot.event, snapshot.requests, now, exclude=request.id)
                if request.party_size > seats.available:
                    record_admission("approve", admitted=False)
                    logger.warning(
                        "join_request_approval_rejected_no_capacity",
                        request_id=str(request_id),
                        requested=request.party_size,
                        available=seats.available,
                    )
                    raise CapacityError(requested=request.party_size, available=seats.available)

            position = now.timestamp() if target == RequestStatus.WAITLISTED else None
            updated = replace(request, status=target, hold_expires_at=None, waitlist_pos=position, updated_at=now)
            finalized = [expire(r, now) for r in lapsed_holds(snapshot.requests, now) if r.id != request.id]
            return Decision(changes=[updated, *finalized], result=updated, previous_status=current)

        decision = await self.writer.apply(event_id, action.value, decide)
        if action == RequestAction.APPROVE:
            record_admission("approve", admitted=True)
        return await self._after_transition(decision, action, actor_id=actor_id)

    async def _after_transition(self, decision: Decision, action: RequestAction, actor_id: UUID) -> JoinRequest:
        request: JoinRequest = decision.result
        record_transition(decision.previous_status.value, request.status.value)
        logger.info(
            f"join_request_{request.status.value}",
            request_id=str(request.id),
            event_id=str(request.event_id),
            actor_id=str(actor_id),
            party_size=request.party_size,
        )

        for other in decision.changes[1:]:
            holds_finalized.inc()
            record_transition(RequestStatus.PENDING.value, RequestStatus.EXPIRED.value)
            await self._notify(collaborators.HOLD_EXPIRED, other, decision.event)

        if action == RequestAction.APPROVE:
            try:
                await self.participants.add_participant(request)
            except Exception:
                logger.exception("participant_creation_failed", request_id=str(request.id))

        await self._notify(_CHANGE_FOR_ACTION[action], request, decision.event)
        return request

    async def _notify(self, change_type: str, request: JoinRequest, event: EventRecord) -> None:
        try:
            await self.notifier.notify(RequestChange.of(change_type, request, event.host_id))
        except Exception:
            logger.exception("notification_failed", type=change_type, request_id=str(request.id))
