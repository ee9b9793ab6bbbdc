"""
Event-scoped endpoints: availability, creating and listing join requests,
host invites, waitlist promotion, hold finalization, and the event sync hook.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from admission.api.deps import (
    get_actor_id,
    get_admission_service,
    get_clock,
    get_expiry_service,
    get_query,
    get_repository,
)
from admission.core.clock import Clock
from admission.domain.models import EventRecord
from admission.domain.status import RequestStatus
from admission.repositories.base import JoinRequestRepository
from admission.schemas.event import AvailabilityResponse, EventResponse, EventSync
from admission.schemas.join_request import (
    FinalizeResponse,
    JoinRequestCreate,
    JoinRequestInvite,
    JoinRequestPage,
    JoinRequestResponse,
    PromotionResponse,
)
from admission.services.admission_service import AdmissionService
from admission.services.event_service import sync_event
from admission.services.expiry_service import HoldExpiryService
from admission.services.query_service import AvailabilityQuery

router = APIRouter(prefix="/events", tags=["Events"])


@router.put("/{event_id}", response_model=EventResponse)
async def sync_event_endpoint(
    event_id: UUID,
    event_data: EventSync,
    repository: JoinRequestRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
):
    """
    Register or update an event's capacity and status.
    Called by the event lifecycle service; refuses to shrink capacity below
    the seats already confirmed or held.
    """
    event = EventRecord(
        id=event_id,
        host_id=event_data.host_id,
        capacity_total=event_data.capacity_total,
        is_public=event_data.is_public,
        status=event_data.status,
    )
    return await sync_event(repository, event, clock.now())


@router.get("/{event_id}/availability", response_model=AvailabilityResponse)
async def get_availability(
    event_id: UUID,
    query: AvailabilityQuery = Depends(get_query),
):
    """Seats for the event right now. Read-only: never finalizes holds."""
    return await query.availability(event_id)


@router.post("/{event_id}/requests", response_model=JoinRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_join_request(
    event_id: UUID,
    request_data: JoinRequestCreate,
    actor_id: UUID = Depends(get_actor_id),
    service: AdmissionService = Depends(get_admission_service),
):
    """
    Ask to join an event.

    Holds party_size seats for the hold TTL (30 minutes by default) while the
    host decides. Returns 409 if there is not enough capacity left.
    """
    return await service.create_request(event_id, actor_id, request_data.party_size, request_data.note)


@router.post("/{event_id}/invites", response_model=JoinRequestResponse, status_code=status.HTTP_201_CREATED)
async def invite_guest(
    event_id: UUID,
    invite: JoinRequestInvite,
    actor_id: UUID = Depends(get_actor_id),
    service: AdmissionService = Depends(get_admission_service),
):
    """Host files a request for a guest. The only way into a private event."""
    return await service.invite_guest(event_id, actor_id, invite.requester_id, invite.party_size, invite.note)


@router.get("/{event_id}/requests", response_model=JoinRequestPage)
async def list_join_requests(
    event_id: UUID,
    status_filter: Optional[RequestStatus] = Query(None, alias="status"),
    limit: int = Query(25, ge=1, le=100),
    offset: int = Query(0, ge=0),
    actor_id: UUID = Depends(get_actor_id),
    query: AvailabilityQuery = Depends(get_query),
):
    """Host-only, newest first. Lapsed holds are listed as expired."""
    page = await query.list_requests(event_id, actor_id, status=status_filter, limit=limit, offset=offset)
    return JoinRequestPage(
        data=[JoinRequestResponse.model_validate(r) for r in page.items],
        total_count=page.total_count,
        next_offset=page.next_offset,
        limit=page.limit,
        offset=page.offset,
    )


@router.post("/{event_id}/requests/finalize-expired", response_model=FinalizeResponse)
async def finalize_expired_holds(
    event_id: UUID,
    service: HoldExpiryService = Depends(get_expiry_service),
):
    """Scheduler hook: durably mark lapsed holds as expired. Safe to call repeatedly."""
    finalized = await service.finalize_expired_holds(event_id)
    return FinalizeResponse(event_id=event_id, finalized=len(finalized))


@router.post("/{event_id}/requests/promote", response_model=PromotionResponse)
async def promote_from_waitlist(
    event_id: UUID,
    actor_id: UUID = Depends(get_actor_id),
    service: AdmissionService = Depends(get_admission_service),
):
    """Host approves the highest-priority waitlisted request that fits. moved is 0 when none does."""
    promoted = await service.promote_next(event_id, actor_id)
    return PromotionResponse(
        event_id=event_id,
        moved=1 if promoted else 0,
        request=JoinRequestResponse.model_validate(promoted) if promoted else None,
    )
