"""
Join request endpoints: host decisions, guest cancellation, hold extension,
waitlist reordering.
"""

from uuid import UUID

from fastapi import APIRouter, Depends

from admission.api.deps import get_actor_id, get_admission_service, get_query
from admission.schemas.join_request import HoldExtension, JoinRequestResponse, WaitlistReorder
from admission.services.admission_service import AdmissionService
from admission.services.query_service import AvailabilityQuery

router = APIRouter(prefix="/requests", tags=["Join Requests"])


@router.get("/mine", response_model=list[JoinRequestResponse])
async def list_my_requests(
    actor_id: UUID = Depends(get_actor_id),
    query: AvailabilityQuery = Depends(get_query),
):
    """All of the caller's requests across events, newest first."""
    return await query.list_my_requests(actor_id)


@router.get("/{request_id}", response_model=JoinRequestResponse)
async def get_join_request(
    request_id: UUID,
    actor_id: UUID = Depends(get_actor_id),
    query: AvailabilityQuery = Depends(get_query),
):
    """Visible to the requester and the event host."""
    return await query.get_request(request_id, actor_id)


@router.patch("/{request_id}/approve", response_model=JoinRequestResponse)
async def approve_join_request(
    request_id: UUID,
    actor_id: UUID = Depends(get_actor_id),
    service: AdmissionService = Depends(get_admission_service),
):
    """Host approves a pending or waitlisted request. 409 if capacity ran out."""
    return await service.approve_request(request_id, actor_id)


@router.patch("/{request_id}/decline", response_model=JoinRequestResponse)
async def decline_join_request(
    request_id: UUID,
    actor_id: UUID = Depends(get_actor_id),
    service: AdmissionService = Depends(get_admission_service),
):
    return await service.decline_request(request_id, actor_id)


@router.patch("/{request_id}/waitlist", response_model=JoinRequestResponse)
async def waitlist_join_request(
    request_id: UUID,
    actor_id: UUID = Depends(get_actor_id),
    service: AdmissionService = Depends(get_admission_service),
):
    return await service.waitlist_request(request_id, actor_id)


@router.patch("/{request_id}/cancel", response_model=JoinRequestResponse)
async def cancel_join_request(
    request_id: UUID,
    actor_id: UUID = Depends(get_actor_id),
    service: AdmissionService = Depends(get_admission_service),
):
    """Requester withdraws a pending request. 409 once the hold has lapsed."""
    return await service.cancel_request(request_id, actor_id)


@router.patch("/{request_id}/extend", response_model=JoinRequestResponse)
async def extend_join_request_hold(
    request_id: UUID,
    extension: HoldExtension,
    actor_id: UUID = Depends(get_actor_id),
    service: AdmissionService = Depends(get_admission_service),
):
    """Host extends a live hold; minutes are added to the current expiry."""
    return await service.extend_hold(request_id, actor_id, extension.minutes)


@router.patch("/{request_id}/reorder", response_model=JoinRequestResponse)
async def reorder_waitlisted_request(
    request_id: UUID,
    reorder: WaitlistReorder,
    actor_id: UUID = Depends(get_actor_id),
    service: AdmissionService = Depends(get_admission_service),
):
    """Host sets a waitlisted request's priority; lower goes first on promotion."""
    return await service.reorder_waitlist(request_id, actor_id, reorder.waitlist_pos)
