"""
Tests for read-only views: availability, host listings, a guest's own requests.
"""

from uuid import uuid4

import pytest

from admission.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from admission.domain.status import RequestStatus


@pytest.mark.asyncio
async def test_availability_of_unknown_event(query):
    with pytest.raises(NotFoundError):
        await query.availability(uuid4())


@pytest.mark.asyncio
async def test_reading_never_finalizes(service, query, repository, event, host_id, clock):
    request = await service.create_request(event.id, uuid4(), 2)
    clock.advance(hours=2)
    saves = repository.save_calls

    await query.availability(event.id)
    await query.list_requests(event.id, host_id)
    await query.get_request(request.id, host_id)

    assert repository.save_calls == saves
    assert (await repository.get_request(request.id)).status == RequestStatus.PENDING


@pytest.mark.asyncio
async def test_list_is_newest_first_and_paginated(service, query, event, host_id, clock):
    created = []
    for _ in range(5):
        created.append(await service.create_request(event.id, uuid4(), 1))
        clock.advance(minutes=1)

    first = await query.list_requests(event.id, host_id, limit=2)
    last = await query.list_requests(event.id, host_id, limit=2, offset=4)

    assert [r.id for r in first.items] == [created[4].id, created[3].id]
    assert first.total_count == 5
    assert first.next_offset == 2
    assert [r.id for r in last.items] == [created[0].id]
    assert last.next_offset is None


@pytest.mark.asyncio
async def test_list_filters_on_effective_status(service, query, event, host_id, clock):
    stale = await service.create_request(event.id, uuid4(), 1)
    clock.advance(minutes=25)
    live = await service.create_request(event.id, uuid4(), 1)
    approved = await service.create_request(event.id, uuid4(), 1)
    await service.approve_request(approved.id, host_id)
    clock.advance(minutes=10)

    pending = await query.list_requests(event.id, host_id, status=RequestStatus.PENDING)
    expired = await query.list_requests(event.id, host_id, status=RequestStatus.EXPIRED)
    everything = await query.list_requests(event.id, host_id)

    assert [r.id for r in pending.items] == [live.id]
    assert [r.id for r in expired.items] == [stale.id]
    assert expired.items[0].status == RequestStatus.EXPIRED
    assert expired.items[0].hold_expires_at is None
    assert everything.total_count == 3


@pytest.mark.asyncio
@pytest.mark.parametrize("limit,offset", [(0, 0), (101, 0), (10, -1)])
async def test_list_rejects_bad_paging(query, event, host_id, limit, offset):
    with pytest.raises(ValidationError):
        await query.list_requests(event.id, host_id, limit=limit, offset=offset)


@pytest.mark.asyncio
async def test_list_is_host_only(query, event):
    with pytest.raises(PermissionDeniedError):
        await query.list_requests(event.id, uuid4())


@pytest.mark.asyncio
async def test_get_request_visible_to_requester_and_host_only(service, query, event, host_id):
    request = await service.create_request(event.id, uuid4(), 1)

    assert (await query.get_request(request.id, request.requester_id)).id == request.id
    assert (await query.get_request(request.id, host_id)).id == request.id
    with pytest.raises(PermissionDeniedError):
        await query.get_request(request.id, uuid4())
    with pytest.raises(NotFoundError):
        await query.get_request(uuid4(), host_id)


@pytest.mark.asyncio
async def test_my_requests_span_events(service, query, make_event, clock):
    guest = uuid4()
    first = await make_event(capacity=5)
    second = await make_event(capacity=5)
    older = await service.create_request(first.id, guest, 1)
    clock.advance(minutes=40)
    newer = await service.create_request(second.id, guest, 2)
    await service.create_request(second.id, uuid4(), 1)

    mine = await query.list_my_requests(guest)

    assert [r.id for r in mine] == [newer.id, older.id]
    assert mine[1].status == RequestStatus.EXPIRED
