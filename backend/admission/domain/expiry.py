"""
Lazy hold expiry.

A pending request whose hold has lapsed is treated as expired everywhere,
whether or not the durable `expired` write has happened yet.
"""

from dataclasses import replace
from datetime import datetime
from typing import Iterable

from admission.domain.models import JoinRequest
from admission.domain.status import RequestStatus


def hold_lapsed(request: JoinRequest, now: datetime) -> bool:
    return (
        request.status == RequestStatus.PENDING
        and request.hold_expires_at is not None
        and now >= request.hold_expires_at
    )


def effective_status(request: JoinRequest, now: datetime) -> RequestStatus:
    if hold_lapsed(request, now):
        return RequestStatus.EXPIRED
    return request.status


def with_effective_status(request: JoinRequest, now: datetime) -> JoinRequest:
    """Copy of `request` as a reader should see it right now."""
    status = effective_status(request, now)
    if status == request.status:
        return request
    return replace(request, status=status, hold_expires_at=None)


def lapsed_holds(requests: Iterable[JoinRequest], now: datetime) -> list[JoinRequest]:
    return [r for r in requests if hold_lapsed(r, now)]


def expire(request: JoinRequest, now: datetime) -> JoinRequest:
    """Durable form of a lapsed hold."""
    return replace(request, status=RequestStatus.EXPIRED, hold_expires_at=None, updated_at=now)
