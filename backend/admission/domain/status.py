"""
Join request lifecycle.

    pending    -> approved | declined | waitlisted | expired | cancelled
    waitlisted -> approved | declined

Everything else is terminal. EXPIRE is only ever issued by the system when a
hold lapses; hosts and guests cannot request it.
"""

from enum import Enum

from admission.core.exceptions import StateError


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"
    WAITLISTED = "waitlisted"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class RequestAction(str, Enum):
    APPROVE = "approve"
    DECLINE = "decline"
    WAITLIST = "waitlist"
    CANCEL = "cancel"
    EXPIRE = "expire"


ACTION_TARGETS: dict[RequestAction, RequestStatus] = {
    RequestAction.APPROVE: RequestStatus.APPROVED,
    RequestAction.DECLINE: RequestStatus.DECLINED,
    RequestAction.WAITLIST: RequestStatus.WAITLISTED,
    RequestAction.CANCEL: RequestStatus.CANCELLED,
    RequestAction.EXPIRE: RequestStatus.EXPIRED,
}

TRANSITIONS: dict[RequestStatus, frozenset[RequestStatus]] = {
    RequestStatus.PENDING: frozenset(
        {
            RequestStatus.APPROVED,
            RequestStatus.DECLINED,
            RequestStatus.WAITLISTED,
            RequestStatus.EXPIRED,
            RequestStatus.CANCELLED,
        }
    ),
    RequestStatus.WAITLISTED: frozenset({RequestStatus.APPROVED, RequestStatus.DECLINED}),
    RequestStatus.APPROVED: frozenset(),
    RequestStatus.DECLINED: frozenset(),
    RequestStatus.EXPIRED: frozenset(),
    RequestStatus.CANCELLED: frozenset(),
}


def can_transition(current: RequestStatus, target: RequestStatus) -> bool:
    return target in TRANSITIONS[current]


def next_status(current: RequestStatus, action: RequestAction) -> RequestStatus:
    """Return the status `action` leads to from `current`, or raise StateError."""
    target = ACTION_TARGETS[action]
    if not can_transition(current, target):
        raise StateError(
            f"Cannot {action.value} a request that is {current.value}",
            current_status=current.value,
            action=action.value,
        )
    return target


def is_terminal(status: RequestStatus) -> bool:
    return not TRANSITIONS[status]
