"""
Typed outcomes raised by the admission engine.

Every error carries a stable code, an HTTP status for the API layer, and a
details dict with the numbers a caller needs to render a specific message.
"""

from typing import Any, Optional


class AdmissionError(Exception):
    code = "admission_error"
    status_code = 400

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message, "details": self.details}


class ValidationError(AdmissionError):
    code = "validation_error"
    status_code = 422

    def __init__(self, field: str, value: Any, message: str):
        super().__init__(message, {"field": field, "value": value})
        self.field = field
        self.value = value


class CapacityError(AdmissionError):
    code = "capacity_unavailable"
    status_code = 409

    def __init__(self, requested: int, available: int):
        super().__init__(
            f"Not enough capacity remaining: {available} available, requested {requested}",
            {"requested": requested, "available": available},
        )
        self.requested = requested
        self.available = available


class StateError(AdmissionError):
    code = "invalid_status_transition"
    status_code = 409

    def __init__(self, message: str, current_status: Optional[str] = None, action: Optional[str] = None):
        super().__init__(message, {"current_status": current_status, "action": action})
        self.current_status = current_status
        self.action = action


class DuplicateRequestError(StateError):
    code = "already_requested"


class EventClosedError(StateError):
    code = "event_not_accepting_requests"


class ConcurrencyConflict(AdmissionError):
    code = "concurrency_conflict"
    status_code = 409

    def __init__(self, attempts: int, message: Optional[str] = None):
        super().__init__(
            message or "Request failed due to high demand. Please try again.",
            {"attempts": attempts},
        )
        self.attempts = attempts


class NotFoundError(AdmissionError):
    code = "not_found"
    status_code = 404

    def __init__(self, resource: str, identifier: Any):
        super().__init__(f"{resource} {identifier} not found", {"resource": resource, "id": str(identifier)})
        self.resource = resource
        self.identifier = identifier


class PermissionDeniedError(AdmissionError):
    code = "not_authorized"
    status_code = 403


class LedgerInconsistencyError(AdmissionError):
    """Computed availability went negative: a bug upstream, not a normal outcome."""

    code = "ledger_inconsistency"
    status_code = 500
