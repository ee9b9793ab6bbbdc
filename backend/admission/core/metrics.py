"""
Prometheus metrics for the admission engine.
Exposed at /metrics.
"""

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest

# Admission decisions on create/approve/promote
admission_decisions = Counter(
    "join_admission_decisions_total",
    "Capacity admission decisions",
    ["operation", "result"],  # create/approve/promote, admitted/rejected
)

admission_latency = Histogram(
    "join_admission_operation_latency_seconds",
    "Latency of capacity-affecting operations",
    ["operation"],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)

status_transitions = Counter(
    "join_request_transitions_total",
    "Join request status transitions",
    ["from_status", "to_status"],
)

# Concurrency
write_retries = Counter(
    "join_request_write_retries_total",
    "Request-set writes retried after a version conflict",
)

concurrency_conflicts = Counter(
    "join_request_concurrency_conflicts_total",
    "Operations that exhausted their retry budget",
)

gate_wait = Histogram(
    "join_admission_gate_wait_seconds",
    "Time spent waiting for the per-event gate",
    ["strategy"],
    buckets=[0.0001, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 2.0],
)

# Holds
holds_finalized = Counter(
    "join_request_holds_finalized_total",
    "Pending holds durably moved to expired",
)

last_sweep_finalized = Gauge(
    "join_request_last_sweep_finalized",
    "Holds finalized by the most recent background sweep",
)

sweep_event_failures = Counter(
    "join_request_sweep_event_failures_total",
    "Events skipped by a finalize-all pass because their finalization failed",
    ["error"],
)

redis_lock_errors = Counter(
    "redis_lock_errors_total",
    "Redis lock acquisition failures",
)


def metrics_endpoint() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


def record_admission(operation: str, admitted: bool):
    """Record a capacity decision for create, approve or promote."""
    result = "admitted" if admitted else "rejected"
    admission_decisions.labels(operation=operation, result=result).inc()


def record_transition(from_status: str, to_status: str):
    status_transitions.labels(from_status=from_status, to_status=to_status).inc()
