"""Prometheus metrics for record traffic, access denials and storage health"""

from prometheus_client import Counter, Histogram

# Record metrics
record_operations_counter = Counter(
    "finboard_record_operations_total",
    "Record operations completed",
    ["collection", "operation"],  # create | list | get | update | delete | contribute
)

access_denied_counter = Counter(
    "finboard_access_denied_total",
    "Requests refused by ownership or role checks",
    ["reason"],  # not_owner | not_admin | unauthenticated | auth_unavailable
)

# Storage metrics
persistence_failures_counter = Counter(
    "finboard_persistence_failures_total",
    "Storage operations that raised",
    ["collection"],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_operation(collection: str, operation: str) -> None:
    """Count a completed record operation"""
    record_operations_counter.labels(collection=collection, operation=operation).inc()


def record_denial(reason: str) -> None:
    access_denied_counter.labels(reason=reason).inc()
