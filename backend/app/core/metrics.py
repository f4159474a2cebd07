"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Reservation metrics
reservation_attempts = Counter(
    'reservation_attempts_total',
    'Total seat reservation attempts',
    ['result']  # reserved, already_reserved, invalid_seat, not_found
)

reservation_cancellations = Counter(
    'reservation_cancellations_total',
    'Reservation cancellation attempts',
    ['result']  # cancelled, conflict, forbidden, not_found
)

# Optimistic concurrency metrics
version_conflicts = Counter(
    'version_conflicts_total',
    'Conditional writes rejected because the expected version was stale',
    ['entity']
)

storage_retries = Counter(
    'storage_retry_attempts_total',
    'Retries caused by transient storage faults (lock timeouts, deadlocks)'
)

storage_exhausted = Counter(
    'storage_retries_exhausted_total',
    'Operations abandoned after exhausting transient-fault retries'
)

store_operation_latency = Histogram(
    'store_operation_latency_seconds',
    'Versioned store operation latency',
    ['operation'],  # get, insert, update, delete
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_reservation_attempt(result: str):
    """Result: reserved, already_reserved, invalid_seat, not_found"""
    reservation_attempts.labels(result=result).inc()


def record_cancellation(result: str):
    reservation_cancellations.labels(result=result).inc()


def record_version_conflict(entity: str):
    version_conflicts.labels(entity=entity).inc()


def record_cache_operation(operation: str, hit: bool):
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
