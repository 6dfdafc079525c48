"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at the /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Enrollment metrics
enroll_attempts = Counter(
    'eventbook_enroll_attempts_total',
    'Total enrollment attempts',
    ['outcome']  # confirmed, not_found, conflict, capacity_exceeded, store_unavailable
)

enroll_latency = Histogram(
    'eventbook_enroll_latency_seconds',
    'Enrollment latency inside the booking manager',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Cancellation metrics
cancel_attempts = Counter(
    'eventbook_cancel_attempts_total',
    'Total cancellation attempts',
    ['outcome']  # cancelled, not_found, already_cancelled, cancellation_window_closed
)

# Cache metrics
cache_operations = Counter(
    'eventbook_cache_operations_total',
    'Event list cache operations',
    ['operation', 'result']  # get/set/invalidate, hit/miss/error/ok
)


def metrics_endpoint() -> Response:
    """Render all registered metrics in the Prometheus text format."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_enroll(outcome: str):
    enroll_attempts.labels(outcome=outcome).inc()


def record_cancel(outcome: str):
    cancel_attempts.labels(outcome=outcome).inc()


def record_cache_operation(operation: str, result: str):
    cache_operations.labels(operation=operation, result=result).inc()
