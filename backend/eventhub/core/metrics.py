"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_attempts = Counter(
    'eventhub_booking_attempts_total',
    'Total booking attempts',
    ['status']  # success, sold_out, not_found, invalid, transient, conflict, error
)

booking_latency = Histogram(
    'eventhub_booking_latency_seconds',
    'Time spent inside the booking transaction',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

seats_booked = Counter(
    'eventhub_seats_booked_total',
    'Seats taken from inventory by confirmed bookings'
)

booking_cancellations = Counter(
    'eventhub_booking_cancellations_total',
    'Booking cancellations',
    ['cancelled_by']  # user, organizer, admin
)

seats_released = Counter(
    'eventhub_seats_released_total',
    'Seats returned to inventory by cancellations'
)

# Moderation metrics
moderation_decisions = Counter(
    'eventhub_moderation_decisions_total',
    'Admin moderation decisions',
    ['decision']  # approved, rejected
)

# Cache metrics
cache_operations = Counter(
    'eventhub_cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set/invalidate, hit/miss/ok/error
)


def metrics_endpoint() -> Response:
    """
    Prometheus metrics endpoint.

    Usage:
        @app.get("/metrics")
        def metrics():
            return metrics_endpoint()
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


# Convenience functions for instrumentation
def record_booking_attempt(status: str):
    """Record booking attempt. Status: success, sold_out, not_found, invalid, transient, conflict, error"""
    booking_attempts.labels(status=status).inc()


def record_cancellation(cancelled_by: str, seats: int):
    booking_cancellations.labels(cancelled_by=cancelled_by).inc()
    seats_released.inc(seats)


def record_moderation(decision: str):
    moderation_decisions.labels(decision=decision).inc()


def record_cache_operation(operation: str, result: str):
    """Record cache operation."""
    cache_operations.labels(operation=operation, result=result).inc()
