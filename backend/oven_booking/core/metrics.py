"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

booking_operations = Counter(
    'booking_operations_total',
    'Booking engine operations by outcome',
    ['operation', 'outcome']  # outcome: success, error, or a lowercased rejection code
)

booking_operation_latency = Histogram(
    'booking_operation_latency_seconds',
    'Booking engine operation latency',
    ['operation'],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

maintenance_auto_cancelled = Counter(
    'maintenance_auto_cancelled_total',
    'Bookings auto-cancelled because their oven went into maintenance'
)

auto_completed_bookings = Counter(
    'auto_completed_bookings_total',
    'Bookings completed by the time-driven sweep'
)


def metrics_endpoint() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_operation(operation: str, outcome: str):
    booking_operations.labels(operation=operation, outcome=outcome).inc()
