"""
Prometheus metrics module for Lessonbook.

Service timings come from ``@measure_operation``; reservation and payment
outcome counters are recorded by the booking service and webhook route.
"""

from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Create a custom registry to avoid conflicts with default metrics
REGISTRY = CollectorRegistry()

http_request_duration_seconds = Histogram(
    "lessonbook_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status_code"],
    registry=REGISTRY,
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

http_requests_total = Counter(
    "lessonbook_http_requests_total",
    "Total number of HTTP requests",
    ["method", "endpoint", "status_code"],
    registry=REGISTRY,
)

service_operation_duration_seconds = Histogram(
    "lessonbook_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "lessonbook_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "lessonbook_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

reservations_total = Counter(
    "lessonbook_reservations_total",
    "Reservation attempts by outcome",
    ["outcome"],  # checkout | paid | slot_unavailable | no_offer | payment_error
    registry=REGISTRY,
)

availability_blocks_restored_total = Counter(
    "lessonbook_availability_blocks_restored_total",
    "Atomic blocks reinserted after a cancellation",
    ["reason"],  # student_cancel | payment_failed
    registry=REGISTRY,
)

payment_webhook_events_total = Counter(
    "lessonbook_payment_webhook_events_total",
    "Payment provider webhook events by type and result",
    ["event_type", "result"],  # applied | noop | ignored
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Records and exposes Prometheus metrics."""

    @staticmethod
    def record_http_request(method: str, endpoint: str, duration: float, status_code: int) -> None:
        labels = {"method": method, "endpoint": endpoint, "status_code": str(status_code)}
        http_request_duration_seconds.labels(**labels).observe(duration)
        http_requests_total.labels(**labels).inc()

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """
        Record service operation metrics from @measure_operation decorator.

        Args:
            service: Service name (e.g., 'BookingService')
            operation: Operation/method name (e.g., 'reserve')
            duration: Operation duration in seconds
            status: Operation status ('success' or 'error')
            error_type: Type of error if status is 'error'
        """
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    @staticmethod
    def record_reservation(outcome: str) -> None:
        reservations_total.labels(outcome=outcome).inc()

    @staticmethod
    def record_blocks_restored(reason: str, count: int) -> None:
        if count > 0:
            availability_blocks_restored_total.labels(reason=reason).inc(count)

    @staticmethod
    def record_webhook_event(event_type: str, result: str) -> None:
        payment_webhook_events_total.labels(event_type=event_type, result=result).inc()

    @staticmethod
    def get_metrics() -> bytes:
        """Generate Prometheus metrics in exposition format."""
        return cast(bytes, generate_latest(REGISTRY))

    @staticmethod
    def get_content_type() -> str:
        return cast(str, CONTENT_TYPE_LATEST)


prometheus_metrics = PrometheusMetrics()
