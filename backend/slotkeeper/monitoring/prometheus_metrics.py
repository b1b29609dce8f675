"""
Prometheus metrics for slotkeeper.

Service timings are fed by ``@BaseService.measure_operation``; booking and
compensation outcomes are counted by the services that produce them.
"""

from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Custom registry so tests and multiple app instances do not collide with defaults
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "slotkeeper_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "slotkeeper_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "slotkeeper_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

booking_attempts_total = Counter(
    "slotkeeper_booking_attempts_total",
    "Booking attempts by final state",
    ["outcome"],  # committed | conflict | invalid
    registry=REGISTRY,
)

payment_compensations_total = Counter(
    "slotkeeper_payment_compensations_total",
    "Refunds issued after a paid confirmation lost its slot",
    ["result"],  # refunded | refund_failed
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Manages Prometheus metrics collection and exposure."""

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
            operation: Operation/method name (e.g., 'create_booking')
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
    def inc_booking_attempt(outcome: str) -> None:
        booking_attempts_total.labels(outcome=outcome).inc()

    @staticmethod
    def inc_payment_compensation(result: str) -> None:
        payment_compensations_total.labels(result=result).inc()

    @staticmethod
    def get_metrics() -> bytes:
        """Metrics in Prometheus text exposition format."""
        return cast(bytes, generate_latest(REGISTRY))

    @staticmethod
    def get_content_type() -> str:
        return cast(str, CONTENT_TYPE_LATEST)


prometheus_metrics = PrometheusMetrics()
