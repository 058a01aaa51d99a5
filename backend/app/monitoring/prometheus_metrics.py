"""
Prometheus collectors for the Room Rental backend.

Everything registers on a private ``REGISTRY`` so test runs and multiple
app instances in one process never collide with the global default
registry. Collectors fall into three groups: HTTP traffic (fed by
``PrometheusMiddleware``), service timings (fed by
``@BaseService.measure_operation``) and domain counters for OTP handling
and payment reconciliation.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

_HTTP_LABELS = ["method", "endpoint", "status_code"]

http_request_duration_seconds = Histogram(
    "roomrental_http_request_duration_seconds",
    "Wall time spent serving an HTTP request",
    _HTTP_LABELS,
    registry=REGISTRY,
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)
http_requests_total = Counter(
    "roomrental_http_requests_total",
    "HTTP requests served, by normalized endpoint",
    _HTTP_LABELS,
    registry=REGISTRY,
)
http_requests_in_progress = Gauge(
    "roomrental_http_requests_in_progress",
    "HTTP requests currently in flight",
    ["method", "endpoint"],
    registry=REGISTRY,
)

service_operation_duration_seconds = Histogram(
    "roomrental_service_operation_duration_seconds",
    "Duration of measured service operations",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)
service_operations_total = Counter(
    "roomrental_service_operations_total",
    "Measured service operations by result",
    ["service", "operation", "status"],
    registry=REGISTRY,
)
errors_total = Counter(
    "roomrental_errors_total",
    "Exceptions raised out of measured service operations",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

# event: issue | verify
otp_events_total = Counter(
    "roomrental_otp_events_total",
    "Phone verification events",
    ["event", "outcome"],
    registry=REGISTRY,
)
# outcome: applied | duplicate | stale | ignored | unknown_booking
payment_reconciliations_total = Counter(
    "roomrental_payment_reconciliations_total",
    "Gateway events seen by payment reconciliation",
    ["outcome"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Static facade so callers never touch label plumbing directly."""

    @staticmethod
    @contextmanager
    def http_in_flight(method: str, endpoint: str) -> Iterator[None]:
        gauge = http_requests_in_progress.labels(method=method, endpoint=endpoint)
        gauge.inc()
        try:
            yield
        finally:
            gauge.dec()

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
        Record one measured call.

        ``status`` is ``"success"`` or ``"error"``; ``error_type`` is the
        exception class name and only counted for errors.
        """
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    @staticmethod
    def record_otp_event(event: str, outcome: str) -> None:
        otp_events_total.labels(event=event, outcome=outcome).inc()

    @staticmethod
    def record_reconciliation(outcome: str) -> None:
        payment_reconciliations_total.labels(outcome=outcome).inc()

    @staticmethod
    def exposition() -> bytes:
        return generate_latest(REGISTRY)

    content_type = CONTENT_TYPE_LATEST


prometheus_metrics = PrometheusMetrics()
