from __future__ import annotations

from dataclasses import dataclass

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST

from app.laptrack.core.config import settings


@dataclass
class MetricsSnapshot:
    content: bytes
    content_type: str


class Metrics:
    def __init__(self) -> None:
        self.enabled = bool(settings.METRICS_ENABLED)
        self._registry = None
        if self.enabled:
            self._initialize_registry()

    def _initialize_registry(self) -> None:
        self._registry = CollectorRegistry()
        self._http_requests_total = Counter(
            "http_requests_total",
            "HTTP requests by route/method/status.",
            ["route", "method", "status"],
            registry=self._registry,
        )
        self._http_request_duration_ms = Histogram(
            "http_request_duration_ms",
            "HTTP request latency in milliseconds.",
            ["route", "method", "status"],
            buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000),
            registry=self._registry,
        )
        self._shipment_status_transitions_total = Counter(
            "shipment_status_transitions_total",
            "Applied shipment status transitions.",
            ["shipment_type", "status"],
            registry=self._registry,
        )
        self._laptop_status_sync_total = Counter(
            "laptop_status_sync_total",
            "Laptops whose status followed a shipment status change.",
            ["shipment_type"],
            registry=self._registry,
        )
        self._notification_failures_total = Counter(
            "notification_failures_total",
            "Notifications that failed to send.",
            ["kind"],
            registry=self._registry,
        )
        self._audit_write_failures_total = Counter(
            "audit_write_failures_total",
            "Audit log writes that failed.",
            registry=self._registry,
        )
        self._lock_wait_timeout_total = Counter(
            "lock_wait_timeout_total",
            "Lock wait timeout occurrences.",
            registry=self._registry,
        )

    def reset(self) -> None:
        if not self.enabled:
            return
        self._initialize_registry()

    def record_http_request(self, *, route: str, method: str, status_code: int, latency_ms: float) -> None:
        if not self.enabled:
            return
        labels = {"route": route, "method": method, "status": str(status_code)}
        self._http_requests_total.labels(**labels).inc()
        self._http_request_duration_ms.labels(**labels).observe(latency_ms)

    def record_status_transition(self, *, shipment_type: str, status: str) -> None:
        if not self.enabled:
            return
        self._shipment_status_transitions_total.labels(shipment_type=shipment_type, status=status).inc()

    def record_laptop_sync(self, *, shipment_type: str, count: int) -> None:
        if not self.enabled or count <= 0:
            return
        self._laptop_status_sync_total.labels(shipment_type=shipment_type).inc(count)

    def increment_notification_failure(self, kind: str) -> None:
        if not self.enabled:
            return
        self._notification_failures_total.labels(kind=kind).inc()

    def increment_audit_failure(self) -> None:
        if not self.enabled:
            return
        self._audit_write_failures_total.inc()

    def increment_lock_wait_timeout(self) -> None:
        if not self.enabled:
            return
        self._lock_wait_timeout_total.inc()

    def render(self) -> MetricsSnapshot:
        if not self.enabled:
            return MetricsSnapshot(content=b"metrics_disabled\n", content_type="text/plain")
        return MetricsSnapshot(content=generate_latest(self._registry), content_type=CONTENT_TYPE_LATEST)


metrics = Metrics()
