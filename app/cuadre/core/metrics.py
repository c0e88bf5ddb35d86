from __future__ import annotations

from dataclasses import dataclass

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST

from app.cuadre.core.config import settings

LATENCY_BUCKETS_MS = (5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000)
REQUEST_LABELS = ("route", "method", "status")


@dataclass
class MetricsSnapshot:
    content: bytes
    content_type: str


class Metrics:
    """Process-wide Prometheus collectors.

    With ``METRICS_ENABLED`` off nothing is registered and every recording
    method returns immediately.
    """

    def __init__(self, enabled: bool | None = None) -> None:
        self.enabled = bool(settings.METRICS_ENABLED if enabled is None else enabled)
        self._registry: CollectorRegistry | None = None
        if self.enabled:
            self._build()

    def _build(self) -> None:
        registry = CollectorRegistry()
        self._requests = Counter(
            "http_requests_total",
            "HTTP requests by route/method/status.",
            REQUEST_LABELS,
            registry=registry,
        )
        self._latency = Histogram(
            "http_request_duration_ms",
            "HTTP request latency in milliseconds.",
            REQUEST_LABELS,
            buckets=LATENCY_BUCKETS_MS,
            registry=registry,
        )
        self._lock_timeouts = Counter("lock_wait_timeout_total", "Lock wait timeout occurrences.", registry=registry)
        self._audit_failures = Counter(
            "audit_write_failures_total",
            "Audit entries that could not be written.",
            ["action"],
            registry=registry,
        )
        self._duplicates = Counter(
            "duplicate_session_total",
            "Cash session writes rejected for an occupied branch/shift/day slot.",
            ["source"],
            registry=registry,
        )
        self._violations = Counter(
            "invariants_violation_total",
            "Integrity scan findings by check.",
            ["check_id"],
            registry=registry,
        )
        self._registry = registry

    def reset(self) -> None:
        if self.enabled:
            self._build()

    def record_http_request(self, *, route: str, method: str, status_code: int, latency_ms: float) -> None:
        if not self.enabled:
            return
        labels = (route, method, str(status_code))
        self._requests.labels(*labels).inc()
        self._latency.labels(*labels).observe(latency_ms)

    def increment_lock_wait_timeout(self) -> None:
        if self.enabled:
            self._lock_timeouts.inc()

    def increment_audit_write_failure(self, action: str) -> None:
        if self.enabled:
            self._audit_failures.labels(action=action).inc()

    def increment_duplicate_session(self, source: str) -> None:
        if self.enabled:
            self._duplicates.labels(source=source).inc()

    def increment_invariant_violation(self, check_id: str, count: int = 1) -> None:
        if self.enabled:
            self._violations.labels(check_id=check_id).inc(count)

    def render(self) -> MetricsSnapshot:
        if not self.enabled:
            return MetricsSnapshot(content=b"metrics_disabled\n", content_type="text/plain")
        return MetricsSnapshot(content=generate_latest(self._registry), content_type=CONTENT_TYPE_LATEST)


metrics = Metrics()
