"""Request status monitoring.

Responses are counted per status class and their latency observed in a
histogram, both held in a Prometheus registry owned by the monitor. The
JSON snapshot is served at `/status` and the text exposition at
`/status/metrics`.
"""

from __future__ import annotations

import time

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware

LATENCY_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)


class StatusMonitor:
    """Per-status-class counters and a latency histogram."""

    content_type = CONTENT_TYPE_LATEST

    def __init__(self, registry: CollectorRegistry | None = None, clock=time.time):
        self.registry = registry or CollectorRegistry()
        self.clock = clock
        self.started_at = clock()
        self.responses = Counter(
            "http_responses",
            "Responses sent, by status class",
            ["status_class"],
            registry=self.registry,
        )
        self.latency = Histogram(
            "http_response_duration_seconds",
            "Time spent producing a response",
            buckets=LATENCY_BUCKETS,
            registry=self.registry,
        )

    def record(self, status_code: int, elapsed_seconds: float) -> None:
        self.responses.labels(status_class=f"{status_code // 100}xx").inc()
        self.latency.observe(elapsed_seconds)

    def _totals(self) -> dict[str, int]:
        totals = {}
        for metric in self.responses.collect():
            for sample in metric.samples:
                if sample.name == "http_responses_total":
                    totals[sample.labels["status_class"]] = int(sample.value)
        return totals

    def snapshot(self) -> dict:
        count = self.registry.get_sample_value("http_response_duration_seconds_count") or 0.0
        total = self.registry.get_sample_value("http_response_duration_seconds_sum") or 0.0
        buckets = {}
        for metric in self.latency.collect():
            for sample in metric.samples:
                if sample.name == "http_response_duration_seconds_bucket":
                    buckets[sample.labels["le"]] = int(sample.value)
        return {
            "uptime_seconds": round(self.clock() - self.started_at, 1),
            "totals": self._totals(),
            "count": int(count),
            "mean_response_ms": round(total / count * 1000, 3) if count else 0.0,
            "latency_buckets": buckets,
        }

    def render(self) -> bytes:
        """Prometheus text exposition of the registry."""
        return generate_latest(self.registry)


class StatusMonitorMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, monitor: StatusMonitor):
        super().__init__(app)
        self.monitor = monitor

    async def dispatch(self, request, call_next):
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            self.monitor.record(500, time.perf_counter() - start)
            raise
        self.monitor.record(response.status_code, time.perf_counter() - start)
        return response
