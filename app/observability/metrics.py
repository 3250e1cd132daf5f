from __future__ import annotations

import logging

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    GCCollector,
    Histogram,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)

from app.errors import InternalError

logger = logging.getLogger(__name__)

HTTP_LABELS = ("method", "route", "status")
HTTP_DURATION_BUCKETS = (0.1, 0.3, 0.5, 0.7, 1, 3, 5, 7, 10)


class MetricsRegistry:
    """Prometheus registry for one app instance.

    Owns its own ``CollectorRegistry`` (not the prometheus_client global), so
    separate app instances never share series. prometheus_client metrics are
    internally locked, which keeps concurrent ``inc``/``observe`` lossless.
    """

    def __init__(self) -> None:
        self.registry = CollectorRegistry()

        ProcessCollector(registry=self.registry)
        PlatformCollector(registry=self.registry)
        GCCollector(registry=self.registry)

        self.http_requests_total = Counter(
            "http_requests_total",
            "Total number of HTTP requests",
            labelnames=HTTP_LABELS,
            registry=self.registry,
        )
        self.http_request_duration_seconds = Histogram(
            "http_request_duration_seconds",
            "Duration of HTTP requests in seconds",
            labelnames=HTTP_LABELS,
            buckets=HTTP_DURATION_BUCKETS,
            registry=self.registry,
        )

    @property
    def content_type(self) -> str:
        return CONTENT_TYPE_LATEST

    def observe_http_request(self, method: str, route: str, status: int, elapsed_seconds: float) -> None:
        labels = {"method": method, "route": route, "status": str(status)}
        self.http_requests_total.labels(**labels).inc()
        self.http_request_duration_seconds.labels(**labels).observe(max(float(elapsed_seconds), 0.0))

    def render(self) -> bytes:
        try:
            return generate_latest(self.registry)
        except Exception as exc:
            logger.exception("metrics.render_failed")
            raise InternalError("Failed to render metrics") from exc
