"""
Request logging for the exporter's HTTP surface.

``RequestLoggingMiddleware`` emits a structured log line and records a
Prometheus histogram for every request. ``/metrics`` polling is timed but
not logged, since Prometheus hits it on every scrape interval.
"""
import time
import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from prometheus_client import Histogram

logger = structlog.get_logger(__name__)

HTTP_REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    labelnames=["method", "path", "status"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

QUIET_PATHS = frozenset({"/metrics"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request/response and record latency in Prometheus."""

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()

        response = await call_next(request)

        duration = time.perf_counter() - start
        path = request.url.path
        method = request.method
        status = response.status_code

        HTTP_REQUEST_DURATION.labels(
            method=method,
            path=path,
            status=str(status),
        ).observe(duration)

        if path not in QUIET_PATHS:
            logger.info(
                "http_request",
                method=method,
                path=path,
                status=status,
                duration_ms=round(duration * 1000, 2),
                client=request.client.host if request.client else "unknown",
            )

        return response
