import json
import threading
from contextlib import asynccontextmanager
import uvicorn
from fastapi import FastAPI, Response
from prometheus_client import REGISTRY, generate_latest, CONTENT_TYPE_LATEST
from squid_exporter.config import settings
from squid_exporter.errors import FetchError
from squid_exporter.middleware import RequestLoggingMiddleware
from squid_exporter.logging_config import get_logger

logger = get_logger(__name__)

# Collector registered at startup; handlers fall back to building it on demand
_collector = None
_collector_lock = threading.Lock()


def build_collector():
    """Build a MemPoolCollector for the proxy configured via SQUID_* env vars."""
    from squid_exporter.collector import MemPoolCollector
    from squid_exporter.sources import squid_source

    return MemPoolCollector(source=squid_source())


def _get_collector():
    """Factory: build the collector once and register it on the default registry."""
    global _collector
    with _collector_lock:
        if _collector is None:
            _collector = build_collector()
            REGISTRY.register(_collector)
            logger.info("collector_registered", url=_collector.source.url)
    return _collector


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Register the collector before the first scrape arrives."""
    _get_collector()
    yield


app = FastAPI(
    title="Squid Memory Pool Exporter",
    version="0.1.0",
    description=(
        "Scrapes the Squid cache manager `mem` report and republishes per-worker "
        "memory-pool figures as Prometheus gauges."
    ),
    license_info={
        "name": "MIT",
    },
    lifespan=lifespan,
)
app.add_middleware(RequestLoggingMiddleware)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.get("/", tags=["General"], summary="Exporter Landing")
async def root():
    """Returns a pointer to the metrics endpoint."""
    return {
        "message": "Squid Memory Pool Exporter",
        "metrics": "/metrics",
        "target": settings.mem_report_url,
    }


@app.get(
    "/health",
    tags=["Operations"],
    summary="Health Check",
    responses={
        200: {
            "description": "Cache manager reachable",
            "content": {
                "application/json": {
                    "example": {"status": "healthy", "checks": {"squid": "ok"}}
                }
            },
        },
        503: {
            "description": "Cache manager unreachable",
            "content": {
                "application/json": {
                    "example": {
                        "status": "degraded",
                        "checks": {"squid": "<urlopen error [Errno 111] Connection refused>"},
                    }
                }
            },
        },
    },
)
def health():
    """
    Readiness probe.

    - **squid**: opens the `mem` report once and closes it without parsing.

    Returns HTTP 200 when the report is reachable, HTTP 503 otherwise.
    """
    source = _get_collector().source
    try:
        with source.fetch():
            pass
        checks = {"squid": "ok"}
        all_ok = True
    except FetchError as e:
        checks = {"squid": str(e.cause)[:120]}
        all_ok = False

    return Response(
        content=json.dumps({
            "status": "healthy" if all_ok else "degraded",
            "checks": checks,
        }),
        media_type="application/json",
        status_code=200 if all_ok else 503,
    )


@app.get(
    "/metrics",
    tags=["Operations"],
    summary="Prometheus Metrics",
    response_description="Prometheus text-format metrics",
)
def metrics():
    """Runs one scrape cycle against Squid and renders the default registry."""
    _get_collector()
    return Response(
        content=generate_latest(REGISTRY),
        media_type=CONTENT_TYPE_LATEST,
    )


def run() -> None:
    """Console entry point: serve the exporter with uvicorn."""
    logger.info("exporter_starting", port=settings.app_port, target=settings.mem_report_url)
    uvicorn.run(app, host="0.0.0.0", port=settings.app_port, log_config=None)


if __name__ == "__main__":
    run()
