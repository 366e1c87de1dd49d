"""
OpenTelemetry tracing for scrape cycles.

Exporter is selected via ``OTEL_EXPORTER`` (read through ``Settings``):

- ``none``     — tracing disabled (default; the exporter is usually scraped every few seconds)
- ``console``  — prints spans to stdout
- ``otlp``     — sends to any OTLP-compatible backend

Each scrape produces a ``mempool.scrape`` span with ``mempool.fetch`` and
``mempool.parse`` children.
"""
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.resources import Resource
from squid_exporter.config import settings


def _init_tracing() -> None:
    """Initialize the tracer provider with the configured exporter."""
    exporter_type = settings.otel_exporter.lower()

    resource = Resource.create({"service.name": settings.otel_service_name})
    provider = TracerProvider(resource=resource)

    if exporter_type == "otlp":
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
            OTLPSpanExporter,
        )
        from opentelemetry.sdk.trace.export import BatchSpanProcessor

        exporter = OTLPSpanExporter(endpoint=settings.otel_exporter_otlp_endpoint)
        provider.add_span_processor(BatchSpanProcessor(exporter))
    elif exporter_type == "console":
        from opentelemetry.sdk.trace.export import (
            SimpleSpanProcessor,
            ConsoleSpanExporter,
        )

        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
    # "none": provider without processors, spans are dropped

    trace.set_tracer_provider(provider)


def get_tracer(name: str) -> trace.Tracer:
    """Return a tracer for *name*."""
    return trace.get_tracer(name)


# Auto-initialize on import
_init_tracing()
