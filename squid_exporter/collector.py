"""
MemPoolCollector — republishes Squid memory-pool figures as Prometheus gauges.

Every ``collect()`` call runs one scrape cycle:
    1. Fetch — GET the cache manager ``mem`` report
    2. Parse — stream ``kid`` rows through ``MemReportParser``
    3. Map   — set both gauges for each record (last write wins)
    4. Yield — hand both gauge families to the registry

A failed fetch aborts the cycle without touching the gauges; values from
earlier cycles are still yielded. Nothing raised inside a cycle reaches the
registry.

Wiring
------

.. code-block:: python

    from prometheus_client import REGISTRY
    from squid_exporter.collector import MemPoolCollector
    from squid_exporter.sources import MemReportSource

    REGISTRY.register(MemPoolCollector(MemReportSource("proxy-1", 3128, timeout=5)))
"""
import time
from typing import Iterable
from prometheus_client import Gauge
from prometheus_client.metrics_core import Metric
from squid_exporter.errors import FetchError
from squid_exporter.interfaces import ReportSource
from squid_exporter.metrics import (
    MEMPOOL_CHUNKS,
    MEMPOOL_OBJ_SIZE,
    RECORDS_TOTAL,
    SCRAPE_DURATION,
    SCRAPES_TOTAL,
)
from squid_exporter.parsers import MemPoolRecord, MemReportParser
from squid_exporter.logging_config import get_logger
from squid_exporter.tracing import get_tracer

logger = get_logger(__name__)
tracer = get_tracer(__name__)

KB = 1024.0


class MemPoolCollector:
    """
    Custom collector for one Squid instance.

    The gauges default to the process-wide pair from ``squid_exporter.metrics``.
    A registry accepts only one collector over that pair; a second registration
    is rejected as duplicated timeseries. Pass private gauges to publish a
    second proxy into a separate registry.
    """

    def __init__(
        self,
        source: ReportSource,
        obj_size: Gauge | None = None,
        chunks: Gauge | None = None,
        parser: MemReportParser | None = None,
    ) -> None:
        self.source = source
        self.obj_size = obj_size if obj_size is not None else MEMPOOL_OBJ_SIZE
        self.chunks = chunks if chunks is not None else MEMPOOL_CHUNKS
        self.parser = parser or MemReportParser()

    def describe(self) -> Iterable[Metric]:
        """Static descriptors; no scrape is performed."""
        yield from self.obj_size.describe()
        yield from self.chunks.describe()

    def collect(self) -> Iterable[Metric]:
        self.scrape()
        yield from self.obj_size.collect()
        yield from self.chunks.collect()

    def scrape(self) -> int:
        """
        Run one fetch → parse → map cycle.

        Returns the number of records mapped (0 when the fetch failed).
        """
        with tracer.start_as_current_span("mempool.scrape") as root_span:
            root_span.set_attribute("url", self.source.url)

            # -- Fetch --
            with tracer.start_as_current_span("mempool.fetch") as span:
                t0 = time.monotonic()
                try:
                    stream = self.source.fetch()
                except FetchError as e:
                    SCRAPES_TOTAL.labels(status="failed").inc()
                    span.set_attribute("error", True)
                    root_span.set_attribute("error.message", str(e))
                    logger.error(
                        "mem_report_fetch_failed",
                        url=self.source.url,
                        error=str(e.cause),
                    )
                    return 0
                finally:
                    SCRAPE_DURATION.labels(stage="fetch").observe(time.monotonic() - t0)

            # -- Parse + Map --
            with tracer.start_as_current_span("mempool.parse") as span:
                t0 = time.monotonic()
                records = 0
                with stream:
                    for record in self.parser.parse(stream):
                        self._map(record)
                        records += 1
                parse_duration = time.monotonic() - t0
                SCRAPE_DURATION.labels(stage="parse").observe(parse_duration)
                span.set_attribute("records", records)

            RECORDS_TOTAL.inc(records)
            SCRAPES_TOTAL.labels(status="success").inc()

            logger.debug(
                "mem_report_scraped",
                url=self.source.url,
                records=records,
                parse_duration_ms=round(parse_duration * 1000, 2),
            )
            return records

    def _map(self, record: MemPoolRecord) -> None:
        """Set both series for one record; chunk size is derived from the parsed value."""
        self.obj_size.labels(record.k_id, record.pool).set(record.value)
        self.chunks.labels(record.k_id, record.pool).set(record.value / KB)
