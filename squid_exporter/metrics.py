"""
Prometheus metrics for the Squid memory-pool exporter.

Two groups live here:

- The **memory-pool gauges** republished from the ``mem`` report. They are
  created with ``registry=None`` and exposed only through
  ``MemPoolCollector``, which yields them after every scrape.
- The exporter's own **scrape health** metrics, prefixed with
  ``squid_mempool_`` and registered on the default registry.
"""
from typing import Tuple
from prometheus_client import Counter, Gauge, Histogram

MEMPOOL_LABELS = ("k_id", "pool")


def build_mempool_gauges(registry=None) -> Tuple[Gauge, Gauge]:
    """Create the ``(object size, chunk size)`` gauge pair.

    The module-level pair below is the process-wide state; tests build
    private pairs to stay isolated.
    """
    obj_size = Gauge(
        "squid_mempool_obj_size_bytes",
        "Size of each object in the pool in bytes",
        MEMPOOL_LABELS,
        registry=registry,
    )
    chunks = Gauge(
        "squid_mempool_chunks_kb_per_chunk",
        "Chunk size in kilobytes",
        MEMPOOL_LABELS,
        registry=registry,
    )
    return obj_size, chunks


# ---------------------------------------------------------------------------
# Memory-pool gauges (process-wide, last write wins per label-set)
# ---------------------------------------------------------------------------

MEMPOOL_OBJ_SIZE, MEMPOOL_CHUNKS = build_mempool_gauges()

# ---------------------------------------------------------------------------
# Counters
# ---------------------------------------------------------------------------

SCRAPES_TOTAL = Counter(
    "squid_mempool_scrapes_total",
    "Scrape cycles against the cache manager by final status",
    ["status"],
)

PARSE_ERRORS = Counter(
    "squid_mempool_parse_errors_total",
    "Report lines or streams rejected while parsing, by reason",
    ["reason"],
)

RECORDS_TOTAL = Counter(
    "squid_mempool_records_total",
    "Memory-pool records accepted from the mem report",
)

# ---------------------------------------------------------------------------
# Histograms (stage latency)
# ---------------------------------------------------------------------------

SCRAPE_DURATION = Histogram(
    "squid_mempool_scrape_duration_seconds",
    "Duration of each scrape stage in seconds",
    ["stage"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10),
)
