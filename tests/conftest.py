import io
import pytest
from typing import Dict, Optional
from prometheus_client import Gauge

from squid_exporter.errors import FetchError
from squid_exporter.interfaces import ReportSource
from squid_exporter.metrics import build_mempool_gauges


SAMPLE_REPORT = b"""HTTP/1.1 200 OK
Current memory usage:
Pool\tObj Size\tChunks\t\t\t\t\tAllocated
 \t (bytes)\tKB/ch\tobj/ch\t(#)\tused\tfree\tpart
kid1 aufs_queue 4096
kid1 mem_node 4112 16 4 1
kid2 MemBlob 48
Total pools created: 3
"""


class FakeSource(ReportSource):
    """In-memory report source; raises ``FetchError`` when given an exception."""

    def __init__(self, body: bytes = b"", error: Optional[BaseException] = None) -> None:
        self.body = body
        self.error = error
        self.calls = 0
        self.streams = []

    @property
    def url(self) -> str:
        return "http://squid.test:3128/squid-internal-mgr/mem"

    def fetch(self):
        self.calls += 1
        if self.error is not None:
            raise FetchError(self.url, self.error)
        stream = io.BytesIO(self.body)
        self.streams.append(stream)
        return stream


class BrokenStream:
    """Yields *lines* then fails the next read with *error*."""

    def __init__(self, lines, error: BaseException) -> None:
        self._lines = list(lines)
        self._error = error
        self.closed = False

    def __iter__(self):
        yield from self._lines
        raise self._error

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False

    def close(self) -> None:
        self.closed = True


def gauge_value(gauge: Gauge, k_id: str, pool: str) -> Optional[float]:
    """Current value of *gauge* at (k_id, pool), or None if the label-set was never set."""
    for family in gauge.collect():
        for sample in family.samples:
            if sample.labels == {"k_id": k_id, "pool": pool}:
                return sample.value
    return None


def label_sets(gauge: Gauge) -> Dict[tuple, float]:
    """All (k_id, pool) → value pairs currently held by *gauge*."""
    return {
        (s.labels["k_id"], s.labels["pool"]): s.value
        for family in gauge.collect()
        for s in family.samples
    }


@pytest.fixture
def gauges():
    """Private (obj_size, chunks) pair, isolated from the process-wide gauges."""
    return build_mempool_gauges(registry=None)
