"""
Line parser for the Squid cache manager ``mem`` report.

The report is mostly free text (headers, pool tables, totals). Only rows
whose first token starts with ``kid`` carry per-worker pool figures::

    kid1 aufs_queue 4096 ...

Each such row yields a ``MemPoolRecord`` of (worker id, pool name, value).
Everything else is skipped silently; malformed ``kid`` rows are logged,
counted in ``squid_mempool_parse_errors_total`` and skipped.
"""
import http.client
from typing import BinaryIO, Generator, NamedTuple, Optional
from squid_exporter.metrics import PARSE_ERRORS
from squid_exporter.logging_config import get_logger

logger = get_logger(__name__)

KID_MARKER = "kid"
MIN_FIELDS = 3


class MemPoolRecord(NamedTuple):
    k_id: str
    pool: str
    value: float


def parse_value(token: str) -> float:
    """Parse a base-10 ASCII float. Digit-group underscores and non-ASCII digits are rejected."""
    if "_" in token or not token.isascii():
        raise ValueError(f"could not convert string to float: {token!r}")
    return float(token)


class MemReportParser:
    """Stream-parse a ``mem`` report, yielding one record per valid ``kid`` row."""

    def __init__(self, marker: str = KID_MARKER, encoding: str = "utf-8") -> None:
        self._marker = marker
        self._encoding = encoding

    def parse_line(self, line: str) -> Optional[MemPoolRecord]:
        """Return the record for *line*, or ``None`` when it is not a valid pool row."""
        fields = line.split()
        if not fields or not fields[0].startswith(self._marker):
            return None

        if len(fields) < MIN_FIELDS:
            PARSE_ERRORS.labels(reason="arity").inc()
            logger.debug("mem_report_short_row", fields=len(fields), line=line.strip())
            return None

        k_id, pool, raw_value = fields[0], fields[1], fields[2]
        try:
            value = parse_value(raw_value)
        except ValueError as e:
            PARSE_ERRORS.labels(reason="value").inc()
            logger.warning(
                "mem_report_bad_value",
                k_id=k_id,
                pool=pool,
                value=raw_value,
                error=str(e),
            )
            return None

        return MemPoolRecord(k_id, pool, value)

    def parse(self, stream: BinaryIO) -> Generator[MemPoolRecord, None, None]:
        """
        Yield records until EOF.

        A read error mid-stream ends the scan; records already yielded stay
        valid for the caller.
        """
        lines = iter(stream)
        while True:
            try:
                raw = next(lines)
            except StopIteration:
                return
            except (OSError, http.client.HTTPException) as e:
                PARSE_ERRORS.labels(reason="read").inc()
                logger.error("mem_report_read_failed", error=str(e))
                return

            if isinstance(raw, bytes):
                raw = raw.decode(self._encoding, errors="replace")

            record = self.parse_line(raw)
            if record is not None:
                yield record
