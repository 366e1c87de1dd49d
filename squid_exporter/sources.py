"""
HTTP source for the Squid cache manager ``mem`` report.

Host, port and timeout are fixed at construction; defaults come from
``Settings`` so one source can be built per proxy instance.
"""
import http.client
import urllib.error
import urllib.request
from typing import BinaryIO
from squid_exporter.interfaces import ReportSource
from squid_exporter.errors import FetchError
from squid_exporter.config import settings
from squid_exporter.logging_config import get_logger

logger = get_logger(__name__)

MEM_REPORT_PATH = "/squid-internal-mgr/mem"


class MemReportSource(ReportSource):
    """
    Fetches ``http://<host>:<port>/squid-internal-mgr/mem``.

    One GET per call, no body, no custom headers. Redirects are followed
    by the client; 4xx/5xx responses, refused connections, DNS failures
    and timeouts all surface as ``FetchError``.
    """

    def __init__(
        self,
        hostname: str,
        port: int,
        timeout: float | None = None,
    ) -> None:
        self._hostname = hostname
        self._port = port
        self._timeout = settings.squid_timeout if timeout is None else timeout
        # Talk to the cache manager directly, never through $http_proxy.
        self._opener = urllib.request.build_opener(urllib.request.ProxyHandler({}))

    @property
    def url(self) -> str:
        return f"http://{self._hostname}:{self._port}{MEM_REPORT_PATH}"

    @property
    def timeout(self) -> float:
        return self._timeout

    def fetch(self) -> BinaryIO:
        """Issue the GET and hand back the open response."""
        logger.debug("mem_report_fetch", url=self.url, timeout=self._timeout)
        try:
            return self._opener.open(self.url, timeout=self._timeout)
        except (OSError, http.client.HTTPException) as e:
            if isinstance(e, urllib.error.HTTPError):
                # The error carries the open response; release the connection.
                e.close()
            raise FetchError(self.url, e) from e


def squid_source(
    hostname: str | None = None,
    port: int | None = None,
    timeout: float | None = None,
) -> MemReportSource:
    """Factory: source for the configured proxy. Defaults from SQUID_* env vars."""
    return MemReportSource(
        hostname=hostname or settings.squid_hostname,
        port=port or settings.squid_port,
        timeout=timeout,
    )
