"""
Tests for MemReportSource.

URL/timeout handling is checked with the opener patched; the end-to-end
cases run against a throwaway cache-manager stub on 127.0.0.1.
"""
import socket
import threading
import urllib.error
import pytest
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from unittest.mock import patch, MagicMock

from squid_exporter.collector import MemPoolCollector
from squid_exporter.errors import FetchError
from squid_exporter.sources import MemReportSource, squid_source
from conftest import SAMPLE_REPORT, gauge_value


# ---------------------------------------------------------------------------
# Cache manager stub
# ---------------------------------------------------------------------------


class _CacheManagerHandler(BaseHTTPRequestHandler):
    status = 200
    body = SAMPLE_REPORT
    paths: list = []

    def do_GET(self):
        type(self).paths.append(self.path)
        self.send_response(self.status)
        self.send_header("Content-Type", "text/plain")
        self.send_header("Content-Length", str(len(self.body)))
        self.end_headers()
        self.wfile.write(self.body)

    def log_message(self, format, *args):
        pass


@pytest.fixture
def squid_stub():
    """Serve the cache manager stub on an ephemeral port; yields (host, port, handler)."""
    handler = type("Handler", (_CacheManagerHandler,), {"paths": []})
    server = ThreadingHTTPServer(("127.0.0.1", 0), handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server.server_address[0], server.server_address[1], handler
    finally:
        server.shutdown()
        server.server_close()


# ---------------------------------------------------------------------------
# URL and timeout
# ---------------------------------------------------------------------------


def test_url_points_at_mem_report():
    source = MemReportSource("proxy-1", 3128)
    assert source.url == "http://proxy-1:3128/squid-internal-mgr/mem"


def test_timeout_defaults_to_settings():
    with patch("squid_exporter.sources.settings") as mock_settings:
        mock_settings.squid_timeout = 7.5
        source = MemReportSource("proxy-1", 3128)
    assert source.timeout == 7.5


def test_fetch_passes_explicit_timeout():
    response = MagicMock()
    with patch("urllib.request.OpenerDirector.open", return_value=response) as mock_open:
        result = MemReportSource("proxy-1", 3128, timeout=2.0).fetch()

    assert result is response
    mock_open.assert_called_once_with(
        "http://proxy-1:3128/squid-internal-mgr/mem", timeout=2.0
    )


def test_squid_source_factory_uses_settings():
    with patch("squid_exporter.sources.settings") as mock_settings:
        mock_settings.squid_hostname = "cache.internal"
        mock_settings.squid_port = 3129
        mock_settings.squid_timeout = 3.0
        source = squid_source()

    assert source.url == "http://cache.internal:3129/squid-internal-mgr/mem"
    assert source.timeout == 3.0


def test_squid_source_factory_overrides():
    source = squid_source(hostname="10.0.0.5", port=8080, timeout=1.0)
    assert source.url == "http://10.0.0.5:8080/squid-internal-mgr/mem"
    assert source.timeout == 1.0


# ---------------------------------------------------------------------------
# Failure mapping
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("error", [
    urllib.error.URLError("Name or service not known"),
    ConnectionRefusedError(111, "Connection refused"),
    TimeoutError("timed out"),
])
def test_network_errors_become_fetch_error(error):
    source = MemReportSource("proxy-1", 3128, timeout=1.0)

    with patch("urllib.request.OpenerDirector.open", side_effect=error):
        with pytest.raises(FetchError) as exc_info:
            source.fetch()

    assert exc_info.value.cause is error
    assert exc_info.value.url == source.url


def test_http_error_status_becomes_fetch_error(squid_stub):
    host, port, handler = squid_stub
    handler.status = 403
    handler.body = b"access denied"

    with pytest.raises(FetchError) as exc_info:
        MemReportSource(host, port, timeout=5).fetch()

    assert isinstance(exc_info.value.cause, urllib.error.HTTPError)
    assert exc_info.value.cause.code == 403


@pytest.mark.parametrize("status", [403, 500, 503])
def test_http_error_response_is_closed(squid_stub, status):
    host, port, handler = squid_stub
    handler.status = status
    handler.body = b"cache manager error"

    with pytest.raises(FetchError) as exc_info:
        MemReportSource(host, port, timeout=5).fetch()

    assert exc_info.value.cause.code == status
    assert exc_info.value.cause.fp.closed


def test_refused_connection_against_closed_port(squid_stub):
    host, port, _ = squid_stub
    # Bind-then-close to find a port nothing listens on.
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        dead_port = s.getsockname()[1]

    with pytest.raises(FetchError):
        MemReportSource(host, dead_port, timeout=2).fetch()


# ---------------------------------------------------------------------------
# End to end
# ---------------------------------------------------------------------------


def test_fetch_reads_report_from_stub(squid_stub):
    host, port, handler = squid_stub

    with MemReportSource(host, port, timeout=5).fetch() as stream:
        body = stream.read()

    assert body == SAMPLE_REPORT
    assert handler.paths == ["/squid-internal-mgr/mem"]


def test_collector_against_stub(squid_stub, gauges):
    host, port, handler = squid_stub
    obj_size, chunks = gauges
    collector = MemPoolCollector(
        MemReportSource(host, port, timeout=5), obj_size=obj_size, chunks=chunks
    )

    assert collector.scrape() == 3
    assert collector.scrape() == 3

    assert gauge_value(obj_size, "kid1", "aufs_queue") == 4096.0
    assert gauge_value(chunks, "kid1", "aufs_queue") == 4.0
    assert len(handler.paths) == 2
