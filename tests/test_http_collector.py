"""
Tests for the HTTP collector using the fake metrics server.

Starts the fake server in a thread, points the collector at it, and
checks the body, status handling and auth headers.
"""

import pytest

from promjsonl.collector.http_collector import HTTPCollector, normalize_endpoint
from promjsonl.errors import FetchError


def test_normalize_endpoint():
    assert normalize_endpoint("localhost:2000") == "http://localhost:2000/metrics"
    assert normalize_endpoint("http://localhost:2000/") == "http://localhost:2000/metrics"
    assert normalize_endpoint("https://example.com/metrics") == "https://example.com/metrics"


def test_fetch_returns_body(fake_server):
    fake_server.payload = "up 1\n"
    collector = HTTPCollector(fake_server.url)
    try:
        assert collector.fetch() == "up 1\n"
    finally:
        collector.close()


def test_fetch_generated_payload(fake_server):
    collector = HTTPCollector(fake_server.url)
    try:
        text = collector.fetch()
    finally:
        collector.close()
    assert "# TYPE request_latency_seconds histogram" in text


def test_non_200_is_fetch_error(fake_server):
    fake_server.status = 503
    collector = HTTPCollector(fake_server.url)
    try:
        with pytest.raises(FetchError) as excinfo:
            collector.fetch()
    finally:
        collector.close()
    assert excinfo.value.status_code == 503


def test_connection_refused_is_fetch_error():
    # Nothing listens on port 1
    collector = HTTPCollector("http://127.0.0.1:1", timeout_seconds=1.0)
    try:
        with pytest.raises(FetchError) as excinfo:
            collector.fetch()
    finally:
        collector.close()
    assert excinfo.value.status_code is None


def test_auth_headers_sent_when_both_set(fake_server):
    fake_server.payload = ""
    collector = HTTPCollector(fake_server.url, client_id="id-123", client_secret="s3cret")
    try:
        collector.fetch()
    finally:
        collector.close()
    headers = fake_server.requests[-1]
    assert headers["cf-access-client-id"] == "id-123"
    assert headers["cf-access-client-secret"] == "s3cret"


def test_auth_headers_skipped_when_incomplete(fake_server):
    fake_server.payload = ""
    collector = HTTPCollector(fake_server.url, client_id="id-123")
    try:
        collector.fetch()
    finally:
        collector.close()
    assert "cf-access-client-id" not in fake_server.requests[-1]


def test_collector_name_includes_url():
    collector = HTTPCollector("localhost:2000")
    assert "localhost:2000/metrics" in collector.name()
    collector.close()
