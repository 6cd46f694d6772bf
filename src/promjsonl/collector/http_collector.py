"""
Collector for a live Prometheus endpoint. Issues a GET against /metrics
and hands back the body untouched; parsing happens elsewhere.

Endpoints sitting behind Cloudflare Access can be reached with a service
token (client id + secret), sent as static headers on every request.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

import httpx

from promjsonl.collector.base import MetricsCollector
from promjsonl.errors import FetchError

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0

CLIENT_ID_HEADER = "CF-Access-Client-Id"
CLIENT_SECRET_HEADER = "CF-Access-Client-Secret"


def normalize_endpoint(address: str) -> str:
    """Add a scheme and the /metrics path if the address lacks them."""
    url = address.strip()
    if not url.startswith("http://") and not url.startswith("https://"):
        url = "http://" + url
    if not url.endswith("/metrics"):
        if url.endswith("/"):
            url = url[:-1]
        url += "/metrics"
    return url


class HTTPCollector(MetricsCollector):

    def __init__(
        self,
        url: str,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self._metrics_url = normalize_endpoint(url)
        self._timeout = timeout_seconds

        headers: Dict[str, str] = {}
        # Only send credentials when both halves are configured
        if client_id and client_secret:
            headers[CLIENT_ID_HEADER] = client_id
            headers[CLIENT_SECRET_HEADER] = client_secret
        self._client = httpx.Client(timeout=self._timeout, headers=headers)

    @property
    def url(self) -> str:
        return self._metrics_url

    def fetch(self) -> str:
        try:
            response = self._client.get(self._metrics_url)
        except httpx.HTTPError as e:
            raise FetchError(f"failed to fetch metrics: {e}") from e

        if response.status_code != 200:
            raise FetchError(
                f"metrics endpoint returned status {response.status_code}",
                status_code=response.status_code,
            )

        log.debug("Fetched %d bytes from %s", len(response.content), self._metrics_url)
        return response.text

    def name(self) -> str:
        return f"Prometheus ({self._metrics_url})"

    def close(self):
        self._client.close()
