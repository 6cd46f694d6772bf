"""
Fake Prometheus /metrics server for trying the exporter locally.

    python -m promjsonl.mock.fake_exporter
    promjsonl --metrics localhost:9100 --metricsfile ./out/metrics.jsonl --metricsinterval 5s

Serves a synthetic payload with one family of each type. Some values move
every scrape and some never do, which makes --metricscompress easy to
eyeball. Tests set `payload` / `status` on the server object to serve a
fixed response instead.
"""

from __future__ import annotations

import math
import random
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Dict, List, Optional

_tick = 0
_rng = random.Random(42)
_requests = 0

LATENCY_BUCKETS = [0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]


def _generate_metrics_text() -> str:
    """Build a Prometheus text blob; each call advances the simulation one tick."""
    global _tick, _requests
    _tick += 1
    t = _tick

    new_requests = 20 + int(10 * math.sin(t * 0.3)) + _rng.randint(0, 5)
    _requests += new_requests
    connections = max(1, int(8 + 4 * math.sin(t * 0.1)))

    lines = [
        "# HELP build_info Build information",
        "# TYPE build_info gauge",
        'build_info{version="2024.1.0",goversion="go1.22"} 1',
        "",
        "# HELP requests_total Total requests handled",
        "# TYPE requests_total counter",
        f'requests_total{{method="GET"}} {int(_requests * 0.8)}',
        f'requests_total{{method="POST"}} {int(_requests * 0.2)}',
        "",
        "# HELP active_connections Open connections",
        "# TYPE active_connections gauge",
        f"active_connections {connections}",
        "",
        "# HELP rpc_duration_seconds RPC latency",
        "# TYPE rpc_duration_seconds summary",
        f'rpc_duration_seconds{{quantile="0.5"}} {0.012 + _rng.random() * 0.003:.4f}',
        f'rpc_duration_seconds{{quantile="0.99"}} {0.08 + _rng.random() * 0.02:.4f}',
        f"rpc_duration_seconds_sum {_requests * 0.015:.4f}",
        f"rpc_duration_seconds_count {_requests}",
        "",
        "# HELP request_latency_seconds Request latency",
        "# TYPE request_latency_seconds histogram",
    ]

    cumulative = 0
    for le in LATENCY_BUCKETS:
        cumulative += int(_requests * 0.1)
        lines.append(f'request_latency_seconds_bucket{{le="{le}"}} {min(cumulative, _requests)}')
    lines.append(f'request_latency_seconds_bucket{{le="+Inf"}} {_requests}')
    lines.append(f"request_latency_seconds_sum {_requests * 0.042:.4f}")
    lines.append(f"request_latency_seconds_count {_requests}")

    lines.append("")
    lines.append(f"process_uptime_seconds {t * 5}")

    return "\n".join(lines) + "\n"


class FakeExporterServer(HTTPServer):
    """HTTPServer that can serve a fixed payload and remembers request headers
    (lowercased names)."""

    def __init__(self, address, payload: Optional[str] = None, status: int = 200):
        super().__init__(address, _MetricsHandler)
        self.payload = payload
        self.status = status
        self.requests: List[Dict[str, str]] = []


class _MetricsHandler(BaseHTTPRequestHandler):
    def do_GET(self):
        if self.path != "/metrics":
            self.send_response(404)
            self.end_headers()
            return

        server = self.server
        payload = getattr(server, "payload", None)
        status = getattr(server, "status", 200)
        if hasattr(server, "requests"):
            server.requests.append({k.lower(): v for k, v in self.headers.items()})

        body = (payload if payload is not None else _generate_metrics_text()).encode()
        self.send_response(status)
        self.send_header("Content-Type", "text/plain; version=0.0.4; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        pass  # Suppress request logging noise


def run_fake_server(host: str = "127.0.0.1", port: int = 9100):
    server = FakeExporterServer((host, port))
    print(f"Fake metrics server running at http://{host}:{port}/metrics")
    print("Press Ctrl+C to stop.\n")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    server.server_close()
    print("\nServer stopped.")


if __name__ == "__main__":
    run_fake_server()
