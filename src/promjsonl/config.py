"""
Exporter configuration.

Values arrive from click options (which already fall back to environment
variables); this module turns the raw strings into a validated
ExporterConfig.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from promjsonl.collector.http_collector import normalize_endpoint
from promjsonl.errors import ConfigError

DEFAULT_INTERVAL_SECONDS = 60.0

LOG_LEVELS = ("debug", "info", "warn", "error")

_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

# One number+unit chunk of a duration like 1h30m or 1.5s
_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(text: str) -> float:
    """Parse `90s`, `1m30s`, `500ms` or a bare number of seconds."""
    raw = text.strip()
    if not raw:
        raise ConfigError("empty duration")

    try:
        seconds = float(raw)
    except ValueError:
        pos = 0
        seconds = 0.0
        for match in _DURATION_PART_RE.finditer(raw):
            if match.start() != pos:
                break
            seconds += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
            pos = match.end()
        if pos != len(raw) or pos == 0:
            raise ConfigError(f"invalid duration: {text!r}")

    if not math.isfinite(seconds) or seconds <= 0:
        raise ConfigError(f"duration must be positive: {text!r}")
    return seconds


def parse_filter_patterns(text: Optional[str]) -> List[str]:
    if not text:
        return []
    return [p.strip() for p in text.split(",") if p.strip()]


@dataclass(frozen=True)
class ExporterConfig:
    endpoint: str
    metrics_file: str
    interval_seconds: float = DEFAULT_INTERVAL_SECONDS
    filter_patterns: Tuple[str, ...] = field(default_factory=tuple)
    compress: bool = False
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    log_level: str = "info"

    @classmethod
    def from_options(
        cls,
        metrics: str,
        metricsfile: str,
        metricsinterval: str = "60s",
        metricsfilter: Optional[str] = None,
        metricscompress: bool = False,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        log_level: str = "info",
    ) -> "ExporterConfig":
        if not metrics:
            raise ConfigError("metrics endpoint is required")
        if not metricsfile:
            raise ConfigError("metrics file is required")
        # click.Choice covers the CLI; this covers direct callers
        if log_level.lower() not in LOG_LEVELS:
            raise ConfigError(f"unknown log level: {log_level!r}")

        return cls(
            endpoint=normalize_endpoint(metrics),
            metrics_file=metricsfile,
            interval_seconds=parse_duration(metricsinterval),
            filter_patterns=tuple(parse_filter_patterns(metricsfilter)),
            compress=metricscompress,
            client_id=client_id or None,
            client_secret=client_secret or None,
            log_level=log_level.lower(),
        )
