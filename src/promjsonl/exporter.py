"""
Collection loop: fetch -> parse -> flatten -> append, on a fixed interval.

One cycle runs right away on start, then one per tick until the stop
event is set. Cycles never overlap and a failed cycle never stops the
loop; it is logged and the next tick runs as usual.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional, Sequence

from promjsonl.collector.base import MetricsCollector
from promjsonl.collector.prometheus_parser import parse_prometheus_text
from promjsonl.engine.change_cache import ChangeCache
from promjsonl.engine.flattener import Flattener
from promjsonl.errors import ExporterError
from promjsonl.metrics import format_timestamp
from promjsonl.storage.jsonl_writer import JSONLWriter

log = logging.getLogger(__name__)


class JSONLExporter:

    def __init__(
        self,
        collector: MetricsCollector,
        writer: JSONLWriter,
        interval_seconds: float = 60.0,
        filter_patterns: Sequence[str] = (),
        compress: bool = False,
        cache: Optional[ChangeCache] = None,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval must be positive")
        self._collector = collector
        self._writer = writer
        self._interval = interval_seconds
        if compress and cache is None:
            cache = ChangeCache()
        self._cache = cache if compress else None
        self._flattener = Flattener(filter_patterns, cache=self._cache)
        self._consecutive_errors = 0

    @property
    def cache(self) -> Optional[ChangeCache]:
        return self._cache

    def export_once(self) -> int:
        """Run one cycle. Returns lines written; raises ExporterError on failure."""
        text = self._collector.fetch()
        families = parse_prometheus_text(text)
        timestamp = format_timestamp()
        return self._writer.append(self._flattener.flatten_all(families, timestamp))

    def _run_cycle(self, label: str):
        try:
            written = self.export_once()
        except ExporterError as e:
            self._consecutive_errors += 1
            log.warning("Export %s failed (%d in a row): %s", label, self._consecutive_errors, e)
            return
        except Exception:
            self._consecutive_errors += 1
            log.exception("Unexpected error during export %s", label)
            return

        if self._consecutive_errors:
            log.info("Export recovered after %d failed cycles", self._consecutive_errors)
        self._consecutive_errors = 0
        log.debug("Export %s wrote %d samples", label, written)

    def run(self, stop: threading.Event):
        """Block until `stop` is set. An in-flight cycle always finishes."""
        log.info(
            "Starting JSONL metrics exporter: source=%s, file=%s, interval=%.1fs",
            self._collector.name(), self._writer.path, self._interval,
        )

        self._run_cycle("on startup")

        next_tick = time.monotonic() + self._interval
        while not stop.wait(max(0.0, next_tick - time.monotonic())):
            self._run_cycle("on tick")

            now = time.monotonic()
            next_tick += self._interval
            if next_tick < now:
                # Slow cycle: keep one pending tick, drop the rest
                missed = int((now - next_tick) // self._interval)
                next_tick += missed * self._interval

        log.info("JSONL metrics exporter shutting down")
