"""
Expands parsed metric families into flat samples.

Counters, gauges and untyped metrics map one-to-one. Summaries and
histograms get decomposed: one row per quantile/bucket plus a sum row
and a count row, with synthetic labels (quantile, le, stat) keeping the
rows apart.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional, Sequence

from promjsonl.collector.prometheus_parser import (
    HistogramEntry,
    MetricFamily,
    MetricKind,
    ScalarEntry,
    SummaryEntry,
)
from promjsonl.engine.change_cache import ChangeCache
from promjsonl.engine.matcher import matches_any
from promjsonl.metrics import FlatSample, format_float

log = logging.getLogger(__name__)


def copy_labels(labels: Dict[str, str]) -> Dict[str, str]:
    return dict(labels)


def build_key(name: str, labels: Dict[str, str]) -> str:
    """Identity key like `name{a=1,b=2}`; label names are sorted so the
    key doesn't depend on dict insertion order."""
    if not labels:
        return name
    pairs = ",".join(f"{k}={labels[k]}" for k in sorted(labels))
    return name + "{" + pairs + "}"


class Flattener:

    def __init__(
        self,
        filter_patterns: Sequence[str] = (),
        cache: Optional[ChangeCache] = None,
    ):
        self._patterns: List[str] = list(filter_patterns)
        # No cache means change-only mode is off
        self._cache = cache

    @property
    def compress(self) -> bool:
        return self._cache is not None

    def accepts(self, family_name: str) -> bool:
        return matches_any(self._patterns, family_name)

    def flatten(self, family: MetricFamily, timestamp: str) -> Iterator[FlatSample]:
        """Yield the samples to write for one family.

        The change cache is only updated for samples pulled from the
        iterator.
        """
        if not self.accepts(family.name):
            return

        kind = family.kind
        if kind is None:
            log.debug("Skipping %s: unsupported type %r", family.name, family.metric_type)
            return

        for entry in family.entries:
            if kind in (MetricKind.COUNTER, MetricKind.GAUGE, MetricKind.UNTYPED):
                yield from self._scalar(family, entry, timestamp)
            elif kind is MetricKind.SUMMARY:
                yield from self._summary(family, entry, timestamp)
            elif kind is MetricKind.HISTOGRAM:
                yield from self._histogram(family, entry, timestamp)

    def flatten_all(self, families: Dict[str, MetricFamily], timestamp: str) -> Iterator[FlatSample]:
        for family in families.values():
            yield from self.flatten(family, timestamp)

    def _scalar(self, family: MetricFamily, entry: ScalarEntry, timestamp: str):
        sample = self._emit(timestamp, family.name, family.metric_type,
                            entry.value, copy_labels(entry.labels))
        if sample:
            yield sample

    def _summary(self, family: MetricFamily, entry: SummaryEntry, timestamp: str):
        for q in entry.quantiles:
            labels = copy_labels(entry.labels)
            labels["quantile"] = format_float(q.rank)
            sample = self._emit(timestamp, family.name, family.metric_type, q.value, labels)
            if sample:
                yield sample

        yield from self._sum_and_count(
            timestamp, family.name, family.name, family.metric_type, entry)

    def _histogram(self, family: MetricFamily, entry: HistogramEntry, timestamp: str):
        for b in entry.buckets:
            labels = copy_labels(entry.labels)
            labels["le"] = format_float(b.upper_bound)
            sample = self._emit(timestamp, family.name + "_bucket", family.metric_type,
                                float(b.cumulative_count), labels)
            if sample:
                yield sample

        yield from self._sum_and_count(
            timestamp, family.name + "_sum", family.name + "_count",
            family.metric_type, entry)

    def _sum_and_count(self, timestamp, sum_name, count_name, metric_type, entry):
        sum_labels = copy_labels(entry.labels)
        sum_labels["stat"] = "sum"
        sample = self._emit(timestamp, sum_name, metric_type, entry.sample_sum, sum_labels)
        if sample:
            yield sample

        count_labels = copy_labels(entry.labels)
        count_labels["stat"] = "count"
        sample = self._emit(timestamp, count_name, metric_type,
                            float(entry.sample_count), count_labels)
        if sample:
            yield sample

    def _emit(self, timestamp, name, metric_type, value, labels) -> Optional[FlatSample]:
        if self._cache is not None:
            if not self._cache.should_emit(build_key(name, labels), value):
                return None
        return FlatSample(
            timestamp=timestamp,
            name=name,
            type=metric_type,
            value=value,
            labels=labels,
        )
