"""
Adapter from prometheus_client's text parser to our family model.

The library hands back each family as a flat list of raw samples
(foo_bucket{le="0.5"}, foo_sum, foo_count, ...). Here those get grouped
back into one entry per label set, so the flattener can work on
buckets, quantiles and sum/count directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple, Union

from prometheus_client.parser import text_string_to_metric_families

from promjsonl.errors import ParseError


class MetricKind(str, Enum):
    COUNTER = "counter"
    GAUGE = "gauge"
    SUMMARY = "summary"
    HISTOGRAM = "histogram"
    UNTYPED = "untyped"

    @classmethod
    def from_type(cls, metric_type: str) -> Optional["MetricKind"]:
        try:
            return cls(metric_type)
        except ValueError:
            return None


@dataclass
class ScalarEntry:
    """Counter, gauge or untyped reading for one label set."""
    labels: Dict[str, str]
    value: float


@dataclass
class Quantile:
    rank: float
    value: float


@dataclass
class SummaryEntry:
    labels: Dict[str, str]
    quantiles: List[Quantile] = field(default_factory=list)
    sample_sum: float = 0.0
    sample_count: float = 0.0


@dataclass
class Bucket:
    upper_bound: float
    cumulative_count: float


@dataclass
class HistogramEntry:
    labels: Dict[str, str]
    buckets: List[Bucket] = field(default_factory=list)
    sample_sum: float = 0.0
    sample_count: float = 0.0


MetricEntry = Union[ScalarEntry, SummaryEntry, HistogramEntry]


@dataclass
class MetricFamily:
    name: str
    metric_type: str  # declared type, passed through to every output row
    help_text: str = ""
    entries: List[MetricEntry] = field(default_factory=list)

    @property
    def kind(self) -> Optional[MetricKind]:
        return MetricKind.from_type(self.metric_type)


def _label_key(labels: Dict[str, str], drop: str = "") -> Tuple[Tuple[str, str], ...]:
    return tuple(sorted((k, v) for k, v in labels.items() if k != drop))


def _strip(labels: Dict[str, str], drop: str) -> Dict[str, str]:
    return {k: v for k, v in labels.items() if k != drop}


def _parse_bound(raw: Optional[str], label: str, sample_name: str) -> float:
    if raw is None:
        raise ParseError(f"{sample_name}: missing {label} label")
    try:
        return float(raw)
    except ValueError as e:
        raise ParseError(f"{sample_name}: invalid {label} value {raw!r}") from e


def _scalar_entries(name: str, samples) -> List[MetricEntry]:
    return [ScalarEntry(labels=dict(s.labels), value=float(s.value))
            for s in samples if s.name == name]


def _summary_entries(name: str, samples) -> List[MetricEntry]:
    entries: Dict[tuple, SummaryEntry] = {}

    def entry_for(labels: Dict[str, str]) -> SummaryEntry:
        key = _label_key(labels, drop="quantile")
        if key not in entries:
            entries[key] = SummaryEntry(labels=_strip(labels, "quantile"))
        return entries[key]

    for s in samples:
        if s.name == name:
            rank = _parse_bound(s.labels.get("quantile"), "quantile", s.name)
            entry_for(s.labels).quantiles.append(Quantile(rank=rank, value=float(s.value)))
        elif s.name == name + "_sum":
            entry_for(s.labels).sample_sum = float(s.value)
        elif s.name == name + "_count":
            entry_for(s.labels).sample_count = float(s.value)

    return list(entries.values())


def _histogram_entries(name: str, samples) -> List[MetricEntry]:
    entries: Dict[tuple, HistogramEntry] = {}

    def entry_for(labels: Dict[str, str]) -> HistogramEntry:
        key = _label_key(labels, drop="le")
        if key not in entries:
            entries[key] = HistogramEntry(labels=_strip(labels, "le"))
        return entries[key]

    for s in samples:
        if s.name == name + "_bucket":
            bound = _parse_bound(s.labels.get("le"), "le", s.name)
            entry_for(s.labels).buckets.append(
                Bucket(upper_bound=bound, cumulative_count=float(s.value))
            )
        elif s.name == name + "_sum":
            entry_for(s.labels).sample_sum = float(s.value)
        elif s.name == name + "_count":
            entry_for(s.labels).sample_count = float(s.value)

    return list(entries.values())


def _declared_counters(text: str) -> Set[str]:
    """Names from `# TYPE <name> counter` lines, exactly as written."""
    names: Set[str] = set()
    for line in text.splitlines():
        parts = line.split()
        if len(parts) == 4 and parts[:2] == ["#", "TYPE"] and parts[3] == "counter":
            names.add(parts[2])
    return names


def _build_family(metric, declared_counters: Set[str]) -> MetricFamily:
    # prometheus_client reports untyped families as "unknown"
    metric_type = "untyped" if metric.type == "unknown" else metric.type
    kind = MetricKind.from_type(metric_type)
    name = metric.name

    if kind is MetricKind.COUNTER:
        # prometheus_client strips _total from the family name and appends
        # it to every sample name; export the name the TYPE line declared.
        sample_name = name + "_total"
        if sample_name not in declared_counters and name in declared_counters:
            entries = _scalar_entries(sample_name, metric.samples)
        else:
            name = sample_name
            entries = _scalar_entries(name, metric.samples)
    elif kind in (MetricKind.GAUGE, MetricKind.UNTYPED):
        entries = _scalar_entries(name, metric.samples)
    elif kind is MetricKind.SUMMARY:
        entries = _summary_entries(name, metric.samples)
    elif kind is MetricKind.HISTOGRAM:
        entries = _histogram_entries(name, metric.samples)
    else:
        entries = []

    return MetricFamily(
        name=name,
        metric_type=metric_type,
        help_text=metric.documentation or "",
        entries=entries,
    )


def parse_prometheus_text(text: str) -> Dict[str, MetricFamily]:
    """Parse an exposition payload into families keyed by exported name.

    Families keep the order they appear in the payload. Raises ParseError
    if the payload is malformed.
    """
    families: Dict[str, MetricFamily] = {}
    declared_counters = _declared_counters(text)

    try:
        parsed = list(text_string_to_metric_families(text))
    except (ValueError, IndexError) as e:
        raise ParseError(f"failed to parse metrics: {e}") from e

    for metric in parsed:
        family = _build_family(metric, declared_counters)
        existing = families.get(family.name)
        if existing is not None and existing.metric_type == family.metric_type:
            existing.entries.extend(family.entries)
        else:
            families[family.name] = family

    return families
