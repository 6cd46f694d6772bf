"""
Flat sample record written to the JSONL output.

Every reading from a scraped metric family (a counter value, one histogram
bucket, a summary quantile) ends up as one FlatSample with no nesting,
so each output line can be read on its own.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional


@dataclass
class FlatSample:
    """A single self-contained metric reading."""

    timestamp: str
    name: str
    type: str
    value: float
    labels: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Return a plain dict in output field order."""
        return {
            "timestamp": self.timestamp,
            "name": self.name,
            "type": self.type,
            "value": self.value,
            "labels": dict(sorted(self.labels.items())),
        }


def format_timestamp(moment: Optional[datetime] = None) -> str:
    """RFC3339 in UTC with second precision, e.g. 2024-05-01T12:00:00Z."""
    if moment is None:
        moment = datetime.now(timezone.utc)
    elif moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def format_float(value: float) -> str:
    """Shortest round-trippable rendering for le / quantile label values.

    Infinities keep the exposition spelling (+Inf / -Inf), and whole
    numbers drop the trailing ".0" so 1.0 renders as "1".
    """
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    text = repr(float(value))
    if text.endswith(".0"):
        text = text[:-2]
    return text
