"""Tests for the flat sample record and its rendering helpers."""

import math
from datetime import datetime, timedelta, timezone

from promjsonl.metrics import FlatSample, format_float, format_timestamp


def test_format_float_shortest_form():
    assert format_float(0.5) == "0.5"
    assert format_float(0.99) == "0.99"
    assert format_float(0.1) == "0.1"
    assert format_float(1.0) == "1"
    assert format_float(2.5e-05) == "2.5e-05"


def test_format_float_special_values():
    assert format_float(math.inf) == "+Inf"
    assert format_float(-math.inf) == "-Inf"
    assert format_float(math.nan) == "NaN"


def test_format_timestamp_is_rfc3339_utc():
    moment = datetime(2024, 5, 1, 14, 30, 5, 123456, tzinfo=timezone(timedelta(hours=2)))
    assert format_timestamp(moment) == "2024-05-01T12:30:05Z"


def test_format_timestamp_defaults_to_now():
    stamp = format_timestamp()
    assert stamp.endswith("Z")
    assert len(stamp) == len("2024-05-01T12:30:05Z")


def test_to_dict_field_order():
    sample = FlatSample(timestamp="2024-05-01T12:00:00Z", name="up", type="gauge",
                        value=1.0, labels={"job": "a"})
    d = sample.to_dict()
    assert list(d) == ["timestamp", "name", "type", "value", "labels"]
    assert d["labels"] == {"job": "a"}


def test_labels_default_to_empty():
    sample = FlatSample(timestamp="t", name="up", type="gauge", value=1.0)
    assert sample.to_dict()["labels"] == {}
