"""
Wildcard matching for --metricsfilter patterns.

Only `*` is special (zero or more characters). Everything else is a
literal, compared case-sensitively.
"""

from __future__ import annotations

from typing import Iterable


def matches(pattern: str, name: str) -> bool:
    if "*" not in pattern:
        return pattern == name

    segments = pattern.split("*")
    head, middle, tail = segments[0], segments[1:-1], segments[-1]

    # Head is anchored at the start, tail at the end ("" when the
    # pattern ends with *). Middle segments are found left to right.
    if not name.startswith(head):
        return False
    cursor = len(head)

    for segment in middle:
        if not segment:
            continue
        pos = name.find(segment, cursor)
        if pos == -1:
            return False
        cursor = pos + len(segment)

    return len(name) - len(tail) >= cursor and name.endswith(tail)


def matches_any(patterns: Iterable[str], name: str) -> bool:
    """True if `name` matches at least one pattern. No patterns matches everything."""
    patterns = list(patterns)
    if not patterns:
        return True
    return any(matches(p, name) for p in patterns)
