"""
Base collector interface.

A collector is anything that can hand back one raw Prometheus text
payload. This keeps the flattening and storage layers decoupled from
where the payload actually comes from (HTTP endpoint, fixture, etc).
"""

from abc import ABC, abstractmethod


class MetricsCollector(ABC):
    """Interface for all metrics sources."""

    @abstractmethod
    def fetch(self) -> str:
        """Fetch one exposition payload. Raises FetchError on failure."""
        ...

    @abstractmethod
    def name(self) -> str:
        """Human-readable name for this source."""
        ...

    def close(self):
        pass
