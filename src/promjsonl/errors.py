"""
Error taxonomy for the exporter.

ConfigError is fatal at startup. Everything else is raised from inside a
single collection cycle: the loop logs it, abandons that cycle, and tries
again at the next tick.
"""

from __future__ import annotations

from typing import Optional


class ExporterError(Exception):
    """Base class for all exporter errors."""


class ConfigError(ExporterError):
    """Invalid or unusable configuration. Not recoverable."""


class FetchError(ExporterError):
    """The metrics endpoint could not be scraped."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ParseError(ExporterError):
    """The endpoint returned something that isn't valid exposition text."""


class WriteError(ExporterError):
    """Appending samples to the output file failed (I/O or encoding)."""
