"""promjsonl - Prometheus metrics to JSON Lines exporter."""

__version__ = "0.1.0"
