"""MongoDB exporter: publishes MongoDB diagnostics as Prometheus metrics."""

__version__ = "0.1.0"
