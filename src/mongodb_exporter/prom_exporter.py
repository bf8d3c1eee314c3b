"""Prometheus pull exporter using prometheus_client."""
from typing import Optional
from prometheus_client import (
    Counter, Gauge, Histogram,
    CollectorRegistry, generate_latest, start_http_server
)
import logging

from mongodb_exporter.config import WebConfig

logger = logging.getLogger(__name__)

SELF_METRICS_PREFIX = "mongodb_exporter_"


class PrometheusExporter:
    """Owns the collector registry and the HTTP pull endpoint."""

    def __init__(self, config: WebConfig, registry: Optional[CollectorRegistry] = None):
        self.config = config
        # Use a custom registry to avoid exporting default Python/process metrics
        self.registry = registry if registry is not None else CollectorRegistry()
        self._server = None

    def register(self, collector):
        """Register a custom collector (the scrape coordinator)."""
        try:
            self.registry.register(collector)
            logger.info(f"Registered collector {type(collector).__name__}")
        except ValueError as e:
            logger.error(f"Failed to register collector {type(collector).__name__}: {e}")
            raise

    def start(self):
        """Start Prometheus HTTP server."""
        try:
            self._server = start_http_server(
                self.config.port,
                addr=self.config.listen_address,
                registry=self.registry
            )
            logger.info(
                f"Prometheus exporter listening on "
                f"{self.config.listen_address}:{self.config.port}/metrics"
            )
        except Exception as e:
            logger.error(f"Failed to start Prometheus HTTP server: {e}")
            raise

    def render(self) -> str:
        """Run one pull and return the text exposition."""
        return generate_latest(self.registry).decode('utf-8')

    def stop(self):
        # start_http_server returns (server, thread) on prometheus_client >= 0.17
        if isinstance(self._server, tuple):
            server, _ = self._server
            server.shutdown()
        self._server = None


class SelfMetrics:
    """Self-monitoring metrics for the exporter."""

    def __init__(self, registry=None, prefix=SELF_METRICS_PREFIX):
        if registry is None:
            registry = CollectorRegistry()

        self.scrapes_total = Counter(
            f"{prefix}scrapes_total",
            "Total number of pulls served",
            registry=registry
        )

        self.scrape_duration_seconds = Histogram(
            f"{prefix}scrape_duration_seconds",
            "Duration of each pull in seconds",
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
            registry=registry
        )

        self.collector_errors_total = Counter(
            f"{prefix}collector_errors_total",
            "Total number of sub-collector failures",
            ["collector"],
            registry=registry
        )

        self.collector_duration_seconds = Gauge(
            f"{prefix}collector_duration_seconds",
            "Duration of the latest run of each sub-collector in seconds",
            ["collector"],
            registry=registry
        )

    def record_scrape(self, duration: float):
        """Record one pull."""
        self.scrapes_total.inc()
        self.scrape_duration_seconds.observe(duration)

    def record_collector_error(self, collector: str):
        """Record a sub-collector failure."""
        self.collector_errors_total.labels(collector=collector).inc()

    def set_collector_duration(self, collector: str, duration: float):
        """Set the latest sub-collector duration."""
        self.collector_duration_seconds.labels(collector=collector).set(duration)
