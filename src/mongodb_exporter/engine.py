"""Scrape coordinator: one pull cycle per registry collection."""
from dataclasses import dataclass, field
from typing import Dict, List, Optional
import logging
import threading
import time

from prometheus_client.core import Metric

from mongodb_exporter.collectors import CollectorError, SubCollector, build_collectors
from mongodb_exporter.config import Config
from mongodb_exporter.gauges import MetricFamily, SnapshotGaugeSet
from mongodb_exporter.prom_exporter import SelfMetrics

logger = logging.getLogger(__name__)


@dataclass
class ScrapeReport:
    """Outcome of the most recent pull, for the control API."""
    timestamp: float
    up: bool
    duration_s: float = 0.0
    collectors: Dict[str, str] = field(default_factory=dict)


class ScrapeCoordinator:
    """Custom prometheus_client collector that polls MongoDB on every pull.

    The coordinator does not serialize pulls. Each sub-collector guards its
    own gauge set, so concurrent pulls only interleave between whole groups.
    """

    def __init__(
        self,
        config: Config,
        connector,
        collectors: Optional[List[SubCollector]] = None,
        self_metrics: Optional[SelfMetrics] = None,
    ):
        self.config = config
        self.connector = connector
        self.collectors = collectors if collectors is not None else build_collectors(config.collectors)
        self.self_metrics = self_metrics
        self.max_time_ms = config.collectors.max_time_ms

        self.up = SnapshotGaugeSet(
            MetricFamily("up", "To show if we can connect to mongodb instance"),
        )

        self._report_lock = threading.Lock()
        self._last_report: Optional[ScrapeReport] = None

        logger.info(
            f"Scrape coordinator initialized with collectors: "
            f"{[collector.name for collector in self.collectors]}"
        )

    @property
    def last_report(self) -> Optional[ScrapeReport]:
        with self._report_lock:
            return self._last_report

    def describe(self) -> List[Metric]:
        descriptions = self.up.describe()
        for collector in self.collectors:
            descriptions.extend(collector.describe())
        return descriptions

    def _export_up(self, up: bool) -> List[Metric]:
        with self.up.locked():
            self.up.set("up", None, 1 if up else 0)
            return list(self.up.export_and_reset())

    def collect(self) -> List[Metric]:
        """Run one pull cycle and return the combined metric stream."""
        start = time.time()
        try:
            session = self.connector.acquire()
        except Exception as e:
            logger.error(f"Error acquiring MongoDB session: {e}", exc_info=True)
            session = None

        if session is None:
            logger.warning("MongoDB unreachable, skipping sub-collectors")
            metrics = self._export_up(False)
            self._finish(ScrapeReport(start, False), start)
            return metrics

        metrics = self._export_up(True)
        report = ScrapeReport(start, True)
        try:
            for collector in self.collectors:
                metrics.extend(self._run_collector(collector, session, report))
        finally:
            session.close()

        self._finish(report, start)
        return metrics

    def _run_collector(self, collector: SubCollector, session, report: ScrapeReport) -> List[Metric]:
        collector_start = time.time()
        logger.debug(f"Collecting {collector.name}")
        metrics: List[Metric] = []
        try:
            metrics = collector.collect(session, self.max_time_ms)
            report.collectors[collector.name] = "ok"
        except CollectorError as e:
            # Already logged by the collector.
            self._record_failure(collector.name, e.cause, report)
        except Exception as e:
            logger.error(f"Collector '{collector.name}' failed: {e}", exc_info=True)
            self._record_failure(collector.name, e, report)

        if self.self_metrics:
            self.self_metrics.set_collector_duration(collector.name, time.time() - collector_start)
        return metrics

    def _record_failure(self, name: str, error: BaseException, report: ScrapeReport):
        report.collectors[name] = f"error: {error}"
        if self.self_metrics:
            self.self_metrics.record_collector_error(name)

    def _finish(self, report: ScrapeReport, start: float):
        report.duration_s = time.time() - start
        with self._report_lock:
            self._last_report = report
        if self.self_metrics:
            self.self_metrics.record_scrape(report.duration_s)
        logger.info(
            f"Pull finished: up={int(report.up)} in {report.duration_s:.3f}s, "
            f"{sum(1 for status in report.collectors.values() if status != 'ok')} collector errors"
        )
