"""getParameter: selected numeric server parameters."""
from numbers import Real
from typing import Dict, Iterable, Iterator, Optional
import logging

from bson import SON
from prometheus_client.core import Metric

from mongodb_exporter.collectors.base import FETCH_ERRORS, SubCollector
from mongodb_exporter.config import KNOWN_PARAMETERS
from mongodb_exporter.gauges import MetricFamily, SnapshotGaugeSet

logger = logging.getLogger(__name__)

PARAMETER_HELP = {
    "cursorTimeoutMillis": "An integer that represents the cursorTimeoutMillis option in mongod",
    "ttlMonitorSleepSecs": "The interval, in seconds, at which the TTL monitor looks for expired documents",
    "transactionLifetimeLimitSeconds": "The lifetime, in seconds, of multi-document transactions",
}


class ParametersCollector(SubCollector):
    name = "parameters"

    def __init__(self, parameter_names: Optional[Iterable[str]] = None):
        super().__init__(SnapshotGaugeSet(*(
            MetricFamily(metric, PARAMETER_HELP[parameter], subsystem="parameters")
            for parameter, metric in KNOWN_PARAMETERS.items()
        )))
        self.parameter_names = list(KNOWN_PARAMETERS if parameter_names is None else parameter_names)

    def fetch(self, session, max_time_ms: int) -> Optional[Dict[str, float]]:
        values: Dict[str, float] = {}
        last_error = None
        for parameter in self.parameter_names:
            try:
                result = session.run_command("admin", SON([("getParameter", 1), (parameter, 1)]), max_time_ms)
            except FETCH_ERRORS as e:
                logger.warning(f"Failed to get parameter value for {parameter}: {e}")
                last_error = e
                continue

            value = result.get(parameter)
            if isinstance(value, bool) or not isinstance(value, Real):
                logger.error(f"Unexpected response from getParameter command for {parameter}: {result}")
                continue
            values[parameter] = float(value)

        if not values and last_error is not None:
            raise last_error
        return values or None

    def export(self, values: Dict[str, float]) -> Iterator[Metric]:
        with self.gauges.locked():
            for parameter, value in values.items():
                self.gauges.set(KNOWN_PARAMETERS[parameter], None, value)
            return self.gauges.export_and_reset()
