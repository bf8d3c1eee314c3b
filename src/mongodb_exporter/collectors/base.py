"""Base class for sub-collectors."""
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Iterator, List, Optional
import logging

from prometheus_client.core import Metric
from pydantic import ValidationError
from pymongo.errors import PyMongoError

from mongodb_exporter.gauges import SnapshotGaugeSet

logger = logging.getLogger(__name__)

# Failures that mean "no usable payload this pull" rather than a bug.
FETCH_ERRORS = (PyMongoError, ValidationError, KeyError, TypeError, ValueError)


class CollectorError(Exception):
    """A sub-collector could not produce metrics for this pull."""

    def __init__(self, collector: str, cause: BaseException):
        super().__init__(f"{collector}: {cause}")
        self.collector = collector
        self.cause = cause


def bson_seconds(value: Any) -> Any:
    """Convert BSON dates and timestamps to epoch seconds.

    Meant for ``mode='before'`` field validators; anything else passes
    through untouched for pydantic to validate.
    """
    if isinstance(value, datetime):
        # pymongo decodes BSON dates as naive UTC unless tz_aware is set.
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()
    # bson.timestamp.Timestamp
    if hasattr(value, "time") and hasattr(value, "inc"):
        return float(value.time)
    return value


class SubCollector(ABC):
    """Fetches one diagnostic payload and maps it onto a gauge set.

    Subclasses build their ``SnapshotGaugeSet`` in ``__init__`` and
    implement ``fetch`` and ``export``. Instances live for the whole process,
    and so does the metric state they own.
    """

    name: str = ""

    def __init__(self, gauges: SnapshotGaugeSet):
        self.gauges = gauges

    @abstractmethod
    def fetch(self, session, max_time_ms: int) -> Optional[Any]:
        """Return a decoded payload, or None when there is nothing to export."""

    @abstractmethod
    def export(self, payload: Any) -> Iterator[Metric]:
        """Map the payload onto the gauge set and publish a snapshot."""

    def describe(self) -> List[Metric]:
        return self.gauges.describe()

    def collect(self, session, max_time_ms: int) -> List[Metric]:
        """Fetch and export. Fetch failures raise CollectorError."""
        try:
            payload = self.fetch(session, max_time_ms)
        except FETCH_ERRORS as e:
            logger.error(f"Failed to fetch {self.name} payload: {e}")
            raise CollectorError(self.name, e) from e

        if payload is None:
            logger.debug(f"No {self.name} payload this pull")
            return []

        metrics = list(self.export(payload))
        logger.debug(f"Exported {len(metrics)} {self.name} metric families")
        return metrics
