"""dbStats for every database that is not excluded."""
from typing import Iterable, Iterator, List
import logging

from bson import SON
from prometheus_client.core import Metric
from pydantic import BaseModel

from mongodb_exporter.collectors.base import FETCH_ERRORS, SubCollector
from mongodb_exporter.gauges import MetricFamily, SnapshotGaugeSet

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDED_DATABASES = ("admin", "test")


class DatabaseStats(BaseModel):
    db: str
    collections: float = 0
    objects: float = 0
    indexes: float = 0
    dataSize: float = 0
    storageSize: float = 0
    indexSize: float = 0


class DatabaseStatusCollector(SubCollector):
    name = "database"

    def __init__(self, excluded_databases: Iterable[str] = DEFAULT_EXCLUDED_DATABASES):
        super().__init__(SnapshotGaugeSet(
            MetricFamily("collections_total", "Contains a count of the number of collections in that database", ["db"], subsystem="db"),
            MetricFamily("objects_total", "Contains a count of the number of objects (i.e. documents) in the database across all collections", ["db"], subsystem="db"),
            MetricFamily("indexes_total", "Contains a count of the total number of indexes across all collections in the database", ["db"], subsystem="db"),
            MetricFamily("data_size_bytes", "The total size in bytes of the uncompressed data held in this database", ["db"], subsystem="db"),
            MetricFamily("storage_size_bytes", "The total amount of space in bytes allocated to collections in this database for document storage", ["db"], subsystem="db"),
            MetricFamily("index_size_bytes", "The total size in bytes of all indexes created on this database", ["db"], subsystem="db"),
        ))
        self.excluded_databases = frozenset(excluded_databases)

    def fetch(self, session, max_time_ms: int) -> List[DatabaseStats]:
        stats = []
        for db in session.database_names(max_time_ms):
            if db in self.excluded_databases:
                continue
            try:
                result = session.run_command(db, SON([("dbStats", 1), ("scale", 1)]), max_time_ms)
                stats.append(DatabaseStats.model_validate(result))
            except FETCH_ERRORS as e:
                logger.warning(f"Skipping dbStats for db={db!r}: {e}")
        return stats

    def export(self, stats: List[DatabaseStats]) -> Iterator[Metric]:
        g = self.gauges
        with g.locked():
            for db in stats:
                labels = {"db": db.db}
                g.set("collections_total", labels, db.collections)
                g.set("objects_total", labels, db.objects)
                g.set("indexes_total", labels, db.indexes)
                g.set("data_size_bytes", labels, db.dataSize)
                g.set("storage_size_bytes", labels, db.storageSize)
                g.set("index_size_bytes", labels, db.indexSize)
            logger.info(f"Exporting database metrics for {len(stats)} databases")
            return g.export_and_reset()
