"""collStats for every collection of every database that is not excluded."""
from typing import Iterable, Iterator, List
import logging

from bson import SON
from prometheus_client.core import Metric
from pydantic import BaseModel

from mongodb_exporter.collectors.base import FETCH_ERRORS, SubCollector
from mongodb_exporter.collectors.database_status import DEFAULT_EXCLUDED_DATABASES
from mongodb_exporter.gauges import MetricFamily, SnapshotGaugeSet

logger = logging.getLogger(__name__)

SUBSYSTEM = "collection"


class CollectionStats(BaseModel):
    ns: str
    count: float = 0
    size: float = 0
    avgObjSize: float = 0
    storageSize: float = 0
    totalIndexSize: float = 0


class CollectionStatusCollector(SubCollector):
    name = "collection"

    def __init__(self, excluded_databases: Iterable[str] = DEFAULT_EXCLUDED_DATABASES):
        super().__init__(SnapshotGaugeSet(
            MetricFamily("total_objects", "The number of objects or documents in this collection", ["ns"], subsystem=SUBSYSTEM),
            MetricFamily("size_bytes", "The total size in memory of all records in a collection", ["ns"], subsystem=SUBSYSTEM),
            MetricFamily("avg_objsize_bytes", "The average size of an object in the collection", ["ns"], subsystem=SUBSYSTEM),
            MetricFamily("storage_size_bytes", "The total amount of storage allocated to this collection for document storage", ["ns"], subsystem=SUBSYSTEM),
            MetricFamily("index_size_bytes", "The total size of all indexes", ["ns"], subsystem=SUBSYSTEM),
        ))
        self.excluded_databases = frozenset(excluded_databases)

    def fetch(self, session, max_time_ms: int) -> List[CollectionStats]:
        stats = []
        for db in session.database_names(max_time_ms):
            if db in self.excluded_databases:
                continue
            try:
                collections = session.collection_names(db, max_time_ms)
            except FETCH_ERRORS as e:
                logger.warning(f"Failed to get collection names for db={db!r}: {e}")
                continue

            for collection in collections:
                try:
                    result = session.run_command(
                        db, SON([("collStats", collection), ("scale", 1)]), max_time_ms
                    )
                    stats.append(CollectionStats.model_validate(result))
                except FETCH_ERRORS as e:
                    logger.warning(f"Skipping collStats for {db}.{collection}: {e}")
        return stats

    def export(self, stats: List[CollectionStats]) -> Iterator[Metric]:
        g = self.gauges
        with g.locked():
            for coll in stats:
                labels = {"ns": coll.ns}
                g.set("total_objects", labels, coll.count)
                g.set("size_bytes", labels, coll.size)
                g.set("avg_objsize_bytes", labels, coll.avgObjSize)
                g.set("storage_size_bytes", labels, coll.storageSize)
                g.set("index_size_bytes", labels, coll.totalIndexSize)
            logger.debug(f"Exporting collection metrics for {len(stats)} collections")
            return g.export_and_reset()
