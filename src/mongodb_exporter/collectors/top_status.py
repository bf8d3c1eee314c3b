"""top: per-collection operation time and counts, plus read/write totals."""
from typing import Dict, Iterator, Tuple

from prometheus_client.core import Metric
from pydantic import BaseModel, Field, field_validator

from mongodb_exporter.categories import TOP_OPERATION_FIELDS, CategoryAggregator, OpCounter
from mongodb_exporter.collectors.base import SubCollector
from mongodb_exporter.gauges import MetricFamily, SnapshotGaugeSet


class TopCounter(BaseModel):
    time: float = 0
    count: float = 0


class TopStatus(BaseModel):
    totals: Dict[str, Dict[str, TopCounter]] = Field(default_factory=dict)

    @field_validator("totals", mode="before")
    @classmethod
    def drop_note(cls, v):
        # `totals` carries a free-text "note" entry next to the namespaces.
        if isinstance(v, dict):
            return {ns: stats for ns, stats in v.items() if isinstance(stats, dict)}
        return v


def split_namespace(namespace: str) -> Tuple[str, str]:
    """Split ``db.collection.with.dots`` into database and collection."""
    database, _, collection = namespace.partition(".")
    return database, collection


class TopStatusCollector(SubCollector):
    name = "top"

    def __init__(self, aggregator: CategoryAggregator = None):
        super().__init__(SnapshotGaugeSet(
            MetricFamily("top_time_seconds_total", "The top command provides operation time, in seconds, for each database collection", ["type", "database", "collection"]),
            MetricFamily("top_count_total", "The top command provides operation count for each database collection", ["type", "database", "collection"]),
            MetricFamily("top_time_seconds_aggregate_total", "An aggregate counter for top time seconds for read/write (does not include locks)", ["type"]),
            MetricFamily("top_count_aggregate_total", "An aggregate counter for top operations for read/write (does not include locks)", ["type"]),
        ))
        self.aggregator = aggregator or CategoryAggregator()

    def fetch(self, session, max_time_ms: int) -> TopStatus:
        return TopStatus.model_validate(session.run_command("admin", "top", max_time_ms))

    def export(self, top: TopStatus) -> Iterator[Metric]:
        totals = self.aggregator.new_totals()
        g = self.gauges
        with g.locked():
            for namespace, stats in top.totals.items():
                database, collection = split_namespace(namespace)
                per_op = {
                    TOP_OPERATION_FIELDS[field]: OpCounter(counter.time, counter.count)
                    for field, counter in stats.items()
                    if field in TOP_OPERATION_FIELDS
                }
                series, totals = self.aggregator.aggregate(per_op, totals)
                for op in series:
                    labels = {"type": op.op_type, "database": database, "collection": collection}
                    g.set("top_time_seconds_total", labels, op.time_seconds)
                    g.set("top_count_total", labels, op.count)

            for bucket, bucket_totals in totals.items():
                g.set("top_time_seconds_aggregate_total", {"type": bucket}, bucket_totals.time_seconds)
                g.set("top_count_aggregate_total", {"type": bucket}, bucket_totals.count)

            return g.export_and_reset()
