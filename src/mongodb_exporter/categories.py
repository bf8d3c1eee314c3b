"""Read/write category aggregation over per-operation-type counters."""
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple

READ = "Read"
WRITE = "Write"

# Keys of one namespace entry in the `top` command output, mapped to the
# operation-type label values we publish.
TOP_OPERATION_FIELDS: Dict[str, str] = {
    "total": "Total",
    "readLock": "ReadLock",
    "writeLock": "WriteLock",
    "queries": "Queries",
    "getmore": "GetMore",
    "insert": "Insert",
    "update": "Update",
    "remove": "Remove",
    "commands": "Commands",
}

# Lock wait times and the grand total are deliberately unclassified.
TOP_OPERATION_CATEGORIES: Dict[str, str] = {
    "Queries": READ,
    "GetMore": READ,
    "Commands": READ,
    "Insert": WRITE,
    "Update": WRITE,
    "Remove": WRITE,
}

MICROSECONDS_PER_SECOND = 1e6


@dataclass
class OpCounter:
    """Raw time (microseconds) and count for one operation type."""
    time: float = 0.0
    count: float = 0.0


@dataclass
class OpSeries:
    op_type: str
    time_seconds: float
    count: float


@dataclass
class BucketTotals:
    time_seconds: float = 0.0
    count: float = 0.0


class CategoryAggregator:
    """Sums per-operation counters into per-category totals."""

    def __init__(self, categories: Optional[Mapping[str, str]] = None):
        self.categories = dict(TOP_OPERATION_CATEGORIES if categories is None else categories)
        self.buckets = sorted(set(self.categories.values()))

    def new_totals(self) -> Dict[str, BucketTotals]:
        return {bucket: BucketTotals() for bucket in self.buckets}

    def aggregate(
        self,
        per_op_stats: Mapping[str, OpCounter],
        totals: Optional[Dict[str, BucketTotals]] = None,
    ) -> Tuple[List[OpSeries], Dict[str, BucketTotals]]:
        """Convert per-op stats to seconds and fold them into bucket totals.

        Pass the same ``totals`` across calls to accumulate over several
        namespaces.
        """
        if totals is None:
            totals = self.new_totals()

        series: List[OpSeries] = []
        for op_type, counter in per_op_stats.items():
            time_seconds = counter.time / MICROSECONDS_PER_SECOND
            series.append(OpSeries(op_type, time_seconds, counter.count))

            bucket = self.categories.get(op_type)
            if bucket is None:
                continue
            bucket_totals = totals.setdefault(bucket, BucketTotals())
            bucket_totals.time_seconds += time_seconds
            bucket_totals.count += counter.count

        return series, totals
