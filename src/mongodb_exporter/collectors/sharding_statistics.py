"""serverStatus.shardingStatistics: chunk migration and catalog cache counters."""
from typing import Iterator, List, Optional, Tuple

from prometheus_client.core import Metric
from pydantic import BaseModel, Field

from mongodb_exporter.collectors.base import SubCollector
from mongodb_exporter.collectors.server_status import fetch_server_status
from mongodb_exporter.gauges import MetricFamily, SnapshotGaugeSet

SUBSYSTEM = "sharding_statistics"


class CatalogCache(BaseModel):
    numDatabaseEntries: float = 0
    numCollectionEntries: float = 0
    countStaleConfigErrors: float = 0
    totalRefreshWaitTimeMicros: float = 0
    numActiveIncrementalRefreshes: float = 0
    countIncrementalRefreshesStarted: float = 0
    numActiveFullRefreshes: float = 0
    countFullRefreshesStarted: float = 0
    countFailedRefreshes: float = 0


class ShardingStatistics(BaseModel):
    countStaleConfigErrors: float = 0
    countDonorMoveChunkStarted: float = 0
    totalDonorChunkCloneTimeMillis: float = 0
    totalCriticalSectionCommitTimeMillis: float = 0
    totalCriticalSectionTimeMillis: float = 0
    catalogCache: CatalogCache = Field(default_factory=CatalogCache)


# (payload field, metric name, help)
SHARDING_FIELDS: List[Tuple[str, str, str]] = [
    ("countStaleConfigErrors", "count_stale_config_errors_total",
     "The total number of times that threads hit stale config exception. Since a stale config exception triggers a refresh of the metadata, this number is roughly proportional to the number of metadata refreshes."),
    ("countDonorMoveChunkStarted", "count_donor_move_chunk_started_total",
     "The total number of times that the moveChunk command has started on the shard, of which this node is a member, as part of a chunk migration process. This increasing number does not consider whether the chunk migrations succeed or not."),
    ("totalDonorChunkCloneTimeMillis", "total_donor_chunk_clone_time_milliseconds",
     "The cumulative time, in milliseconds, taken by the clone phase of the chunk migrations from this shard, of which this node is a member."),
    ("totalCriticalSectionCommitTimeMillis", "total_critical_section_commit_time_milliseconds",
     "The cumulative time, in milliseconds, taken by the update metadata phase of the chunk migrations from this shard, of which this node is a member. During the update metadata phase, all operations on the collection are blocked."),
    ("totalCriticalSectionTimeMillis", "total_critical_section_time_milliseconds",
     "The cumulative time, in milliseconds, taken by the catch-up phase and the update metadata phase of the chunk migrations from this shard, of which this node is a member."),
]

CATALOG_CACHE_FIELDS: List[Tuple[str, str, str]] = [
    ("numDatabaseEntries", "catalog_cache_num_database_entries",
     "The total number of database entries that are currently in the catalog cache."),
    ("numCollectionEntries", "catalog_cache_num_collection_entries",
     "The total number of collection entries (across all databases) that are currently in the catalog cache."),
    ("countStaleConfigErrors", "catalog_cache_count_stale_config_errors",
     "The total number of times that threads hit stale config exception. A stale config exception triggers a refresh of the metadata."),
    ("totalRefreshWaitTimeMicros", "catalog_cache_total_refresh_wait_time_microseconds",
     "The cumulative time, in microseconds, that threads had to wait for a refresh of the metadata."),
    ("numActiveIncrementalRefreshes", "catalog_cache_num_active_incremental_refreshes",
     "The number of incremental catalog cache refreshes that are currently waiting to complete."),
    ("countIncrementalRefreshesStarted", "catalog_cache_count_incremental_refreshes_started",
     "The cumulative number of incremental refreshes that have started."),
    ("numActiveFullRefreshes", "catalog_cache_num_active_full_refreshes",
     "The number of full catalog cache refreshes that are currently waiting to complete."),
    ("countFullRefreshesStarted", "catalog_cache_count_full_refreshes_started",
     "The cumulative number of full refreshes that have started."),
    ("countFailedRefreshes", "catalog_cache_count_failed_refreshes",
     "The cumulative number of full or incremental refreshes that have failed."),
]


class ShardingStatisticsCollector(SubCollector):
    name = "sharding_statistics"

    def __init__(self):
        super().__init__(SnapshotGaugeSet(*(
            MetricFamily(metric, help_text, subsystem=SUBSYSTEM)
            for _, metric, help_text in SHARDING_FIELDS + CATALOG_CACHE_FIELDS
        )))

    def fetch(self, session, max_time_ms: int) -> Optional[ShardingStatistics]:
        section = fetch_server_status(session, max_time_ms).get("shardingStatistics")
        if section is None:
            return None
        return ShardingStatistics.model_validate(section)

    def export(self, stats: ShardingStatistics) -> Iterator[Metric]:
        with self.gauges.locked():
            for field, metric, _ in SHARDING_FIELDS:
                self.gauges.set(metric, None, getattr(stats, field))
            for field, metric, _ in CATALOG_CACHE_FIELDS:
                self.gauges.set(metric, None, getattr(stats.catalogCache, field))
            return self.gauges.export_and_reset()
