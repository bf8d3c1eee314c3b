"""Sub-collectors, one per diagnostic payload."""
from typing import List

from mongodb_exporter.collectors.base import CollectorError, SubCollector
from mongodb_exporter.collectors.collection_status import CollectionStatusCollector
from mongodb_exporter.collectors.conn_pool_stats import ConnPoolStatsCollector
from mongodb_exporter.collectors.current_op import CurrentOpCollector
from mongodb_exporter.collectors.database_status import DatabaseStatusCollector
from mongodb_exporter.collectors.parameters import ParametersCollector
from mongodb_exporter.collectors.replset_conf import ReplSetConfCollector
from mongodb_exporter.collectors.replset_status import ReplSetStatusCollector
from mongodb_exporter.collectors.server_status import ServerStatusCollector
from mongodb_exporter.collectors.session_cache import SessionCacheCollector
from mongodb_exporter.collectors.sharding import ShardingCollector
from mongodb_exporter.collectors.sharding_statistics import ShardingStatisticsCollector
from mongodb_exporter.collectors.top_status import TopStatusCollector
from mongodb_exporter.config import CollectorsConfig

# Pull order.
COLLECTOR_TYPES = (
    CurrentOpCollector,
    ServerStatusCollector,
    ShardingStatisticsCollector,
    SessionCacheCollector,
    ShardingCollector,
    ReplSetStatusCollector,
    ReplSetConfCollector,
    TopStatusCollector,
    DatabaseStatusCollector,
    CollectionStatusCollector,
    ConnPoolStatsCollector,
    ParametersCollector,
)


def build_collectors(config: CollectorsConfig) -> List[SubCollector]:
    """Instantiate the enabled sub-collectors in pull order."""
    enabled = {
        CurrentOpCollector: True,
        ServerStatusCollector: True,
        ShardingStatisticsCollector: config.sharding,
        SessionCacheCollector: True,
        ShardingCollector: config.sharding,
        ReplSetStatusCollector: config.replset,
        ReplSetConfCollector: config.replset,
        TopStatusCollector: config.top,
        DatabaseStatusCollector: config.database,
        CollectionStatusCollector: config.collection,
        ConnPoolStatsCollector: config.connpoolstats,
        ParametersCollector: config.parameters,
    }

    collectors: List[SubCollector] = []
    for collector_type in COLLECTOR_TYPES:
        if not enabled[collector_type]:
            continue
        if collector_type in (DatabaseStatusCollector, CollectionStatusCollector):
            collectors.append(collector_type(config.excluded_databases))
        elif collector_type is ParametersCollector:
            collectors.append(collector_type(config.parameter_names))
        else:
            collectors.append(collector_type())
    return collectors


__all__ = [
    "COLLECTOR_TYPES",
    "CollectorError",
    "SubCollector",
    "build_collectors",
] + [collector_type.__name__ for collector_type in COLLECTOR_TYPES]
