"""connPoolStats: outgoing connection pools and replica-set host ping times."""
from typing import Dict, Iterator, List, Optional

from prometheus_client.core import Metric
from pydantic import BaseModel, Field

from mongodb_exporter.collectors.base import SubCollector
from mongodb_exporter.gauges import MetricFamily, SnapshotGaugeSet

SUBSYSTEM = "connpoolstats"


class ReplicaSetHostStats(BaseModel):
    addr: str
    pingTimeMillis: Optional[float] = None


class ReplicaSetStats(BaseModel):
    hosts: List[ReplicaSetHostStats] = Field(default_factory=list)


class ConnPoolStats(BaseModel):
    totalInUse: float = 0
    totalAvailable: float = 0
    totalCreated: float = 0
    totalRefreshing: float = 0
    numClientConnections: float = 0
    numAScopedConnections: float = 0
    replicaSets: Dict[str, ReplicaSetStats] = Field(default_factory=dict)


class ConnPoolStatsCollector(SubCollector):
    name = "connpoolstats"

    def __init__(self):
        super().__init__(SnapshotGaugeSet(
            MetricFamily("connections_in_use", "Corresponds to the total number of client connections to mongo currently in use", subsystem=SUBSYSTEM),
            MetricFamily("connections_available", "Corresponds to the total number of client connections to mongo that are currently available", subsystem=SUBSYSTEM),
            MetricFamily("connections_created_total", "Corresponds to the total number of client connections to mongo created since instance start", subsystem=SUBSYSTEM),
            MetricFamily("connections_refreshing", "Corresponds to the total number of client connections to mongo that are currently refreshing", subsystem=SUBSYSTEM),
            MetricFamily("client_connections", "Corresponds to the number of active and stored outgoing synchronous connections from the current instance to other members of the sharded cluster or replica set", subsystem=SUBSYSTEM),
            MetricFamily("scoped_connections", "Corresponds to the number of active and stored outgoing scoped synchronous connections from the current instance to other members of the sharded cluster or replica set", subsystem=SUBSYSTEM),
            MetricFamily("ping_time_seconds", "Corresponds to the ping time from this mongos to the corresponding host in seconds", ["host", "rs"], subsystem=SUBSYSTEM),
        ))

    def fetch(self, session, max_time_ms: int) -> ConnPoolStats:
        return ConnPoolStats.model_validate(session.run_command("admin", "connPoolStats", max_time_ms))

    def export(self, stats: ConnPoolStats) -> Iterator[Metric]:
        g = self.gauges
        with g.locked():
            g.set("connections_in_use", None, stats.totalInUse)
            g.set("connections_available", None, stats.totalAvailable)
            g.set("connections_created_total", None, stats.totalCreated)
            g.set("connections_refreshing", None, stats.totalRefreshing)
            g.set("client_connections", None, stats.numClientConnections)
            g.set("scoped_connections", None, stats.numAScopedConnections)

            for replica_set, rs_stats in stats.replicaSets.items():
                for host in rs_stats.hosts:
                    if host.pingTimeMillis is None:
                        continue
                    g.set("ping_time_seconds", {"host": host.addr, "rs": replica_set}, host.pingTimeMillis / 1000.0)

            return g.export_and_reset()
