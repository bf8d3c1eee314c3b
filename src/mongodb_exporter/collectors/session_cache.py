"""serverStatus.logicalSessionRecordCache: the logical session cache."""
from typing import Iterator, Optional

from prometheus_client.core import Metric
from pydantic import BaseModel

from mongodb_exporter.collectors.base import SubCollector
from mongodb_exporter.collectors.server_status import fetch_server_status
from mongodb_exporter.gauges import MetricFamily, SnapshotGaugeSet


class SessionCacheStats(BaseModel):
    activeSessionsCount: float = 0
    sessionsCollectionJobCount: float = 0
    transactionReaperJobCount: float = 0


class SessionCacheCollector(SubCollector):
    name = "session_cache"

    def __init__(self):
        super().__init__(SnapshotGaugeSet(
            MetricFamily("active_sessions_count", "total number of active sessions in cache"),
            MetricFamily("sessions_collection_job_count", "number of times the refresh process has run on the config.system.sessions collection", subsystem="session_cache"),
            MetricFamily("transaction_reaper_job_count", "number of times the transaction record cleanup process has run on the config.transactions collection", subsystem="session_cache"),
        ))

    def fetch(self, session, max_time_ms: int) -> Optional[SessionCacheStats]:
        section = fetch_server_status(session, max_time_ms).get("logicalSessionRecordCache")
        if section is None:
            return None
        return SessionCacheStats.model_validate(section)

    def export(self, stats: SessionCacheStats) -> Iterator[Metric]:
        with self.gauges.locked():
            self.gauges.set("active_sessions_count", None, stats.activeSessionsCount)
            self.gauges.set("sessions_collection_job_count", None, stats.sessionsCollectionJobCount)
            self.gauges.set("transaction_reaper_job_count", None, stats.transactionReaperJobCount)
            return self.gauges.export_and_reset()
