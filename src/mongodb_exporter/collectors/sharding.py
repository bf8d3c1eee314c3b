"""serverStatus.sharding: config server optime and chunk size."""
from typing import Iterator, Optional

from prometheus_client.core import Metric
from pydantic import BaseModel, Field, field_validator

from mongodb_exporter.collectors.base import SubCollector, bson_seconds
from mongodb_exporter.collectors.server_status import fetch_server_status
from mongodb_exporter.gauges import MetricFamily, SnapshotGaugeSet


class OpTime(BaseModel):
    ts: float = 0
    t: float = 0

    @field_validator("ts", mode="before")
    @classmethod
    def timestamp_seconds(cls, v):
        return bson_seconds(v)


class ShardingState(BaseModel):
    lastSeenConfigServerOpTime: OpTime = Field(default_factory=OpTime)
    maxChunkSizeInBytes: float = 0


class ShardingCollector(SubCollector):
    name = "sharding"

    def __init__(self):
        super().__init__(SnapshotGaugeSet(
            MetricFamily("last_seen_configserver_optime_timestamp", "Last seen config server optime's timestamp", subsystem="sharding"),
            MetricFamily("last_seen_configserver_optime_term", "Last seen config server optime's term", subsystem="sharding"),
            MetricFamily("max_chunk_size_bytes", "Maximum chunk size allowed in bytes", subsystem="sharding"),
        ))

    def fetch(self, session, max_time_ms: int) -> Optional[ShardingState]:
        section = fetch_server_status(session, max_time_ms).get("sharding")
        if section is None:
            return None
        return ShardingState.model_validate(section)

    def export(self, sharding: ShardingState) -> Iterator[Metric]:
        optime = sharding.lastSeenConfigServerOpTime
        with self.gauges.locked():
            self.gauges.set("last_seen_configserver_optime_timestamp", None, optime.ts)
            self.gauges.set("last_seen_configserver_optime_term", None, optime.t)
            self.gauges.set("max_chunk_size_bytes", None, sharding.maxChunkSizeInBytes)
            return self.gauges.export_and_reset()
