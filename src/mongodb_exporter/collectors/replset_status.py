"""replSetGetStatus: replica-set health as seen from this member."""
from typing import Iterator, List, Optional

from prometheus_client.core import Metric
from pydantic import BaseModel, Field, field_validator

from mongodb_exporter.collectors.base import SubCollector, bson_seconds
from mongodb_exporter.gauges import MetricFamily, SnapshotGaugeSet

SUBSYSTEM = "replset"


class MemberStatus(BaseModel):
    name: str
    health: float = 0
    state: float = 0
    uptime: float = 0
    optimeDate: Optional[float] = None
    lastHeartbeat: Optional[float] = None
    lastHeartbeatRecv: Optional[float] = None
    pingMs: Optional[float] = None
    configVersion: Optional[float] = None

    @field_validator("optimeDate", "lastHeartbeat", "lastHeartbeatRecv", mode="before")
    @classmethod
    def date_seconds(cls, v):
        return bson_seconds(v)


class ReplSetStatus(BaseModel):
    set: str
    myState: float = 0
    term: Optional[float] = None
    heartbeatIntervalMillis: Optional[float] = None
    members: List[MemberStatus] = Field(default_factory=list)


class ReplSetStatusCollector(SubCollector):
    name = "replset_status"

    def __init__(self):
        super().__init__(SnapshotGaugeSet(
            MetricFamily("number_of_members", "The number of replica set members.", ["set"], subsystem=SUBSYSTEM),
            MetricFamily("my_state", "An integer between 0 and 10 that represents the replica state of the current member", ["set"], subsystem=SUBSYSTEM),
            MetricFamily("term", "The election count for the replica set, as known to this replica set member", ["set"], subsystem=SUBSYSTEM),
            MetricFamily("heartbeat_interval_millis", "The frequency in milliseconds of the heartbeats", ["set"], subsystem=SUBSYSTEM),
            MetricFamily("member_state", "The value of state is an integer between 0 and 10 that represents the replica state of the member.", ["set", "name"], subsystem=SUBSYSTEM),
            MetricFamily("member_health", "This field conveys if the member is up (1) or down (0).", ["set", "name"], subsystem=SUBSYSTEM),
            MetricFamily("member_uptime", "The uptime field holds a value that reflects the number of seconds that this member has been online.", ["set", "name"], subsystem=SUBSYSTEM),
            MetricFamily("member_optime_date", "The timestamp of the last entry in the oplog that this member applied, as unix seconds.", ["set", "name"], subsystem=SUBSYSTEM),
            MetricFamily("member_last_heartbeat", "The lastHeartbeat value provides a timestamp of the last time this member received a heartbeat from this member, as unix seconds.", ["set", "name"], subsystem=SUBSYSTEM),
            MetricFamily("member_last_heartbeat_recv", "The lastHeartbeatRecv value provides a timestamp of the last time this member received a heartbeat from this member, as unix seconds.", ["set", "name"], subsystem=SUBSYSTEM),
            MetricFamily("member_ping_seconds", "The round-trip time from this member to the remote member, in seconds.", ["set", "name"], subsystem=SUBSYSTEM),
            MetricFamily("member_config_version", "The configVersion value is the replica set configuration version.", ["set", "name"], subsystem=SUBSYSTEM),
        ))

    def fetch(self, session, max_time_ms: int) -> ReplSetStatus:
        result = session.run_command("admin", "replSetGetStatus", max_time_ms)
        return ReplSetStatus.model_validate(result)

    def export(self, status: ReplSetStatus) -> Iterator[Metric]:
        g = self.gauges
        set_labels = {"set": status.set}
        with g.locked():
            g.set("number_of_members", set_labels, len(status.members))
            g.set("my_state", set_labels, status.myState)
            if status.term is not None:
                g.set("term", set_labels, status.term)
            if status.heartbeatIntervalMillis is not None:
                g.set("heartbeat_interval_millis", set_labels, status.heartbeatIntervalMillis)

            for member in status.members:
                labels = {"set": status.set, "name": member.name}
                g.set("member_state", labels, member.state)
                g.set("member_health", labels, member.health)
                g.set("member_uptime", labels, member.uptime)
                if member.optimeDate is not None:
                    g.set("member_optime_date", labels, member.optimeDate)
                if member.lastHeartbeat is not None:
                    g.set("member_last_heartbeat", labels, member.lastHeartbeat)
                if member.lastHeartbeatRecv is not None:
                    g.set("member_last_heartbeat_recv", labels, member.lastHeartbeatRecv)
                if member.pingMs is not None:
                    g.set("member_ping_seconds", labels, member.pingMs / 1000.0)
                if member.configVersion is not None:
                    g.set("member_config_version", labels, member.configVersion)

            return g.export_and_reset()
