"""replSetGetConfig: per-member configuration, reconciled across pulls.

Unlike the other collectors these families are not reset after every pull.
The member list is enumerated up front, and members that left the config
since the previous pull are deleted through the membership reconciler.
"""
from typing import Dict, Iterator, List
import logging

from prometheus_client.core import Metric
from pydantic import BaseModel, Field

from mongodb_exporter.collectors.base import SubCollector
from mongodb_exporter.gauges import MetricFamily, SnapshotGaugeSet
from mongodb_exporter.reconcile import MembershipReconciler
from mongodb_exporter.series import LabelSet

logger = logging.getLogger(__name__)

SUBSYSTEM = "replset"


class MemberConf(BaseModel):
    id: int = Field(alias="_id")
    host: str
    arbiterOnly: bool = False
    buildIndexes: bool = True
    hidden: bool = False
    priority: float = 1
    votes: float = 1
    tags: Dict[str, str] = Field(default_factory=dict)


class ReplSetConf(BaseModel):
    id: str = Field(alias="_id")
    version: int = 0
    members: List[MemberConf] = Field(default_factory=list)


class OuterReplSetConf(BaseModel):
    """replSetGetConfig wraps the config document in a ``config`` field."""
    config: ReplSetConf


class ReplSetConfCollector(SubCollector):
    name = "replset_conf"

    def __init__(self):
        super().__init__(SnapshotGaugeSet(
            MetricFamily("member_hidden", "This field conveys if the member is hidden (1) or not-hidden (0).", ["id", "host"], subsystem=SUBSYSTEM),
            MetricFamily("member_arbiter", "This field conveys if the member is an arbiter (1) or not (0).", ["id", "host"], subsystem=SUBSYSTEM),
            MetricFamily("member_build_indexes", "This field conveys if the member builds indexes (1) or not (0).", ["id", "host"], subsystem=SUBSYSTEM),
            MetricFamily("member_priority", "This field conveys the priority of a given member", ["id", "host"], subsystem=SUBSYSTEM),
            MetricFamily("member_votes", "This field conveys the number of votes of a given member", ["id", "host"], subsystem=SUBSYSTEM),
            reconciler=MembershipReconciler("replset_conf_members"),
        ))

    def fetch(self, session, max_time_ms: int) -> ReplSetConf:
        result = session.run_command("admin", "replSetGetConfig", max_time_ms)
        return OuterReplSetConf.model_validate(result).config

    def export(self, conf: ReplSetConf) -> Iterator[Metric]:
        members = [(LabelSet.of(id=conf.id, host=member.host), member) for member in conf.members]

        g = self.gauges
        with g.locked():
            for labels, member in members:
                g.set("member_hidden", labels, 1 if member.hidden else 0)
                g.set("member_arbiter", labels, 1 if member.arbiterOnly else 0)
                g.set("member_build_indexes", labels, 1 if member.buildIndexes else 0)
                g.set("member_priority", labels, member.priority)
                g.set("member_votes", labels, member.votes)

            g.reconcile(labels for labels, _ in members)
            return g.export()
