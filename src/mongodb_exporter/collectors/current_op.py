"""currentOp: whether an fsyncLock is held on the instance."""
from typing import Iterator

from bson import SON
from prometheus_client.core import Metric
from pydantic import BaseModel

from mongodb_exporter.collectors.base import SubCollector
from mongodb_exporter.gauges import MetricFamily, SnapshotGaugeSet

# The filter matches no operation; only the top-level fsyncLock flag is wanted.
CURRENT_OP_COMMAND = SON([("currentOp", 1), ("notexist", 0)])


class CurrentOp(BaseModel):
    fsyncLock: bool = False


class CurrentOpCollector(SubCollector):
    name = "current_op"

    def __init__(self):
        super().__init__(SnapshotGaugeSet(
            MetricFamily("fsync_lock_worker", "The value of the fsync field corresponds to whether the fsyncLockWorker is active or not.", subsystem="instance"),
        ))

    def fetch(self, session, max_time_ms: int) -> CurrentOp:
        return CurrentOp.model_validate(session.run_command("admin", CURRENT_OP_COMMAND, max_time_ms))

    def export(self, current_op: CurrentOp) -> Iterator[Metric]:
        with self.gauges.locked():
            self.gauges.set("fsync_lock_worker", None, 1 if current_op.fsyncLock else 0)
            return self.gauges.export_and_reset()
