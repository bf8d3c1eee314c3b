"""serverStatus: instance-wide counters and gauges."""
from typing import Any, Dict, Iterator, Optional
import logging

from prometheus_client.core import Metric
from pydantic import BaseModel, Field

from mongodb_exporter.collectors.base import SubCollector
from mongodb_exporter.gauges import MetricFamily, SnapshotGaugeSet

logger = logging.getLogger(__name__)


def fetch_server_status(session, max_time_ms: int) -> Dict[str, Any]:
    """Run serverStatus once per session; section collectors share the result."""
    return session.run_command("admin", "serverStatus", max_time_ms, cached=True)


class Asserts(BaseModel):
    regular: float = 0
    warning: float = 0
    msg: float = 0
    user: float = 0
    rollovers: float = 0


class Connections(BaseModel):
    current: float = 0
    available: float = 0
    totalCreated: float = 0


class Memory(BaseModel):
    """Sizes in megabytes. mapped* only exist on MMAPv1."""
    resident: float = 0
    virtual: float = 0
    mapped: Optional[float] = None
    mappedWithJournal: Optional[float] = None


class Network(BaseModel):
    bytesIn: float = 0
    bytesOut: float = 0
    numRequests: float = 0


class OpCounters(BaseModel):
    insert: float = 0
    query: float = 0
    update: float = 0
    delete: float = 0
    getmore: float = 0
    command: float = 0


class LockQueue(BaseModel):
    total: float = 0
    readers: float = 0
    writers: float = 0


class GlobalLock(BaseModel):
    totalTime: float = 0
    currentQueue: LockQueue = Field(default_factory=LockQueue)
    activeClients: LockQueue = Field(default_factory=LockQueue)


class DocumentMetrics(BaseModel):
    deleted: float = 0
    inserted: float = 0
    returned: float = 0
    updated: float = 0


class OpenCursors(BaseModel):
    noTimeout: float = 0
    pinned: float = 0
    total: float = 0


class CursorMetrics(BaseModel):
    timedOut: float = 0
    open: OpenCursors = Field(default_factory=OpenCursors)


class ServerMetrics(BaseModel):
    document: DocumentMetrics = Field(default_factory=DocumentMetrics)
    cursor: CursorMetrics = Field(default_factory=CursorMetrics)


class ExtraInfo(BaseModel):
    page_faults: Optional[float] = None


class ServerStatus(BaseModel):
    uptime: float
    asserts: Optional[Asserts] = None
    connections: Optional[Connections] = None
    mem: Optional[Memory] = None
    network: Optional[Network] = None
    opcounters: Optional[OpCounters] = None
    opcountersRepl: Optional[OpCounters] = None
    globalLock: Optional[GlobalLock] = None
    metrics: Optional[ServerMetrics] = None
    extra_info: Optional[ExtraInfo] = None


class ServerStatusCollector(SubCollector):
    name = "server_status"

    def __init__(self):
        super().__init__(SnapshotGaugeSet(
            MetricFamily("uptime_seconds", "The value of the uptime field corresponds to the number of seconds that the mongos or mongod process has been active.", subsystem="instance"),
            MetricFamily("asserts_total", "The asserts document reports the number of asserts on the database. While assert errors are typically uncommon, if there are non-zero values for the asserts, you should check the log file for the mongod process for more information.", ["type"]),
            MetricFamily("connections", "The connections sub document data regarding the current status of incoming connections and availability of the database server.", ["state"]),
            MetricFamily("connections_metrics_created_total", "totalCreated provides a count of all incoming connections created to the server. This number includes connections that have since closed."),
            MetricFamily("memory", "The mem data structure holds information regarding the target system architecture of mongod and current memory use, in megabytes.", ["type"]),
            MetricFamily("network_bytes_total", "The network data structure contains data regarding MongoDB's network use.", ["state"]),
            MetricFamily("network_metrics_num_requests_total", "The numRequests field is a counter of the total number of distinct requests that the server has received."),
            MetricFamily("op_counters_total", "The opcounters data structure provides an overview of database operations by type and makes it possible to analyze the load on the database in more granular manner.", ["type"]),
            MetricFamily("op_counters_repl_total", "The opcountersRepl data structure, similar to the opcounters data structure, provides an overview of database replication operations by type.", ["type"]),
            MetricFamily("global_lock_total", "The value of totalTime represents the time, in microseconds, since the database last started and creation of the globalLock."),
            MetricFamily("global_lock_current_queue", "The currentQueue data structure value provides more granular information concerning the number of operations queued because of a lock.", ["type"]),
            MetricFamily("global_lock_client", "The activeClients data structure provides more granular information about the number of connected clients and the operation types (e.g. read or write) performed by these clients.", ["type"]),
            MetricFamily("metrics_document_total", "The document holds a document of that reflect document access and modification patterns and data use.", ["state"]),
            MetricFamily("metrics_cursor_timed_out_total", "timedOut provides the total number of cursors that have timed out since the server process started."),
            MetricFamily("metrics_cursor_open", "The open is an embedded document that contains data regarding open cursors.", ["state"]),
            MetricFamily("extra_info_page_faults_total", "The extra_info data structure holds data collected by the mongod instance about the underlying system."),
        ))

    def fetch(self, session, max_time_ms: int) -> ServerStatus:
        return ServerStatus.model_validate(fetch_server_status(session, max_time_ms))

    def export(self, status: ServerStatus) -> Iterator[Metric]:
        g = self.gauges
        with g.locked():
            g.set("uptime_seconds", None, status.uptime)

            if status.asserts is not None:
                g.set_many("asserts_total", (
                    ({"type": kind}, value) for kind, value in status.asserts.model_dump().items()
                ))

            if status.connections is not None:
                g.set("connections", {"state": "current"}, status.connections.current)
                g.set("connections", {"state": "available"}, status.connections.available)
                g.set("connections_metrics_created_total", None, status.connections.totalCreated)

            if status.mem is not None:
                g.set_many("memory", (
                    ({"type": kind}, value)
                    for kind, value in (
                        ("resident", status.mem.resident),
                        ("virtual", status.mem.virtual),
                        ("mapped", status.mem.mapped),
                        ("mapped_with_journal", status.mem.mappedWithJournal),
                    )
                    if value is not None
                ))

            if status.network is not None:
                g.set("network_bytes_total", {"state": "in_bytes"}, status.network.bytesIn)
                g.set("network_bytes_total", {"state": "out_bytes"}, status.network.bytesOut)
                g.set("network_metrics_num_requests_total", None, status.network.numRequests)

            for family, counters in (
                ("op_counters_total", status.opcounters),
                ("op_counters_repl_total", status.opcountersRepl),
            ):
                if counters is not None:
                    g.set_many(family, (
                        ({"type": kind}, value) for kind, value in counters.model_dump().items()
                    ))

            if status.globalLock is not None:
                lock = status.globalLock
                g.set("global_lock_total", None, lock.totalTime)
                g.set("global_lock_current_queue", {"type": "reader"}, lock.currentQueue.readers)
                g.set("global_lock_current_queue", {"type": "writer"}, lock.currentQueue.writers)
                g.set("global_lock_client", {"type": "reader"}, lock.activeClients.readers)
                g.set("global_lock_client", {"type": "writer"}, lock.activeClients.writers)

            if status.metrics is not None:
                g.set_many("metrics_document_total", (
                    ({"state": state}, value)
                    for state, value in status.metrics.document.model_dump().items()
                ))
                cursor = status.metrics.cursor
                g.set("metrics_cursor_timed_out_total", None, cursor.timedOut)
                g.set("metrics_cursor_open", {"state": "no_timeout"}, cursor.open.noTimeout)
                g.set("metrics_cursor_open", {"state": "pinned"}, cursor.open.pinned)
                g.set("metrics_cursor_open", {"state": "total"}, cursor.open.total)

            if status.extra_info is not None and status.extra_info.page_faults is not None:
                g.set("extra_info_page_faults_total", None, status.extra_info.page_faults)

            return g.export_and_reset()
