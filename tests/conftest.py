"""Shared fixtures: an in-memory MongoDB session and connector."""
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

import pytest

Response = Union[Dict[str, Any], Callable[[str, Any], Dict[str, Any]]]


def command_name(command) -> str:
    """First key of a command document, or the command itself."""
    if isinstance(command, str):
        return command
    return next(iter(command))


class FakeSession:
    """Answers diagnostic commands from canned responses keyed by command name.

    A response may be a dict or a callable taking ``(database, command)``.
    Commands listed in ``failures`` raise the given exception instead, and
    databases listed in ``collection_failures`` fail to list collections.
    """

    def __init__(
        self,
        responses: Optional[Dict[str, Response]] = None,
        failures: Optional[Dict[str, BaseException]] = None,
        databases: Iterable[str] = (),
        collections: Optional[Dict[str, List[str]]] = None,
        collection_failures: Optional[Dict[str, BaseException]] = None,
    ):
        self.responses = dict(responses or {})
        self.failures = dict(failures or {})
        self.databases = list(databases)
        self.collections = dict(collections or {})
        self.collection_failures = dict(collection_failures or {})
        self.calls: List[tuple] = []
        self.closed = False

    def run_command(self, database, command, timeout_ms, cached=False):
        name = command_name(command)
        self.calls.append((database, name, timeout_ms))
        if name in self.failures:
            raise self.failures[name]
        response = self.responses[name]
        if callable(response):
            return response(database, command)
        return response

    def database_names(self, timeout_ms):
        if "listDatabases" in self.failures:
            raise self.failures["listDatabases"]
        return sorted(self.databases)

    def collection_names(self, database, timeout_ms):
        if database in self.collection_failures:
            raise self.collection_failures[database]
        return sorted(self.collections.get(database, []))

    def close(self):
        self.closed = True


class FakeConnector:
    """Hands out a fixed session, or None to simulate an unreachable server."""

    def __init__(self, session: Optional[FakeSession] = None, error: Optional[BaseException] = None):
        self.session = session
        self.error = error
        self.acquired = 0
        self.closed = False

    def acquire(self):
        self.acquired += 1
        if self.error is not None:
            raise self.error
        return self.session

    def close(self):
        self.closed = True


def sample_values(metrics) -> Dict[tuple, float]:
    """Flatten metric families to ``{(sample name, sorted labels): value}``."""
    values = {}
    for metric in metrics:
        for sample in metric.samples:
            values[(sample.name, tuple(sorted(sample.labels.items())))] = sample.value
    return values


@pytest.fixture
def samples():
    return sample_values


@pytest.fixture
def server_status_doc():
    """A trimmed serverStatus reply from a replica-set member."""
    return {
        "host": "db1:27017",
        "uptime": 3600.0,
        "asserts": {"regular": 0, "warning": 1, "msg": 0, "user": 12, "rollovers": 0},
        "connections": {"current": 5, "available": 814, "totalCreated": 120},
        "mem": {"bits": 64, "resident": 80, "virtual": 1500, "supported": True},
        "network": {"bytesIn": 1024, "bytesOut": 4096, "numRequests": 33},
        "opcounters": {"insert": 10, "query": 20, "update": 3, "delete": 1, "getmore": 0, "command": 99},
        "opcountersRepl": {"insert": 0, "query": 0, "update": 0, "delete": 0, "getmore": 0, "command": 0},
        "globalLock": {
            "totalTime": 3600000000,
            "currentQueue": {"total": 0, "readers": 0, "writers": 0},
            "activeClients": {"total": 2, "readers": 1, "writers": 1},
        },
        "metrics": {
            "document": {"deleted": 1, "inserted": 10, "returned": 200, "updated": 3},
            "cursor": {"timedOut": 2, "open": {"noTimeout": 0, "pinned": 1, "total": 4}},
        },
        "extra_info": {"note": "fields vary by platform", "page_faults": 7},
        "logicalSessionRecordCache": {
            "activeSessionsCount": 3,
            "sessionsCollectionJobCount": 40,
            "transactionReaperJobCount": 40,
        },
        "ok": 1.0,
    }


@pytest.fixture
def replset_config_doc():
    def build(*hosts: str, set_name: str = "rs0") -> Dict[str, Any]:
        return {
            "config": {
                "_id": set_name,
                "version": 3,
                "members": [
                    {"_id": i, "host": host, "arbiterOnly": False, "buildIndexes": True,
                     "hidden": False, "priority": 1.0, "tags": {}, "votes": 1}
                    for i, host in enumerate(hosts)
                ],
            },
            "ok": 1.0,
        }
    return build
