"""Tests for session handling, using stand-in client objects."""
import pytest
from pymongo.errors import ExecutionTimeout, OperationFailure, ServerSelectionTimeoutError

from mongodb_exporter.collectors import (
    CollectorError,
    ServerStatusCollector,
    SessionCacheCollector,
    ShardingCollector,
    ShardingStatisticsCollector,
)
from mongodb_exporter.config import MongoDBConfig, TLSConfig
from mongodb_exporter.connection import MongoConnector, MongoSession


class StubDatabase:
    def __init__(self, client, name):
        self.client = client
        self.name = name

    def command(self, command, session=None):
        self.client.commands.append((self.name, command))
        if self.client.error is not None:
            raise self.client.error
        if not isinstance(command, str) and "listDatabases" in command:
            return {"databases": [{"name": "zeta"}, {"name": "app"}], "ok": 1}
        return {"ok": 1, "db": self.name, "n": len(self.client.commands)}

    def list_collection_names(self, session=None):
        return ["b", "a"]


class StubAdmin:
    def __init__(self, client):
        self.client = client

    def command(self, command):
        if self.client.ping_error is not None:
            raise self.client.ping_error
        return {"ok": 1}


class StubClientSession:
    def __init__(self):
        self.ended = 0

    def end_session(self):
        self.ended += 1


class StubClient:
    def __init__(self, error=None, ping_error=None):
        self.error = error
        self.ping_error = ping_error
        self.commands = []
        self.sessions = []
        self.admin = StubAdmin(self)

    def get_database(self, name, read_preference=None):
        return StubDatabase(self, name)

    def start_session(self, causal_consistency=None):
        session = StubClientSession()
        self.sessions.append(session)
        return session


def test_cached_commands_run_once_per_session():
    client = StubClient()
    session = MongoSession(client, StubClientSession())

    first = session.run_command("admin", "serverStatus", 1000, cached=True)
    second = session.run_command("admin", "serverStatus", 1000, cached=True)
    session.run_command("admin", "serverStatus", 1000)

    assert first is second
    assert len(client.commands) == 2

    fresh = MongoSession(client, StubClientSession())
    fresh.run_command("admin", "serverStatus", 1000, cached=True)
    assert len(client.commands) == 3


def test_database_and_collection_names():
    session = MongoSession(StubClient())

    assert session.database_names(1000) == ["app", "zeta"]
    assert session.collection_names("app", 1000) == ["a", "b"]


def test_close_is_idempotent():
    client_session = StubClientSession()
    session = MongoSession(StubClient(), client_session)

    session.close()
    session.close()

    assert client_session.ended == 1


def test_command_errors_propagate():
    client = StubClient(error=OperationFailure("unauthorized"))
    session = MongoSession(client)
    with pytest.raises(OperationFailure):
        session.run_command("admin", "top", 1000)


def test_acquire_returns_session(monkeypatch):
    client = StubClient()
    connector = MongoConnector(MongoDBConfig())
    monkeypatch.setattr(connector, "_get_client", lambda: client)

    session = connector.acquire()

    assert isinstance(session, MongoSession)
    assert session.session is client.sessions[0]


def test_acquire_unreachable(monkeypatch, caplog):
    client = StubClient(ping_error=ServerSelectionTimeoutError("timed out"))
    connector = MongoConnector(MongoDBConfig(uri="mongodb://user:s3cret@db:27017"))
    monkeypatch.setattr(connector, "_get_client", lambda: client)

    assert connector.acquire() is None
    assert "s3cret" not in caplog.text


def test_client_kwargs_plain():
    kwargs = MongoConnector(MongoDBConfig(username="u", password="p", auth_source="admin"))._build_client_kwargs()

    assert kwargs["directConnection"] is True
    assert kwargs["username"] == "u"
    assert kwargs["authSource"] == "admin"
    assert "tls" not in kwargs


def test_client_kwargs_x509():
    config = MongoDBConfig(tls=TLSConfig(
        enabled=True,
        certificate_key_file="/etc/ssl/client.pem",
        ca_file="/etc/ssl/ca.pem",
        allow_invalid_hostnames=True,
        x509_auth=True,
    ))
    kwargs = MongoConnector(config)._build_client_kwargs()

    assert kwargs["tls"] is True
    assert kwargs["tlsCertificateKeyFile"] == "/etc/ssl/client.pem"
    assert kwargs["tlsCAFile"] == "/etc/ssl/ca.pem"
    assert kwargs["tlsAllowInvalidHostnames"] is True
    assert kwargs["authMechanism"] == "MONGODB-X509"
    assert kwargs["authSource"] == "$external"


def test_cached_failure_is_not_retried_within_a_session():
    client = StubClient(error=ExecutionTimeout("operation exceeded time limit"))
    session = MongoSession(client, StubClientSession())

    for _ in range(2):
        with pytest.raises(ExecutionTimeout):
            session.run_command("admin", "serverStatus", 1000, cached=True)
    assert len(client.commands) == 1

    # Uncached commands and new sessions still go to the server.
    with pytest.raises(ExecutionTimeout):
        session.run_command("admin", "top", 1000)
    with pytest.raises(ExecutionTimeout):
        MongoSession(client).run_command("admin", "serverStatus", 1000, cached=True)
    assert len(client.commands) == 3


def test_server_status_sections_share_one_failed_command():
    client = StubClient(error=ExecutionTimeout("operation exceeded time limit"))
    session = MongoSession(client, StubClientSession())
    collectors = [
        ServerStatusCollector(), ShardingStatisticsCollector(), SessionCacheCollector(), ShardingCollector(),
    ]

    for collector in collectors:
        with pytest.raises(CollectorError):
            collector.collect(session, 1000)

    assert len(client.commands) == 1
