"""MongoDB connection handling: one long-lived client, one session per pull."""
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union
import logging
import threading

import pymongo
from bson import SON
from pymongo import MongoClient
from pymongo.errors import ConfigurationError, ConnectionFailure, PyMongoError
from pymongo.read_preferences import ReadPreference

from mongodb_exporter.config import MongoDBConfig

logger = logging.getLogger(__name__)

Command = Union[str, Mapping[str, Any]]


def _command_key(database: str, command: Command) -> Tuple[str, str]:
    if isinstance(command, str):
        return database, command
    return database, repr(list(command.items()))


class MongoSession:
    """Handle for running diagnostic commands during a single pull."""

    def __init__(self, client: MongoClient, session=None):
        self.client = client
        self.session = session
        self._cache: Dict[Tuple[str, str], Union[Dict[str, Any], PyMongoError]] = {}
        self._closed = False

    def run_command(
        self,
        database: str,
        command: Command,
        timeout_ms: int,
        cached: bool = False,
    ) -> Dict[str, Any]:
        """Run an admin/diagnostic command bounded by ``timeout_ms``.

        With ``cached=True`` an identical command issued earlier in the same
        session is answered from memory, and so is its failure.
        """
        key = _command_key(database, command)
        if cached and key in self._cache:
            outcome = self._cache[key]
            if isinstance(outcome, PyMongoError):
                raise outcome
            return outcome

        db = self.client.get_database(database, read_preference=ReadPreference.NEAREST)
        try:
            with pymongo.timeout(timeout_ms / 1000.0):
                result = db.command(command, session=self.session)
        except PyMongoError as e:
            if cached:
                self._cache[key] = e
            raise

        if cached:
            self._cache[key] = result
        return result

    def database_names(self, timeout_ms: int) -> List[str]:
        result = self.run_command("admin", SON([("listDatabases", 1), ("nameOnly", True)]), timeout_ms)
        return sorted(entry["name"] for entry in result.get("databases", []))

    def collection_names(self, database: str, timeout_ms: int) -> List[str]:
        db = self.client.get_database(database, read_preference=ReadPreference.NEAREST)
        with pymongo.timeout(timeout_ms / 1000.0):
            names = db.list_collection_names(session=self.session)
        return sorted(names)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._cache.clear()
        if self.session is not None:
            try:
                self.session.end_session()
            except PyMongoError as e:
                logger.warning(f"Failed to end MongoDB session: {e}")


class MongoConnector:
    """Builds the MongoClient and hands out per-pull sessions."""

    def __init__(self, config: MongoDBConfig):
        self.config = config
        self._client: Optional[MongoClient] = None
        self._client_lock = threading.Lock()

    def _build_client_kwargs(self) -> Dict[str, Any]:
        """Build keyword arguments for MongoClient."""
        kwargs: Dict[str, Any] = {
            "directConnection": True,
            "connectTimeoutMS": self.config.connect_timeout_ms,
            "serverSelectionTimeoutMS": self.config.server_selection_timeout_ms,
            # Allows logging in to, and reading from, a secondary.
            "read_preference": ReadPreference.NEAREST,
        }
        if self.config.socket_timeout_ms is not None:
            kwargs["socketTimeoutMS"] = self.config.socket_timeout_ms
        if self.config.username:
            kwargs["username"] = self.config.username
        if self.config.password:
            kwargs["password"] = self.config.password
        if self.config.auth_mechanism:
            kwargs["authMechanism"] = self.config.auth_mechanism
        if self.config.auth_source:
            kwargs["authSource"] = self.config.auth_source

        tls = self.config.tls
        if tls.enabled:
            kwargs["tls"] = True
            if tls.certificate_key_file:
                kwargs["tlsCertificateKeyFile"] = tls.certificate_key_file
            if tls.ca_file:
                kwargs["tlsCAFile"] = tls.ca_file
            if tls.allow_invalid_hostnames:
                kwargs["tlsAllowInvalidHostnames"] = True
            if tls.x509_auth:
                kwargs["authMechanism"] = "MONGODB-X509"
                kwargs["authSource"] = "$external"
        return kwargs

    def _get_client(self) -> MongoClient:
        with self._client_lock:
            if self._client is None:
                self._client = MongoClient(self.config.uri, **self._build_client_kwargs())
            return self._client

    def acquire(self) -> Optional[MongoSession]:
        """Return a verified session, or None if the server is unreachable."""
        try:
            client = self._get_client()
            client.admin.command("ping")
            session = client.start_session(causal_consistency=False)
        except (ConnectionFailure, ConfigurationError) as e:
            logger.error(f"Cannot connect to MongoDB server: {e}")
            return None
        except PyMongoError as e:
            logger.error(f"Cannot open a MongoDB session: {e}")
            return None
        return MongoSession(client, session)

    def close(self) -> None:
        with self._client_lock:
            if self._client is not None:
                self._client.close()
                self._client = None
