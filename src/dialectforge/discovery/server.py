"""
Discovered Server - Entry point to a database server

A server is a database type plus connection options. Every connection it
opens has the process wide keyword registry applied to those options.
"""

from typing import Any, Dict, List, Optional

from ..adapters.factory import AdapterFactory
from ..connections import ManagedTransaction
from ..dialects.factory import DialectFactory
from ..exceptions import DatabaseStateError
from ..keywords import get_keyword_registry
from .database import DiscoveredDatabase

import logging
logger = logging.getLogger(__name__)


class DiscoveredServer:
    """
    A database server reachable with the given connection options.

    The options are handed to the driver's connect() as keyword arguments
    (e.g. ``database`` for SQLite, ``host``/``user``/``password`` for
    PostgreSQL and MySQL).

    Usage:
        server = DiscoveredServer("sqlite", {"database": "/tmp/test.db"})
        database = server.get_current_database()
        table = database.expect_table("people")
    """

    def __init__(self, db_type: str, connection_kwargs: Optional[Dict[str, Any]] = None):
        self.dialect = DialectFactory.create(db_type)
        self.adapter = AdapterFactory.create(db_type)
        self.db_type = self.dialect.db_type
        self.connection_kwargs: Dict[str, Any] = dict(connection_kwargs or {})

    def build_connection_kwargs(self) -> Dict[str, Any]:
        """Connection options with the registered keywords enforced."""
        return get_keyword_registry().enforce_options(self.db_type, self.connection_kwargs)

    # ==================== Connections ====================

    def get_connection(self) -> Any:
        """Open a new DB-API connection. The caller closes it."""
        return self.adapter.connect(self.build_connection_kwargs())

    def begin_new_transaction(self) -> ManagedTransaction:
        """
        Open a connection with a transaction owned by the caller.

        Returns:
            ManagedTransaction to pass to operations and end with
            commit_and_close() or abandon_and_close()
        """
        transaction = ManagedTransaction(self.get_connection())
        logger.debug(f"Began transaction on {self}")
        return transaction

    def exists(self) -> bool:
        """True if a connection can be opened."""
        try:
            conn = self.get_connection()
        except Exception as e:
            logger.warning(f"Could not connect to {self}: {e}")
            return False
        conn.close()
        return True

    # ==================== Databases ====================

    def discover_databases(self) -> List[DiscoveredDatabase]:
        conn = self.get_connection()
        try:
            names = self.adapter.list_databases(conn)
        finally:
            conn.close()
        return [DiscoveredDatabase(self, name) for name in names]

    def expect_database(self, name: str) -> DiscoveredDatabase:
        """A reference to a database that may or may not exist."""
        return DiscoveredDatabase(self, name)

    def get_current_database(self) -> Optional[DiscoveredDatabase]:
        """The database the connection options point at, None if they name none."""
        name = self.adapter.current_database_name(self.build_connection_kwargs())
        return DiscoveredDatabase(self, name) if name else None

    def create_database(self, name: str) -> DiscoveredDatabase:
        """
        Create a new database on the server.

        Raises:
            DatabaseStateError: The database cannot be found after CREATE
        """
        database = DiscoveredDatabase(self, name)
        self.dialect.validate_database_name(database.get_runtime_name())
        self.adapter.create_database(self.build_connection_kwargs(), database.get_runtime_name())
        if not database.exists():
            raise DatabaseStateError(f"Database {database} was not found after it was created")
        logger.info(f"Created database {database} on {self}")
        return database

    # ==================== Equality ====================

    def __eq__(self, other) -> bool:
        if not isinstance(other, DiscoveredServer):
            return NotImplemented
        return self.db_type == other.db_type and self.connection_kwargs == other.connection_kwargs

    def __hash__(self) -> int:
        return hash(self.db_type)

    def __str__(self) -> str:
        target = self.connection_kwargs.get("host") or self.connection_kwargs.get("database") or ""
        return f"{self.db_type}:{target}"

    def __repr__(self) -> str:
        return f"DiscoveredServer({self.db_type!r})"
