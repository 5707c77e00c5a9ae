"""
Adapter Factory - Create the execution adapter for a database type
"""

from typing import Dict, List, Type

from .base import DatabaseAdapter
from .mysql_adapter import MySQLAdapter
from .oracle_adapter import OracleAdapter
from .postgresql_adapter import PostgreSQLAdapter
from .sqlite_adapter import SQLiteAdapter
from .sqlserver_adapter import SQLServerAdapter

import logging
logger = logging.getLogger(__name__)


class AdapterFactory:
    """
    Factory for creating database adapters.

    Drivers are imported when a connection is first opened, so creating an
    adapter for a database whose driver is not installed still works (for
    generating SQL).

    Usage:
        adapter = AdapterFactory.create("sqlite")
        conn = adapter.connect({"database": "/tmp/test.db"})
    """

    # Registry of supported database types
    _adapters: Dict[str, Type[DatabaseAdapter]] = {
        "sqlite": SQLiteAdapter,
        "sqlserver": SQLServerAdapter,
        "mssql": SQLServerAdapter,  # Alias
        "postgresql": PostgreSQLAdapter,
        "postgres": PostgreSQLAdapter,  # Alias
        "mysql": MySQLAdapter,
        "mariadb": MySQLAdapter,  # Alias
        "oracle": OracleAdapter,
    }

    @classmethod
    def create(cls, db_type: str) -> DatabaseAdapter:
        """
        Create an adapter for the specified database type.

        Raises:
            ValueError: If the type is not supported
        """
        adapter_class = cls._adapters.get(db_type.lower())
        if adapter_class is None:
            logger.warning(f"No adapter for database type: {db_type}")
            raise ValueError(f"Unsupported database type '{db_type}'")
        return adapter_class()

    @classmethod
    def is_supported(cls, db_type: str) -> bool:
        return db_type.lower() in cls._adapters

    @classmethod
    def supported_types(cls) -> List[str]:
        return list(cls._adapters.keys())

    @classmethod
    def register(cls, db_type: str, adapter_class: Type[DatabaseAdapter]):
        """
        Register a new adapter type.

        Args:
            db_type: Database type identifier
            adapter_class: DatabaseAdapter subclass
        """
        cls._adapters[db_type.lower()] = adapter_class
        logger.debug(f"Registered adapter for: {db_type}")
