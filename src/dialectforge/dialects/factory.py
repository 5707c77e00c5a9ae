"""
Dialect Factory - Create appropriate dialect based on database type
"""

from typing import Dict, List, Type

from .base import DatabaseDialect

import logging
logger = logging.getLogger(__name__)


class DialectFactory:
    """
    Factory for creating database dialects.

    Dialects are stateless, so one instance per database type is built on
    first use and shared.

    Usage:
        dialect = DialectFactory.create("sqlite")
        query = dialect.generate_select_query('"users"', limit=100)
    """

    # Registry of supported database types
    _dialects: Dict[str, Type[DatabaseDialect]] = {}
    _instances: Dict[str, DatabaseDialect] = {}

    @classmethod
    def create(cls, db_type: str) -> DatabaseDialect:
        """
        Get the dialect for the specified database type.

        Args:
            db_type: Database type (sqlite, sqlserver, postgresql, mysql, oracle)

        Returns:
            DatabaseDialect instance

        Raises:
            ValueError: If the type is not supported
        """
        db_type_lower = db_type.lower()

        dialect_class = cls._dialects.get(db_type_lower)
        if dialect_class is None:
            logger.warning(f"No dialect for database type: {db_type}")
            raise ValueError(
                f"Unsupported database type '{db_type}', expected one of: {', '.join(cls.supported_types())}"
            )

        if db_type_lower not in cls._instances:
            cls._instances[db_type_lower] = dialect_class()
        return cls._instances[db_type_lower]

    @classmethod
    def is_supported(cls, db_type: str) -> bool:
        """Check if a database type is supported."""
        return db_type.lower() in cls._dialects

    @classmethod
    def supported_types(cls) -> List[str]:
        """Get list of supported database types."""
        return list(cls._dialects.keys())

    @classmethod
    def register(cls, db_type: str, dialect_class: Type[DatabaseDialect]):
        """
        Register a new dialect type.

        Args:
            db_type: Database type identifier
            dialect_class: DatabaseDialect subclass
        """
        cls._dialects[db_type.lower()] = dialect_class
        cls._instances.pop(db_type.lower(), None)
        logger.debug(f"Registered dialect for: {db_type}")


def _register_default_dialects():
    """Register built-in dialects. Called on module import."""
    from .sqlite_dialect import SQLiteDialect
    from .sqlserver_dialect import SQLServerDialect
    from .postgresql_dialect import PostgreSQLDialect
    from .mysql_dialect import MySQLDialect
    from .oracle_dialect import OracleDialect

    DialectFactory.register("sqlite", SQLiteDialect)
    DialectFactory.register("sqlserver", SQLServerDialect)
    DialectFactory.register("mssql", SQLServerDialect)  # Alias
    DialectFactory.register("postgresql", PostgreSQLDialect)
    DialectFactory.register("postgres", PostgreSQLDialect)  # Alias
    DialectFactory.register("mysql", MySQLDialect)
    DialectFactory.register("mariadb", MySQLDialect)  # Alias
    DialectFactory.register("oracle", OracleDialect)


# Register on module import
_register_default_dialects()
