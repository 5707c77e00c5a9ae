"""
Base Adapters - Abstract execution contracts for database drivers

Adapters are the only place a DB-API driver is touched:
- SchemaAdapter connects, runs commands and reads the catalog
- DataAdapter binds parameters and performs inserts (single and bulk)

Each database type implements both contracts in one class. Catalog reads
return plain dataclasses so the discovery layer never sees driver rows.
"""

import datetime
from abc import ABC, abstractmethod
from contextlib import closing
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..constants import CREATE_DATABASE_TIMEOUT_S, DEFAULT_COMMAND_TIMEOUT_S
from ..dialects.base import DatabaseDialect, TableType
from ..dialects.factory import DialectFactory

import logging
logger = logging.getLogger(__name__)


@dataclass
class TableInfo:
    """A table, view or table valued function found in the catalog."""
    name: str
    schema: Optional[str] = None
    table_type: TableType = TableType.TABLE


@dataclass
class ColumnInfo:
    """A column as described by the catalog."""
    name: str
    type_name: str
    is_nullable: bool = True
    is_primary_key: bool = False
    is_auto_increment: bool = False
    collation: Optional[str] = None
    attributes: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RelationshipInfo:
    """A foreign key constraint as described by the catalog."""
    name: str
    primary_table: str
    foreign_table: str
    pairs: List[Tuple[str, str]] = field(default_factory=list)  # (primary column, foreign column)
    delete_rule: str = ""
    primary_schema: Optional[str] = None
    foreign_schema: Optional[str] = None


def compose_type_name(data_type: str, char_length=None, precision=None, scale=None) -> str:
    """
    Rebuild a declaration such as ``varchar(10)`` from INFORMATION_SCHEMA parts.

    A character length of -1 is how SQL Server reports ``(max)``.
    """
    lowered = data_type.lower()
    if ("char" in lowered or "binary" in lowered) and char_length is not None:
        length = int(char_length)
        return f"{data_type}(max)" if length == -1 else f"{data_type}({length})"
    if lowered in ("decimal", "numeric") and precision is not None:
        return f"{data_type}({int(precision)},{int(scale or 0)})"
    return data_type


class SchemaAdapter(ABC):
    """
    Abstract base class for connecting and reading the catalog.

    Usage:
        adapter = AdapterFactory.create("sqlite")
        conn = adapter.connect({"database": "/tmp/test.db"})
        columns = adapter.describe_columns(conn, "test", None, "people")
    """

    db_type: str = ""

    def __init__(self):
        self.dialect: DatabaseDialect = DialectFactory.create(self.db_type)

    # ==================== Connections ====================

    @abstractmethod
    def connect(self, connection_kwargs: Dict[str, Any]) -> Any:
        """
        Open a DB-API connection.

        Args:
            connection_kwargs: Keyword arguments for the driver's connect()

        Returns:
            DB-API connection (no transaction started)
        """
        pass

    def current_database_name(self, connection_kwargs: Dict[str, Any]) -> Optional[str]:
        """The database the connection options point at, if any."""
        for key in ("database", "dbname", "db"):
            if connection_kwargs.get(key):
                return str(connection_kwargs[key])
        return None

    def apply_timeout(self, conn: Any, timeout: int):
        """Apply a per-command timeout (seconds) to the connection."""
        pass

    # ==================== Commands ====================

    def execute(self, conn: Any, sql: str, params=None, timeout: int = DEFAULT_COMMAND_TIMEOUT_S) -> int:
        """Run a command, returning the number of affected rows (-1 if unknown)."""
        self.apply_timeout(conn, timeout)
        logger.debug(f"Executing: {sql}")
        with closing(conn.cursor()) as cursor:
            if params is None:
                cursor.execute(sql)
            else:
                cursor.execute(sql, params)
            return cursor.rowcount

    def execute_scalar(self, conn: Any, sql: str, params=None, timeout: int = DEFAULT_COMMAND_TIMEOUT_S):
        """Run a query and return the first column of the first row (None if no rows)."""
        self.apply_timeout(conn, timeout)
        logger.debug(f"Executing scalar: {sql}")
        with closing(conn.cursor()) as cursor:
            if params is None:
                cursor.execute(sql)
            else:
                cursor.execute(sql, params)
            row = cursor.fetchone()
        return row[0] if row else None

    def fetch_all(self, conn: Any, sql: str, params=None) -> List[tuple]:
        with closing(conn.cursor()) as cursor:
            if params is None:
                cursor.execute(sql)
            else:
                cursor.execute(sql, params)
            return [tuple(row) for row in cursor.fetchall()]

    # ==================== Catalog ====================

    def database_exists(self, connection_kwargs: Dict[str, Any], database: str) -> bool:
        """True if ``database`` is listed by the server."""
        with closing(self.connect(connection_kwargs)) as conn:
            names = self.list_databases(conn)
        return database.lower() in (n.lower() for n in names)

    @abstractmethod
    def list_databases(self, conn: Any) -> List[str]:
        pass

    @abstractmethod
    def list_tables(
        self, conn: Any, database: str, schema: Optional[str] = None, include_views: bool = True
    ) -> List[TableInfo]:
        pass

    @abstractmethod
    def describe_columns(self, conn: Any, database: str, schema: Optional[str], table: str) -> List[ColumnInfo]:
        """Columns of ``table`` in ordinal order."""
        pass

    @abstractmethod
    def list_relationships(
        self, conn: Any, database: str, schema: Optional[str], table: str
    ) -> List[RelationshipInfo]:
        """Foreign keys referencing ``table`` (it is the primary key side)."""
        pass

    def drop(self, conn: Any, fq_table: str, table_type: TableType = TableType.TABLE,
             timeout: int = DEFAULT_COMMAND_TIMEOUT_S):
        self.execute(conn, self.dialect.get_drop_sql(fq_table, table_type), timeout=timeout)

    def list_table_valued_functions(self, conn: Any, database: str) -> List[TableInfo]:
        """Table valued functions of ``database``. Only SQL Server has them."""
        return []

    def describe_function_parameters(
        self, conn: Any, database: str, schema: Optional[str], function: str
    ) -> List[ColumnInfo]:
        """Parameters of a table valued function in declaration order."""
        return []

    # ==================== Databases ====================

    def server_connection_kwargs(self, connection_kwargs: Dict[str, Any]) -> Dict[str, Any]:
        """Connection options reaching the server without naming a database."""
        return {k: v for k, v in connection_kwargs.items() if k not in ("database", "dbname", "db")}

    def enable_autocommit(self, conn: Any):
        # CREATE/DROP DATABASE cannot run inside a transaction
        conn.autocommit = True

    def create_database(self, connection_kwargs: Dict[str, Any], database: str,
                        timeout: int = CREATE_DATABASE_TIMEOUT_S):
        self._run_database_statements(
            connection_kwargs, self.dialect.get_create_database_sql(database), timeout
        )

    def drop_database(self, connection_kwargs: Dict[str, Any], database: str,
                      timeout: int = CREATE_DATABASE_TIMEOUT_S):
        self._run_database_statements(
            connection_kwargs, self.dialect.get_drop_database_sql(database), timeout
        )

    def _run_database_statements(self, connection_kwargs: Dict[str, Any], statements: List[str], timeout: int):
        with closing(self.connect(self.server_connection_kwargs(connection_kwargs))) as conn:
            self.enable_autocommit(conn)
            for sql in statements:
                self.execute(conn, sql, timeout=timeout)


class DataAdapter(ABC):
    """
    Abstract base class for binding parameters and inserting rows.

    ``paramstyle`` follows PEP 249: "qmark", "named", "format" or "pyformat".
    Relies on the dialect and apply_timeout() of the SchemaAdapter it is
    combined with (see DatabaseAdapter).
    """

    paramstyle: str = "qmark"

    # ==================== Parameters ====================

    def placeholder(self, name: str) -> str:
        """The marker for a parameter called ``name`` (no symbol) in SQL text."""
        if self.paramstyle == "named":
            return f":{name}"
        if self.paramstyle == "pyformat":
            return f"%({name})s"
        if self.paramstyle == "format":
            return "%s"
        return "?"

    def make_params(self, names: Sequence[str], values: Sequence[Any]):
        """Parameters in the shape the driver expects for ``placeholder`` markers."""
        converted = [self.to_db_value(v) for v in values]
        if self.paramstyle in ("named", "pyformat"):
            return dict(zip(names, converted))
        return tuple(converted)

    def to_db_value(self, value: Any) -> Any:
        """Convert pandas/numpy values into plain Python values the driver can bind."""
        if value is None:
            return None
        if isinstance(value, pd.Timestamp):
            return None if pd.isna(value) else value.to_pydatetime()
        if isinstance(value, pd.Timedelta):
            return None if pd.isna(value) else (datetime.datetime.min + value.to_pytimedelta()).time()
        if isinstance(value, datetime.timedelta):
            return (datetime.datetime.min + value).time()
        if isinstance(value, np.generic):
            value = value.item()
        if isinstance(value, float) and np.isnan(value):
            return None
        if pd.api.types.is_scalar(value) and not isinstance(value, (str, bytes)) and pd.isna(value):
            return None
        return value

    # ==================== Inserts ====================

    def insert_returning_identity(
        self,
        conn: Any,
        sql: str,
        params,
        identity_sql: Optional[str] = None,
        returning: bool = False,
        timeout: int = DEFAULT_COMMAND_TIMEOUT_S,
    ) -> int:
        """
        Insert one row and report the generated identity.

        Args:
            sql: INSERT statement (with RETURNING when ``returning`` is set)
            params: Bound parameters from make_params
            identity_sql: Query returning the last identity on this connection
            returning: The statement itself returns the identity

        Returns:
            The identity value, or 0 if none was generated
        """
        self.apply_timeout(conn, timeout)
        logger.debug(f"Inserting: {sql}")
        with closing(conn.cursor()) as cursor:
            cursor.execute(sql, params)
            if returning:
                row = cursor.fetchone()
                return int(row[0]) if row and row[0] is not None else 0
            if identity_sql:
                cursor.execute(identity_sql)
                row = cursor.fetchone()
                return int(row[0]) if row and row[0] is not None else 0
            return int(getattr(cursor, "lastrowid", None) or 0)

    def bulk_insert(
        self,
        conn: Any,
        fq_table: str,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
        timeout: int = DEFAULT_COMMAND_TIMEOUT_S,
    ) -> int:
        """
        Insert many rows with executemany.

        Args:
            fq_table: Fully qualified destination table
            columns: Destination column names (unwrapped)
            rows: Row values in ``columns`` order

        Returns:
            Number of rows inserted
        """
        if not rows:
            return 0
        names = [f"p{i}" for i in range(len(columns))]
        sql = self.dialect.get_insert_sql(fq_table, columns, [self.placeholder(n) for n in names])
        self.apply_timeout(conn, timeout)
        logger.debug(f"Bulk inserting {len(rows)} rows: {sql}")
        with closing(self._bulk_cursor(conn)) as cursor:
            cursor.executemany(sql, [self.make_params(names, row) for row in rows])
            affected = cursor.rowcount
        return affected if affected is not None and affected >= 0 else len(rows)

    def _bulk_cursor(self, conn: Any):
        return conn.cursor()

    def describe_bulk_insert_error(self, error: BaseException) -> Optional[str]:
        """Driver specific detail for a failed bulk insert, None if there is none."""
        return None


class DatabaseAdapter(SchemaAdapter, DataAdapter):
    """Both contracts for one database type; concrete adapters derive from this."""
    pass
