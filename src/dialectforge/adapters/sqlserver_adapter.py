"""
SQL Server Adapter - pyodbc driver for Microsoft SQL Server
"""

from typing import Any, Dict, List, Optional, Set

from ..constants import CONNECTION_TIMEOUT_S
from ..dialects.base import TableType
from .base import ColumnInfo, TableInfo, compose_type_name
from .information_schema import InformationSchemaAdapter

import logging
logger = logging.getLogger(__name__)

DEFAULT_ODBC_DRIVER = "{ODBC Driver 17 for SQL Server}"
_DATABASE_KEYS = ("DATABASE", "INITIAL CATALOG")


def build_odbc_connection_string(connection_kwargs: Dict[str, Any]) -> str:
    """
    Turn connection options into an ODBC connection string.

    A ready made ``connection_string`` option is used as is. Otherwise every
    option becomes a ``KEY=value`` pair and a default DRIVER is added.
    """
    if connection_kwargs.get("connection_string"):
        return connection_kwargs["connection_string"]

    parts = {k.upper(): v for k, v in connection_kwargs.items() if k not in ("timeout", "autocommit")}
    parts.setdefault("DRIVER", DEFAULT_ODBC_DRIVER)
    return ";".join(f"{key}={value}" for key, value in parts.items())


class SQLServerAdapter(InformationSchemaAdapter):
    """Adapter for SQL Server through pyodbc."""

    db_type = "sqlserver"
    paramstyle = "qmark"

    def connect(self, connection_kwargs: Dict[str, Any]) -> Any:
        import pyodbc

        conn_str = build_odbc_connection_string(connection_kwargs)
        timeout = connection_kwargs.get("timeout", CONNECTION_TIMEOUT_S)
        return pyodbc.connect(conn_str, timeout=timeout, autocommit=False)

    def current_database_name(self, connection_kwargs: Dict[str, Any]) -> Optional[str]:
        if connection_kwargs.get("connection_string"):
            for part in connection_kwargs["connection_string"].split(";"):
                key, _, value = part.partition("=")
                if key.strip().upper() in _DATABASE_KEYS:
                    return value.strip()
            return None
        return super().current_database_name(connection_kwargs)

    def apply_timeout(self, conn: Any, timeout: int):
        # pyodbc applies Connection.timeout to every subsequent query
        conn.timeout = timeout

    def _information_schema(self, database: str) -> str:
        return f"{self.dialect.ensure_wrapped(database)}.INFORMATION_SCHEMA"

    def list_databases(self, conn: Any) -> List[str]:
        return [row[0] for row in self.fetch_all(conn, "SELECT name FROM sys.databases")]

    def server_connection_kwargs(self, connection_kwargs: Dict[str, Any]) -> Dict[str, Any]:
        # a database cannot be dropped while connected to it, so use master
        if connection_kwargs.get("connection_string"):
            parts = [
                part for part in connection_kwargs["connection_string"].split(";")
                if part.partition("=")[0].strip().upper() not in _DATABASE_KEYS
            ]
            parts.append("DATABASE=master")
            return {**connection_kwargs, "connection_string": ";".join(p for p in parts if p.strip())}

        kwargs = {k: v for k, v in connection_kwargs.items() if k.upper() not in _DATABASE_KEYS}
        kwargs["database"] = "master"
        return kwargs

    # ==================== Table Valued Functions ====================

    def list_table_valued_functions(self, conn: Any, database: str) -> List[TableInfo]:
        db = self.dialect.ensure_wrapped(database)
        rows = self.fetch_all(
            conn,
            f"SELECT o.name, s.name FROM {db}.sys.objects o "
            f"JOIN {db}.sys.schemas s ON s.schema_id = o.schema_id "
            f"WHERE o.type_desc IN ('SQL_INLINE_TABLE_VALUED_FUNCTION', 'SQL_TABLE_VALUED_FUNCTION', "
            f"'CLR_TABLE_VALUED_FUNCTION') ORDER BY o.name",
        )
        return [
            TableInfo(
                name=name,
                schema=None if schema == self.dialect.default_schema else schema,
                table_type=TableType.TABLE_VALUED_FUNCTION,
            )
            for name, schema in rows
        ]

    def describe_function_parameters(
        self, conn: Any, database: str, schema: Optional[str], function: str
    ) -> List[ColumnInfo]:
        db = self.dialect.ensure_wrapped(database)
        fq = self.dialect.ensure_fully_qualified(database, schema or self.dialect.default_schema, function)
        rows = self.fetch_all(
            conn,
            f"SELECT p.name, t.name, p.max_length, p.precision, p.scale FROM {db}.sys.parameters p "
            f"JOIN {db}.sys.types t ON p.user_type_id = t.user_type_id "
            f"WHERE p.object_id = OBJECT_ID(?) ORDER BY p.parameter_id",
            (fq,),
        )
        parameters = []
        for name, type_name, max_length, precision, scale in rows:
            length = max_length
            # max_length is in bytes, nchar/nvarchar use two per character
            if length is not None and length != -1 and type_name.lower() in ("nchar", "nvarchar"):
                length = length // 2
            parameters.append(ColumnInfo(name=name, type_name=compose_type_name(type_name, length, precision, scale)))
        return parameters

    def _auto_increment_columns(self, conn: Any, database: str, schema: Optional[str], table: str) -> Set[str]:
        db = self.dialect.ensure_wrapped(database)
        fq = self.dialect.ensure_fully_qualified(database, schema or self.dialect.default_schema, table)
        rows = self.fetch_all(
            conn,
            f"SELECT name FROM {db}.sys.identity_columns WHERE object_id = OBJECT_ID(?)",
            (fq,),
        )
        return {row[0] for row in rows}

    def _bulk_cursor(self, conn: Any):
        cursor = conn.cursor()
        cursor.fast_executemany = True
        return cursor

    def describe_bulk_insert_error(self, error: BaseException) -> Optional[str]:
        args = getattr(error, "args", ())
        if len(args) >= 2 and isinstance(args[0], str):
            return f"SQLSTATE {args[0]}: {args[1]}"
        return None
