"""
PostgreSQL Adapter - psycopg2 driver for PostgreSQL
"""

from typing import Any, Dict, List, Optional, Set

from ..constants import CONNECTION_TIMEOUT_S
from .information_schema import InformationSchemaAdapter

import logging
logger = logging.getLogger(__name__)


class PostgreSQLAdapter(InformationSchemaAdapter):
    """
    Adapter for PostgreSQL through psycopg2.

    A PostgreSQL connection is bound to one database, the catalog views only
    show that database.
    """

    db_type = "postgresql"
    paramstyle = "pyformat"

    def connect(self, connection_kwargs: Dict[str, Any]) -> Any:
        import psycopg2

        kwargs = dict(connection_kwargs)
        kwargs.setdefault("connect_timeout", CONNECTION_TIMEOUT_S)
        return psycopg2.connect(**kwargs)

    def apply_timeout(self, conn: Any, timeout: int):
        with conn.cursor() as cursor:
            cursor.execute("SET statement_timeout = %s", (int(timeout) * 1000,))

    def list_databases(self, conn: Any) -> List[str]:
        return [row[0] for row in self.fetch_all(conn, "SELECT datname FROM pg_database WHERE NOT datistemplate")]

    def server_connection_kwargs(self, connection_kwargs: Dict[str, Any]) -> Dict[str, Any]:
        # every connection needs a database, the maintenance one always exists
        kwargs = super().server_connection_kwargs(connection_kwargs)
        kwargs["dbname"] = "postgres"
        return kwargs

    def _auto_increment_columns(self, conn: Any, database: str, schema: Optional[str], table: str) -> Set[str]:
        # %% because the query is sent with pyformat parameters
        rows = self.fetch_all(
            conn,
            "SELECT column_name FROM information_schema.columns "
            "WHERE table_name = %(table)s AND table_schema = %(schema)s "
            "AND (is_identity = 'YES' OR column_default LIKE 'nextval%%')",
            {"table": table, "schema": schema or self.dialect.default_schema},
        )
        return {row[0] for row in rows}

    def describe_bulk_insert_error(self, error: BaseException) -> Optional[str]:
        diag = getattr(error, "diag", None)
        if diag is None:
            return None
        detail = getattr(diag, "message_detail", None)
        column = getattr(diag, "column_name", None)
        if column:
            return f"Column {column}: {detail or ''}".strip()
        return detail
