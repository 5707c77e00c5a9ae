"""
MySQL Adapter - pymysql driver for MySQL/MariaDB
"""

from typing import Any, Dict, List, Optional, Set

from ..constants import CONNECTION_TIMEOUT_S
from .information_schema import InformationSchemaAdapter

import logging
logger = logging.getLogger(__name__)


class MySQLAdapter(InformationSchemaAdapter):
    """
    Adapter for MySQL/MariaDB through pymysql.

    MySQL calls a database a schema, so INFORMATION_SCHEMA filters on
    TABLE_SCHEMA and COLUMN_TYPE already holds the full declaration.
    """

    db_type = "mysql"
    paramstyle = "pyformat"
    catalog_column = "TABLE_SCHEMA"

    def connect(self, connection_kwargs: Dict[str, Any]) -> Any:
        import pymysql

        kwargs = dict(connection_kwargs)
        kwargs.setdefault("connect_timeout", CONNECTION_TIMEOUT_S)
        kwargs.setdefault("autocommit", False)
        return pymysql.connect(**kwargs)

    def apply_timeout(self, conn: Any, timeout: int):
        with conn.cursor() as cursor:
            cursor.execute("SET SESSION max_execution_time = %s", (int(timeout) * 1000,))

    def list_databases(self, conn: Any) -> List[str]:
        return [row[0] for row in self.fetch_all(conn, "SELECT SCHEMA_NAME FROM information_schema.SCHEMATA")]

    def enable_autocommit(self, conn: Any):
        # pymysql exposes autocommit as a method
        conn.autocommit(True)

    def list_tables(self, conn: Any, database: str, schema: Optional[str] = None, include_views: bool = True):
        # the "schema" of a MySQL table is its database
        return super().list_tables(conn, database, None, include_views)

    def describe_columns(self, conn: Any, database: str, schema: Optional[str], table: str):
        return super().describe_columns(conn, database, None, table)

    def _type_columns(self) -> str:
        return "COLUMN_TYPE"

    def _type_name(self, parts) -> str:
        return parts[0]

    def _auto_increment_columns(self, conn: Any, database: str, schema: Optional[str], table: str) -> Set[str]:
        rows = self.fetch_all(
            conn,
            "SELECT COLUMN_NAME FROM information_schema.COLUMNS "
            "WHERE TABLE_SCHEMA = %(db)s AND TABLE_NAME = %(table)s AND EXTRA LIKE '%%auto_increment%%'",
            {"db": database, "table": table},
        )
        return {row[0] for row in rows}

    def _relationship_query(self, database: str, schema: Optional[str], table: str):
        sql = (
            "SELECT k.CONSTRAINT_NAME, k.REFERENCED_TABLE_SCHEMA, k.REFERENCED_TABLE_NAME, "
            "k.REFERENCED_COLUMN_NAME, k.TABLE_SCHEMA, k.TABLE_NAME, k.COLUMN_NAME, rc.DELETE_RULE "
            "FROM information_schema.KEY_COLUMN_USAGE k "
            "JOIN information_schema.REFERENTIAL_CONSTRAINTS rc ON rc.CONSTRAINT_NAME = k.CONSTRAINT_NAME "
            "AND rc.CONSTRAINT_SCHEMA = k.CONSTRAINT_SCHEMA "
            "WHERE k.REFERENCED_TABLE_SCHEMA = {0} AND k.REFERENCED_TABLE_NAME = {1} "
            "ORDER BY k.CONSTRAINT_NAME, k.ORDINAL_POSITION"
        )
        return sql, [database, table]
