"""
SQLite Adapter - sqlite3 driver for SQLite database files
"""

import datetime
import decimal
import re
import sqlite3
import uuid
from collections import OrderedDict
from contextlib import closing
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..constants import CREATE_DATABASE_TIMEOUT_S
from ..dialects.base import TableType
from ..exceptions import NotSupportedError
from .base import ColumnInfo, DatabaseAdapter, RelationshipInfo, TableInfo

import logging
logger = logging.getLogger(__name__)

_CONSTRAINT_NAME_REGEX = re.compile(r'CONSTRAINT\s+("(?:[^"]|"")+"|\w+)\s+FOREIGN\s+KEY', re.IGNORECASE)


class SQLiteAdapter(DatabaseAdapter):
    """
    Adapter for SQLite databases.

    The "database" connection option is the file path; the database name
    is the file name without its extension.

    Usage:
        adapter = SQLiteAdapter()
        conn = adapter.connect({"database": "/tmp/test.db"})
    """

    db_type = "sqlite"
    paramstyle = "named"

    def connect(self, connection_kwargs: Dict[str, Any]) -> sqlite3.Connection:
        conn = sqlite3.connect(**connection_kwargs)
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def current_database_name(self, connection_kwargs: Dict[str, Any]) -> Optional[str]:
        path = connection_kwargs.get("database")
        return Path(str(path)).stem if path else None

    def database_exists(self, connection_kwargs: Dict[str, Any], database: str) -> bool:
        path = connection_kwargs.get("database")
        if not path:
            return False
        if str(path) == ":memory:":
            return True
        return Path(str(path)).exists() and Path(str(path)).stem.lower() == database.lower()

    # ==================== Databases ====================

    def _database_file(self, connection_kwargs: Dict[str, Any], database: str) -> Path:
        path = connection_kwargs.get("database")
        if not path or str(path) == ":memory:" or Path(str(path)).stem.lower() != database.lower():
            raise NotSupportedError(
                f"SQLite can only create or drop the database file the connection names, not '{database}'"
            )
        return Path(str(path))

    def create_database(self, connection_kwargs: Dict[str, Any], database: str,
                        timeout: int = CREATE_DATABASE_TIMEOUT_S):
        path = self._database_file(connection_kwargs, database)
        # connecting creates the file
        with closing(self.connect(connection_kwargs)):
            pass
        logger.debug(f"Created SQLite database file {path}")

    def drop_database(self, connection_kwargs: Dict[str, Any], database: str,
                      timeout: int = CREATE_DATABASE_TIMEOUT_S):
        path = self._database_file(connection_kwargs, database)
        path.unlink()
        logger.debug(f"Deleted SQLite database file {path}")

    def to_db_value(self, value: Any) -> Any:
        value = super().to_db_value(value)
        # sqlite3 has no (non deprecated) adapters for these
        if isinstance(value, datetime.datetime):
            return value.isoformat(sep=" ")
        if isinstance(value, (datetime.date, datetime.time)):
            return value.isoformat()
        if isinstance(value, decimal.Decimal):
            return str(value)
        if isinstance(value, uuid.UUID):
            return str(value)
        return value

    # ==================== Catalog ====================

    def list_databases(self, conn: sqlite3.Connection) -> List[str]:
        rows = self.fetch_all(conn, "PRAGMA database_list")
        # (seq, name, file)
        return [Path(row[2]).stem if row[2] else row[1] for row in rows if row[1] == "main"]

    def list_tables(
        self, conn: sqlite3.Connection, database: str, schema: Optional[str] = None, include_views: bool = True
    ) -> List[TableInfo]:
        types = ("table", "view") if include_views else ("table",)
        rows = self.fetch_all(
            conn,
            f"SELECT name, type FROM sqlite_master WHERE type IN ({','.join('?' * len(types))}) "
            f"AND name NOT LIKE 'sqlite_%' ORDER BY name",
            types,
        )
        return [
            TableInfo(name=name, table_type=TableType.VIEW if kind == "view" else TableType.TABLE)
            for name, kind in rows
        ]

    def describe_columns(
        self, conn: sqlite3.Connection, database: str, schema: Optional[str], table: str
    ) -> List[ColumnInfo]:
        # PRAGMA does not take parameters, the name is quoted instead
        rows = self.fetch_all(conn, f"PRAGMA table_info({self.dialect.ensure_wrapped(table)})")
        create_sql = self._create_sql(conn, table)
        pk_columns = [row[1] for row in rows if row[5]]
        autoincrement = "AUTOINCREMENT" in create_sql.upper()

        columns = []
        for cid, name, type_name, notnull, default, pk in rows:
            is_rowid_alias = bool(pk) and len(pk_columns) == 1 and type_name.upper() == "INTEGER"
            columns.append(ColumnInfo(
                name=name,
                # newer SQLite releases report some declared types in upper case
                type_name=type_name.lower(),
                # rowid aliases never hold null even when not declared NOT NULL
                is_nullable=not notnull and not is_rowid_alias,
                is_primary_key=bool(pk),
                is_auto_increment=is_rowid_alias and autoincrement,
                attributes={"cid": cid, "default": default},
            ))
        return columns

    def list_relationships(
        self, conn: sqlite3.Connection, database: str, schema: Optional[str], table: str
    ) -> List[RelationshipInfo]:
        relationships = []
        for child in self.list_tables(conn, database, include_views=False):
            rows = self.fetch_all(conn, f"PRAGMA foreign_key_list({self.dialect.ensure_wrapped(child.name)})")
            # (id, seq, table, from, to, on_update, on_delete, match)
            groups: "OrderedDict[int, list]" = OrderedDict()
            for row in rows:
                if row[2].lower() == table.lower():
                    groups.setdefault(row[0], []).append(row)
            if not groups:
                continue

            names = [self.dialect.get_runtime_name(n) for n in
                     _CONSTRAINT_NAME_REGEX.findall(self._create_sql(conn, child.name))]
            for fk_id, fk_rows in groups.items():
                fk_rows.sort(key=lambda r: r[1])
                pairs = [(row[4] or self._primary_key_of(conn, row[2]), row[3]) for row in fk_rows]
                name = names[0] if len(groups) == 1 and len(names) == 1 else f"FK_{child.name}_{fk_id}"
                relationships.append(RelationshipInfo(
                    name=name,
                    primary_table=fk_rows[0][2],
                    foreign_table=child.name,
                    pairs=pairs,
                    delete_rule=fk_rows[0][6],
                ))
        return relationships

    def _create_sql(self, conn: sqlite3.Connection, table: str) -> str:
        sql = self.execute_scalar(conn, "SELECT sql FROM sqlite_master WHERE name = ?", (table,))
        return sql or ""

    def _primary_key_of(self, conn: sqlite3.Connection, table: str) -> Optional[str]:
        for column in self.describe_columns(conn, "", None, table):
            if column.is_primary_key:
                return column.name
        return None
