"""
Oracle Adapter - python-oracledb driver for Oracle

Oracle has no INFORMATION_SCHEMA; the ALL_* dictionary views are used.
A "database" is an Oracle user (schema owner), names are stored upper case.
"""

from collections import OrderedDict
from typing import Any, Dict, List, Optional

from ..constants import DEFAULT_COMMAND_TIMEOUT_S
from ..dialects.base import TableType
from .base import ColumnInfo, DatabaseAdapter, RelationshipInfo, TableInfo

import logging
logger = logging.getLogger(__name__)


def _compose_oracle_type(data_type: str, length, precision, scale) -> str:
    upper = data_type.upper()
    if upper in ("VARCHAR2", "NVARCHAR2", "CHAR", "NCHAR", "RAW") and length is not None:
        return f"{data_type}({int(length)})"
    if upper == "NUMBER" and precision is not None:
        if scale:
            return f"{data_type}({int(precision)},{int(scale)})"
        return f"{data_type}({int(precision)})"
    return data_type


class OracleAdapter(DatabaseAdapter):
    """Adapter for Oracle through python-oracledb (thin mode)."""

    db_type = "oracle"
    paramstyle = "named"

    def connect(self, connection_kwargs: Dict[str, Any]) -> Any:
        import oracledb

        return oracledb.connect(**connection_kwargs)

    def current_database_name(self, connection_kwargs: Dict[str, Any]) -> Optional[str]:
        user = connection_kwargs.get("user")
        return str(user).upper() if user else super().current_database_name(connection_kwargs)

    def apply_timeout(self, conn: Any, timeout: int):
        # milliseconds, applies to each round trip
        conn.call_timeout = int(timeout) * 1000

    def insert_returning_identity(self, conn: Any, sql: str, params, identity_sql: Optional[str] = None,
                                  returning: bool = False, timeout: int = DEFAULT_COMMAND_TIMEOUT_S) -> int:
        # cursor.lastrowid is a ROWID string here, not the identity value
        self.execute(conn, sql, params, timeout=timeout)
        return 0

    def list_databases(self, conn: Any) -> List[str]:
        return [row[0] for row in self.fetch_all(conn, "SELECT username FROM all_users")]

    def server_connection_kwargs(self, connection_kwargs: Dict[str, Any]) -> Dict[str, Any]:
        # the connecting user creates and drops the other users
        return dict(connection_kwargs)

    def list_tables(
        self, conn: Any, database: str, schema: Optional[str] = None, include_views: bool = True
    ) -> List[TableInfo]:
        owner = database.upper()
        tables = [
            TableInfo(name=row[0])
            for row in self.fetch_all(
                conn, "SELECT table_name FROM all_tables WHERE owner = :owner ORDER BY table_name", {"owner": owner}
            )
        ]
        if include_views:
            tables.extend(
                TableInfo(name=row[0], table_type=TableType.VIEW)
                for row in self.fetch_all(
                    conn, "SELECT view_name FROM all_views WHERE owner = :owner ORDER BY view_name", {"owner": owner}
                )
            )
        return tables

    def describe_columns(self, conn: Any, database: str, schema: Optional[str], table: str) -> List[ColumnInfo]:
        params = {"owner": database.upper(), "tbl": table.upper()}
        rows = self.fetch_all(
            conn,
            "SELECT column_name, data_type, data_length, data_precision, data_scale, nullable, identity_column "
            "FROM all_tab_columns WHERE owner = :owner AND table_name = :tbl ORDER BY column_id",
            params,
        )
        primary_keys = {
            row[0] for row in self.fetch_all(
                conn,
                "SELECT cc.column_name FROM all_constraints c "
                "JOIN all_cons_columns cc ON c.owner = cc.owner AND c.constraint_name = cc.constraint_name "
                "WHERE c.constraint_type = 'P' AND c.owner = :owner AND c.table_name = :tbl",
                params,
            )
        }

        return [
            ColumnInfo(
                name=name,
                type_name=_compose_oracle_type(data_type, length, precision, scale),
                is_nullable=nullable == "Y",
                is_primary_key=name in primary_keys,
                is_auto_increment=identity == "YES",
            )
            for name, data_type, length, precision, scale, nullable, identity in rows
        ]

    def list_relationships(
        self, conn: Any, database: str, schema: Optional[str], table: str
    ) -> List[RelationshipInfo]:
        rows = self.fetch_all(
            conn,
            "SELECT fk.constraint_name, pkc.table_name, pkc.column_name, fkc.table_name, fkc.column_name, "
            "fk.delete_rule FROM all_constraints fk "
            "JOIN all_constraints pk ON fk.r_owner = pk.owner AND fk.r_constraint_name = pk.constraint_name "
            "JOIN all_cons_columns fkc ON fkc.owner = fk.owner AND fkc.constraint_name = fk.constraint_name "
            "JOIN all_cons_columns pkc ON pkc.owner = pk.owner AND pkc.constraint_name = pk.constraint_name "
            "AND pkc.position = fkc.position "
            "WHERE fk.constraint_type = 'R' AND pk.owner = :owner AND pk.table_name = :tbl "
            "ORDER BY fk.constraint_name, fkc.position",
            {"owner": database.upper(), "tbl": table.upper()},
        )

        grouped: "OrderedDict[str, RelationshipInfo]" = OrderedDict()
        for name, pk_table, pk_column, fk_table, fk_column, delete_rule in rows:
            relationship = grouped.setdefault(name, RelationshipInfo(
                name=name, primary_table=pk_table, foreign_table=fk_table, delete_rule=delete_rule or "",
            ))
            relationship.pairs.append((pk_column, fk_column))
        return list(grouped.values())
