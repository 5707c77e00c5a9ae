"""
INFORMATION_SCHEMA Adapter - Catalog reads shared by ANSI catalog databases

SQL Server, PostgreSQL and MySQL all expose the ANSI INFORMATION_SCHEMA
views. The differences are handled by small hooks:
- where the views live (``[db].INFORMATION_SCHEMA`` for SQL Server)
- which column holds the database name (TABLE_CATALOG vs TABLE_SCHEMA)
- how auto increment columns are recognised
"""

from collections import OrderedDict
from typing import Any, List, Optional, Set

from ..dialects.base import TableType
from .base import ColumnInfo, DatabaseAdapter, RelationshipInfo, TableInfo, compose_type_name

import logging
logger = logging.getLogger(__name__)


class InformationSchemaAdapter(DatabaseAdapter):
    """Base for adapters reading their catalog from INFORMATION_SCHEMA."""

    catalog_column = "TABLE_CATALOG"

    def _information_schema(self, database: str) -> str:
        return "INFORMATION_SCHEMA"

    def _query(self, conn: Any, sql: str, values: List[Any]) -> List[tuple]:
        """Run ``sql`` whose parameters are written as {0}, {1}... markers."""
        names = [f"p{i}" for i in range(len(values))]
        sql = sql.format(*(self.placeholder(n) for n in names))
        return self.fetch_all(conn, sql, self.make_params(names, values))

    # ==================== Tables ====================

    def list_tables(
        self, conn: Any, database: str, schema: Optional[str] = None, include_views: bool = True
    ) -> List[TableInfo]:
        info = self._information_schema(database)
        sql = (
            f"SELECT TABLE_NAME, TABLE_SCHEMA, TABLE_TYPE FROM {info}.TABLES "
            f"WHERE {self.catalog_column} = {{0}}"
        )
        values = [database]
        if schema:
            sql += " AND TABLE_SCHEMA = {1}"
            values.append(schema)
        sql += " ORDER BY TABLE_NAME"

        tables = []
        for name, table_schema, table_type in self._query(conn, sql, values):
            is_view = "VIEW" in str(table_type).upper()
            if is_view and not include_views:
                continue
            tables.append(TableInfo(
                name=name,
                schema=table_schema,
                table_type=TableType.VIEW if is_view else TableType.TABLE,
            ))
        return tables

    # ==================== Columns ====================

    def describe_columns(self, conn: Any, database: str, schema: Optional[str], table: str) -> List[ColumnInfo]:
        info = self._information_schema(database)
        schema = schema or self.dialect.get_default_schema_if_any()

        sql = (
            f"SELECT COLUMN_NAME, {self._type_columns()}, IS_NULLABLE, COLLATION_NAME "
            f"FROM {info}.COLUMNS WHERE {self.catalog_column} = {{0}} AND TABLE_NAME = {{1}}"
        )
        values = [database, table]
        if schema:
            sql += " AND TABLE_SCHEMA = {2}"
            values.append(schema)
        sql += " ORDER BY ORDINAL_POSITION"
        rows = self._query(conn, sql, values)

        primary_keys = self._primary_key_columns(conn, database, schema, table)
        auto_increment = self._auto_increment_columns(conn, database, schema, table)

        columns = []
        for row in rows:
            name = row[0]
            columns.append(ColumnInfo(
                name=name,
                type_name=self._type_name(row[1:-2]),
                is_nullable=str(row[-2]).upper() == "YES",
                is_primary_key=name in primary_keys,
                is_auto_increment=name in auto_increment,
                collation=row[-1],
            ))
        return columns

    def _type_columns(self) -> str:
        return "DATA_TYPE, CHARACTER_MAXIMUM_LENGTH, NUMERIC_PRECISION, NUMERIC_SCALE"

    def _type_name(self, parts) -> str:
        return compose_type_name(*parts)

    def _primary_key_columns(self, conn: Any, database: str, schema: Optional[str], table: str) -> Set[str]:
        info = self._information_schema(database)
        sql = (
            f"SELECT k.COLUMN_NAME FROM {info}.TABLE_CONSTRAINTS t "
            f"JOIN {info}.KEY_COLUMN_USAGE k ON t.CONSTRAINT_NAME = k.CONSTRAINT_NAME "
            f"AND t.TABLE_NAME = k.TABLE_NAME AND t.TABLE_SCHEMA = k.TABLE_SCHEMA "
            f"WHERE t.CONSTRAINT_TYPE = 'PRIMARY KEY' AND t.{self.catalog_column} = {{0}} AND t.TABLE_NAME = {{1}}"
        )
        values = [database, table]
        if schema:
            sql += " AND t.TABLE_SCHEMA = {2}"
            values.append(schema)
        return {row[0] for row in self._query(conn, sql, values)}

    def _auto_increment_columns(self, conn: Any, database: str, schema: Optional[str], table: str) -> Set[str]:
        return set()

    # ==================== Relationships ====================

    def list_relationships(
        self, conn: Any, database: str, schema: Optional[str], table: str
    ) -> List[RelationshipInfo]:
        rows = self._query(conn, *self._relationship_query(database, schema, table))

        grouped: "OrderedDict[str, RelationshipInfo]" = OrderedDict()
        for name, pk_schema, pk_table, pk_column, fk_schema, fk_table, fk_column, delete_rule in rows:
            relationship = grouped.get(name)
            if relationship is None:
                relationship = grouped[name] = RelationshipInfo(
                    name=name,
                    primary_table=pk_table,
                    foreign_table=fk_table,
                    delete_rule=delete_rule or "",
                    primary_schema=pk_schema,
                    foreign_schema=fk_schema,
                )
            relationship.pairs.append((pk_column, fk_column))
        return list(grouped.values())

    def _relationship_query(self, database: str, schema: Optional[str], table: str):
        info = self._information_schema(database)
        sql = (
            f"SELECT rc.CONSTRAINT_NAME, kp.TABLE_SCHEMA, kp.TABLE_NAME, kp.COLUMN_NAME, "
            f"kf.TABLE_SCHEMA, kf.TABLE_NAME, kf.COLUMN_NAME, rc.DELETE_RULE "
            f"FROM {info}.REFERENTIAL_CONSTRAINTS rc "
            f"JOIN {info}.KEY_COLUMN_USAGE kf ON kf.CONSTRAINT_NAME = rc.CONSTRAINT_NAME "
            f"AND kf.CONSTRAINT_SCHEMA = rc.CONSTRAINT_SCHEMA "
            f"JOIN {info}.KEY_COLUMN_USAGE kp ON kp.CONSTRAINT_NAME = rc.UNIQUE_CONSTRAINT_NAME "
            f"AND kp.CONSTRAINT_SCHEMA = rc.UNIQUE_CONSTRAINT_SCHEMA "
            f"AND kp.ORDINAL_POSITION = kf.ORDINAL_POSITION "
            f"WHERE kp.TABLE_NAME = {{0}}"
        )
        values = [table]
        schema = schema or self.dialect.get_default_schema_if_any()
        if schema:
            sql += " AND kp.TABLE_SCHEMA = {1}"
            values.append(schema)
        sql += " ORDER BY rc.CONSTRAINT_NAME, kf.ORDINAL_POSITION"
        return sql, values
