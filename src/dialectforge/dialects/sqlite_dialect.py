"""
SQLite Dialect - SQLite-specific syntax and types

SQLite derives type affinity from the declared type name. PRAGMA table_info
reports that name (upper-cased by newer releases for known types), so
discovered type names are lower-cased to round-trip the usual declarations.
A SQLite database is a single file: the database name never appears in
qualified names and schemas are not supported.
"""

from typing import List, Optional

from ..exceptions import NotSupportedError
from ..translation.translater import TypeTranslater
from .base import DatabaseDialect, MandatoryScalarFunction, QueryComponent, TopXResponse

import logging
logger = logging.getLogger(__name__)


class SQLiteTypeTranslater(TypeTranslater):
    """Types for SQLite. Widths are advisory, nothing is ever too wide."""

    def __init__(self):
        super().__init__(max_string_width_before_max=8000, string_width_when_not_supplied=4000)

    def get_string_data_type_with_unlimited_width(self) -> str:
        return "text"

    def get_unicode_string_data_type_with_unlimited_width(self) -> str:
        return "ntext"

    def _get_int_data_type(self) -> str:
        # exactly INTEGER is required for AUTOINCREMENT rowid aliases
        return "integer"

    def _get_byte_array_data_type(self) -> str:
        return "blob"


class SQLiteDialect(DatabaseDialect):
    """Dialect for SQLite databases."""

    db_type = "sqlite"

    auto_increment_implies_primary_key = True

    def _create_type_translater(self) -> TypeTranslater:
        return SQLiteTypeTranslater()

    @property
    def quote_char(self) -> str:
        return '"'

    @property
    def reserved_words(self):
        return {"select", "from", "where", "table", "order", "group", "key", "index", "default"}

    def _qualify_table(self, database: str, schema: Optional[str], table: str) -> str:
        if schema:
            raise NotSupportedError("SQLite does not support schemas")
        return self.ensure_wrapped(self.get_runtime_name(table))

    def get_top_x(self, x: int) -> TopXResponse:
        return TopXResponse(f"LIMIT {x}", QueryComponent.POSTFIX)

    def get_scalar_function_sql(self, function: MandatoryScalarFunction) -> str:
        if function == MandatoryScalarFunction.GET_TODAYS_DATE:
            return "CURRENT_TIMESTAMP"
        if function == MandatoryScalarFunction.GET_GUID:
            return "(lower(hex(randomblob(16))))"
        raise ValueError(f"No SQL for scalar function {function}")

    def get_auto_increment_keyword(self) -> str:
        return "PRIMARY KEY AUTOINCREMENT"

    def get_truncate_sql(self, fq_table: str) -> str:
        return f"DELETE FROM {fq_table}"

    def get_create_primary_key_sql(self, fq_table: str, table_name: str, columns) -> str:
        raise NotSupportedError("SQLite cannot add a primary key to an existing table")

    def get_add_foreign_key_sql(self, foreign_fq: str, constraint_sql: str) -> str:
        raise NotSupportedError("SQLite cannot add a foreign key to an existing table")

    def get_create_database_sql(self, database: str) -> List[str]:
        raise NotSupportedError("A SQLite database is created by opening its file")

    def get_drop_database_sql(self, database: str) -> List[str]:
        raise NotSupportedError("A SQLite database is dropped by deleting its file")
