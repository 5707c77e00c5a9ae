"""
PostgreSQL Dialect - PostgreSQL-specific syntax and types
"""

from typing import List, Optional

from ..translation.translater import TypeTranslater, compile_type_regex
from .base import DatabaseDialect, MandatoryScalarFunction, QueryComponent, TopXResponse

import logging
logger = logging.getLogger(__name__)


class PostgreSQLTypeTranslater(TypeTranslater):
    """
    Types for PostgreSQL.

    Catalogs report long type names ("timestamp without time zone",
    "character varying(10)"), hence the looser date/time patterns.
    """

    date_regex = compile_type_regex(r"timestamp")
    # the trailing space separates "time without time zone" from "timestamp"
    time_regex = compile_type_regex(r"^time( |$)")
    byte_array_regex = compile_type_regex(r"(binary)|(blob)|(bytea)")
    guid_regex = compile_type_regex(r"^(uniqueidentifier)|(uuid)")
    floating_point_regex = compile_type_regex(
        r"^(float)|(decimal)|(numeric)|(real)|(money)|(double)"
    )

    def __init__(self):
        super().__init__(max_string_width_before_max=8000, string_width_when_not_supplied=4000)

    def get_string_data_type_with_unlimited_width(self) -> str:
        return "text"

    def get_unicode_string_data_type_with_unlimited_width(self) -> str:
        return "text"

    def _get_unicode_string_data_type_impl(self, width: int) -> str:
        return self._get_string_data_type_impl(width)

    def _get_date_time_data_type(self) -> str:
        return "timestamp"

    def _get_bool_data_type(self) -> str:
        return "boolean"

    def _get_byte_data_type(self) -> str:
        # no single byte integer in PostgreSQL
        return "smallint"

    def _get_byte_array_data_type(self) -> str:
        return "bytea"

    def _get_guid_data_type(self) -> str:
        return "uuid"

    def get_length_if_string(self, sql_type: str) -> int:
        length = super().get_length_if_string(sql_type)
        if length == -1 and sql_type.lower() in ("character varying", "varchar"):
            # varchar without a length is unlimited in PostgreSQL
            return super().get_length_if_string("text")
        return length


class PostgreSQLDialect(DatabaseDialect):
    """Dialect for PostgreSQL databases."""

    db_type = "postgresql"

    maximum_database_length = 63
    maximum_table_length = 63
    maximum_column_length = 63

    insert_returns_identity = True

    def _create_type_translater(self) -> TypeTranslater:
        return PostgreSQLTypeTranslater()

    @property
    def quote_char(self) -> str:
        return '"'

    @property
    def default_schema(self) -> str:
        return "public"

    @property
    def reserved_words(self):
        return {"select", "from", "where", "table", "order", "group", "user", "limit", "offset", "default"}

    def _qualify_table(self, database: str, schema: Optional[str], table: str) -> str:
        db = self.ensure_wrapped(self.get_runtime_name(database))
        tbl = self.ensure_wrapped(self.get_runtime_name(table))
        return f"{db}.{schema or self.default_schema}.{tbl}"

    def get_top_x(self, x: int) -> TopXResponse:
        return TopXResponse(f"fetch first {x} rows only", QueryComponent.POSTFIX)

    def get_scalar_function_sql(self, function: MandatoryScalarFunction) -> str:
        if function == MandatoryScalarFunction.GET_TODAYS_DATE:
            return "now()"
        if function == MandatoryScalarFunction.GET_GUID:
            return "gen_random_uuid()"
        raise ValueError(f"No SQL for scalar function {function}")

    def get_auto_increment_keyword(self) -> str:
        return "GENERATED ALWAYS AS IDENTITY"

    def get_alter_column_type_sql(
        self, fq_table: str, name: str, old_type: str, new_type: str, allow_nulls: bool
    ) -> List[str]:
        wrapped = self.ensure_wrapped(name)
        return [f"ALTER TABLE {fq_table} ALTER COLUMN {wrapped} TYPE {new_type} USING {wrapped}::{new_type}"]

    def get_insert_sql(self, fq_table, columns, placeholders, auto_increment_column=None) -> str:
        sql = super().get_insert_sql(fq_table, columns, placeholders)
        if auto_increment_column:
            sql += f" RETURNING {self.ensure_wrapped(auto_increment_column)}"
        return sql
