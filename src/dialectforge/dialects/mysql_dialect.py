"""
MySQL Dialect - MySQL/MariaDB-specific syntax and types
"""

from typing import List, Optional

from ..constants import UNLIMITED_LENGTH
from ..exceptions import NotSupportedError
from ..translation.translater import TypeTranslater, compile_type_regex
from .base import DatabaseDialect, MandatoryScalarFunction, QueryComponent, TopXResponse

import logging
logger = logging.getLogger(__name__)


class MySQLTypeTranslater(TypeTranslater):
    """
    Types for MySQL.

    tinyint(1) is how MySQL declares booleans, int1..int8 are aliases for the
    integer types and text is the unlimited string type. MySQL has no
    separate unicode string types (the charset decides).
    """

    byte_regex = compile_type_regex(r"^(tinyint)|(int1)")
    small_int_regex = compile_type_regex(r"^(smallint)|(int2)")
    int_regex = compile_type_regex(r"^(int)|(mediumint)|(middleint)|(int3)|(int4)")
    long_regex = compile_type_regex(r"^(bigint)|(int8)")
    date_regex = compile_type_regex(r"(date)|(timestamp)")

    also_bit_regex = compile_type_regex(r"tinyint\(1\)")
    also_string_regex = compile_type_regex(r"(long)|(enum)|(set)|(text)|(mediumtext)")
    also_float_regex = compile_type_regex(r"^(dec)|(fixed)")

    def __init__(self):
        super().__init__(max_string_width_before_max=4000, string_width_when_not_supplied=4000)

    def get_string_data_type_with_unlimited_width(self) -> str:
        return "text"

    def get_unicode_string_data_type_with_unlimited_width(self) -> str:
        return "text"

    def _get_unicode_string_data_type_impl(self, width: int) -> str:
        return f"varchar({width})"

    def _get_byte_array_data_type(self) -> str:
        return "longblob"

    def _get_guid_data_type(self) -> str:
        return "char(36)"

    def is_bit(self, sql_type: str) -> bool:
        return super().is_bit(sql_type) or bool(self.also_bit_regex.search(sql_type))

    def is_int(self, sql_type: str) -> bool:
        # int8 is a bigint
        if sql_type.lower().startswith("int8"):
            return False
        return super().is_int(sql_type)

    def is_string(self, sql_type: str) -> bool:
        lowered = sql_type.lower()
        if "binary" in lowered or "blob" in lowered:
            return False
        return super().is_string(sql_type) or bool(self.also_string_regex.search(sql_type))

    def is_floating_point(self, sql_type: str) -> bool:
        return super().is_floating_point(sql_type) or bool(self.also_float_regex.search(sql_type))

    def get_length_if_string(self, sql_type: str) -> int:
        lowered = sql_type.lower()
        if lowered in ("tinytext", "mediumtext", "longtext") or lowered.startswith(("enum", "set")):
            return UNLIMITED_LENGTH
        return super().get_length_if_string(sql_type)


class MySQLDialect(DatabaseDialect):
    """Dialect for MySQL/MariaDB databases."""

    db_type = "mysql"

    maximum_database_length = 64
    maximum_table_length = 64
    maximum_column_length = 64

    def _create_type_translater(self) -> TypeTranslater:
        return MySQLTypeTranslater()

    @property
    def quote_char(self) -> str:
        return "`"

    @property
    def reserved_words(self):
        return {"select", "from", "where", "table", "order", "group", "key", "keys", "index", "range", "interval"}

    def _qualify_table(self, database: str, schema: Optional[str], table: str) -> str:
        if schema:
            raise NotSupportedError("MySQL does not support schemas")
        db = self.ensure_wrapped(self.get_runtime_name(database))
        return f"{db}.{self.ensure_wrapped(self.get_runtime_name(table))}"

    def get_top_x(self, x: int) -> TopXResponse:
        return TopXResponse(f"LIMIT {x}", QueryComponent.POSTFIX)

    def get_scalar_function_sql(self, function: MandatoryScalarFunction) -> str:
        if function == MandatoryScalarFunction.GET_TODAYS_DATE:
            return "now()"
        if function == MandatoryScalarFunction.GET_GUID:
            return "(uuid())"
        raise ValueError(f"No SQL for scalar function {function}")

    def get_auto_increment_keyword(self) -> str:
        return "AUTO_INCREMENT"

    def get_alter_column_type_sql(
        self, fq_table: str, name: str, old_type: str, new_type: str, allow_nulls: bool
    ) -> List[str]:
        nullability = "NULL" if allow_nulls else "NOT NULL"
        return [f"ALTER TABLE {fq_table} MODIFY COLUMN {self.ensure_wrapped(name)} {new_type} {nullability}"]

    def get_rename_table_sql(self, database: str, schema: Optional[str], old_name: str, new_name: str) -> str:
        return (
            f"RENAME TABLE {self.ensure_fully_qualified(database, schema, old_name)} "
            f"TO {self.ensure_fully_qualified(database, schema, new_name)}"
        )

    def get_identity_query(self) -> Optional[str]:
        return "SELECT LAST_INSERT_ID()"
