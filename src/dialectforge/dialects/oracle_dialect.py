"""
Oracle Dialect - Oracle-specific syntax and types

Oracle stores every integer as NUMBER(p): integer requests are declared as
number(5)/number(10)/number(19) and read back (catalogs report them as
NUMBER(p) or decimal(p,0)) by precision. NUMBER(38) is what Oracle creates
for INTEGER/INT/SMALLINT declarations and is treated as an int.
"""

import re
import uuid
from typing import List, Optional

from ..constants import UNLIMITED_LENGTH
from ..exceptions import NotSupportedError
from ..translation.translater import TypeTranslater, compile_type_regex
from .base import DatabaseDialect, MandatoryScalarFunction, QueryComponent, TopXResponse

import logging
logger = logging.getLogger(__name__)

_INTEGER_PRECISION = re.compile(r"^(number|decimal)\((\d+)(,\s*0)?\)$", re.IGNORECASE)


class OracleTypeTranslater(TypeTranslater):
    """Types for Oracle."""

    # nvarchar2 and varchar2 widths are in bytes, multi-byte characters need room
    extra_length_per_non_ascii = 3

    date_regex = compile_type_regex(r"(date)|(timestamp)")
    also_string_regex = compile_type_regex(r"^([N]?CLOB)|(LONG)")
    also_float_regex = compile_type_regex(r"^(NUMBER)|(DEC)")
    also_byte_array_regex = compile_type_regex(r"(BFILE)|(BLOB)|(RAW)|(ROWID)")

    def __init__(self):
        super().__init__(max_string_width_before_max=4000, string_width_when_not_supplied=4000)

    def _get_string_data_type_impl(self, width: int) -> str:
        return f"varchar2({width})"

    def _get_unicode_string_data_type_impl(self, width: int) -> str:
        return f"nvarchar2({width})"

    def get_string_data_type_with_unlimited_width(self) -> str:
        return "CLOB"

    def get_unicode_string_data_type_with_unlimited_width(self) -> str:
        return "NCLOB"

    def _get_time_data_type(self) -> str:
        return "TIMESTAMP"

    def _get_date_time_data_type(self) -> str:
        return "DATE"

    def _get_bool_data_type(self) -> str:
        return "number(1)"

    def _get_byte_data_type(self) -> str:
        return "number(3)"

    def _get_small_int_data_type(self) -> str:
        return "number(5)"

    def _get_int_data_type(self) -> str:
        return "number(10)"

    def _get_big_int_data_type(self) -> str:
        return "number(19)"

    def _get_byte_array_data_type(self) -> str:
        return "BLOB"

    def _get_guid_data_type(self) -> str:
        return "RAW(16)"

    def _integer_precision(self, sql_type: str) -> Optional[int]:
        match = _INTEGER_PRECISION.match(sql_type.strip())
        return int(match.group(2)) if match else None

    def is_bit(self, sql_type: str) -> bool:
        return self._integer_precision(sql_type) == 1

    def is_byte(self, sql_type: str) -> bool:
        return self._integer_precision(sql_type) == 3

    def is_small_int(self, sql_type: str) -> bool:
        return self._integer_precision(sql_type) == 5

    def is_int(self, sql_type: str) -> bool:
        return (
            self._integer_precision(sql_type) in (10, 38)
            or sql_type.upper().startswith(("SMALLINT", "INTEGER", "INT"))
        )

    def is_long(self, sql_type: str) -> bool:
        return self._integer_precision(sql_type) == 19 or super().is_long(sql_type)

    def is_string(self, sql_type: str) -> bool:
        if "RAW" in sql_type.upper():
            return False
        return super().is_string(sql_type) or bool(self.also_string_regex.search(sql_type))

    def is_floating_point(self, sql_type: str) -> bool:
        return super().is_floating_point(sql_type) or bool(self.also_float_regex.search(sql_type))

    def is_byte_array(self, sql_type: str) -> bool:
        return super().is_byte_array(sql_type) or bool(self.also_byte_array_regex.search(sql_type))

    def get_length_if_string(self, sql_type: str) -> int:
        if self.also_string_regex.search(sql_type):
            return UNLIMITED_LENGTH
        return super().get_length_if_string(sql_type)


class OracleDialect(DatabaseDialect):
    """
    Dialect for Oracle databases.

    Oracle folds unquoted identifiers to upper case, so runtime names are
    upper cased and limited to 30 characters.
    """

    db_type = "oracle"

    parameter_symbol = ":"

    maximum_database_length = 30
    maximum_table_length = 30
    maximum_column_length = 30

    def _create_type_translater(self) -> TypeTranslater:
        return OracleTypeTranslater()

    @property
    def quote_char(self) -> str:
        return '"'

    @property
    def reserved_words(self):
        return {"access", "comment", "date", "file", "level", "number", "size", "uid", "user", "order", "group"}

    def get_runtime_name(self, line: str) -> str:
        name = super().get_runtime_name(line)
        if not name:
            return name
        return name.upper()[:self.maximum_column_length]

    def _wrap_impl(self, name: str) -> str:
        return super()._wrap_impl(name.upper())

    def _qualify_table(self, database: str, schema: Optional[str], table: str) -> str:
        if schema:
            raise NotSupportedError("Oracle uses the database (user) as the schema")
        db = self.ensure_wrapped(self.get_runtime_name(database))
        return f"{db}.{self.ensure_wrapped(self.get_runtime_name(table))}"

    def get_top_x(self, x: int) -> TopXResponse:
        return TopXResponse(f"ROWNUM <= {x}", QueryComponent.WHERE)

    def get_scalar_function_sql(self, function: MandatoryScalarFunction) -> str:
        if function == MandatoryScalarFunction.GET_TODAYS_DATE:
            return "CURRENT_TIMESTAMP"
        if function == MandatoryScalarFunction.GET_GUID:
            return "SYS_GUID()"
        raise ValueError(f"No SQL for scalar function {function}")

    def get_auto_increment_keyword(self) -> str:
        return "GENERATED ALWAYS AS IDENTITY"

    def get_alter_column_type_sql(
        self, fq_table: str, name: str, old_type: str, new_type: str, allow_nulls: bool
    ) -> List[str]:
        # Nullability is left alone; Oracle rejects restating the current one
        return [f"ALTER TABLE {fq_table} MODIFY {self.ensure_wrapped(name)} {new_type}"]

    def get_create_database_sql(self, database: str) -> List[str]:
        # a database is a user; passwords are limited to 30 characters
        wrapped = self.ensure_wrapped(database)
        return [
            f"CREATE USER {wrapped} IDENTIFIED BY pwd{uuid.uuid4().hex[:27]}",
            f"ALTER USER {wrapped} QUOTA UNLIMITED ON system",
            f"ALTER USER {wrapped} QUOTA UNLIMITED ON users",
        ]

    def get_drop_database_sql(self, database: str) -> List[str]:
        return [f"DROP USER {self.ensure_wrapped(database)} CASCADE"]
