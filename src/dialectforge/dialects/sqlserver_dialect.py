"""
SQL Server Dialect - SQL Server-specific syntax and types
"""

import re
from typing import List, Optional, Sequence

from ..constants import BIT_INTERMEDIATE_TYPE
from ..translation.translater import TypeTranslater, compile_type_regex
from .base import DatabaseDialect, MandatoryScalarFunction, QueryComponent, TopXResponse

import logging
logger = logging.getLogger(__name__)

# Error numbers SQL Server reports for timeouts / deadlock victims
_TIMEOUT_ERROR_NUMBERS = {-2, 11, 1205}
_ERROR_NUMBER_REGEX = re.compile(r"\((-?\d+)\)")


class SQLServerTypeTranslater(TypeTranslater):
    """Types for SQL Server: datetime2, (n)varchar(max) and image/rowversion binaries."""

    also_byte_array_regex = compile_type_regex(r"(image)|(timestamp)|(rowversion)")

    def __init__(self):
        super().__init__(max_string_width_before_max=8000, string_width_when_not_supplied=4000)

    def _get_date_time_data_type(self) -> str:
        return "datetime2"

    def is_byte_array(self, sql_type: str) -> bool:
        return super().is_byte_array(sql_type) or bool(self.also_byte_array_regex.search(sql_type))


class SQLServerDialect(DatabaseDialect):
    """Dialect for SQL Server databases."""

    db_type = "sqlserver"

    maximum_database_length = 100
    maximum_table_length = 128
    maximum_column_length = 128

    def _create_type_translater(self) -> TypeTranslater:
        return SQLServerTypeTranslater()

    @property
    def quote_char(self) -> str:
        return "["

    @property
    def quote_char_end(self) -> str:
        return "]"

    @property
    def default_schema(self) -> str:
        return "dbo"

    @property
    def reserved_words(self):
        return {"select", "from", "where", "table", "order", "group", "user", "key", "index", "default"}

    def _qualify_table(self, database: str, schema: Optional[str], table: str) -> str:
        # [db]..[table] when no schema is given, otherwise [db].schema.[table]
        db = self.ensure_wrapped(self.get_runtime_name(database))
        tbl = self.ensure_wrapped(self.get_runtime_name(table))
        if not schema:
            return f"{db}..{tbl}"
        return f"{db}.{schema}.{tbl}"

    def get_top_x(self, x: int) -> TopXResponse:
        return TopXResponse(f"TOP {x}", QueryComponent.SELECT)

    def get_scalar_function_sql(self, function: MandatoryScalarFunction) -> str:
        if function == MandatoryScalarFunction.GET_TODAYS_DATE:
            return "GETDATE()"
        if function == MandatoryScalarFunction.GET_GUID:
            return "newid()"
        raise ValueError(f"No SQL for scalar function {function}")

    def get_auto_increment_keyword(self) -> str:
        return "IDENTITY(1,1)"

    def is_timeout(self, error: BaseException) -> bool:
        number = getattr(error, "number", None)
        if number is None:
            match = _ERROR_NUMBER_REGEX.search(str(error))
            number = int(match.group(1)) if match else None

        if number in _TIMEOUT_ERROR_NUMBERS:
            return True
        if number == 3617 and not getattr(error, "message", "").strip():
            return True

        # pyodbc reports SQLSTATE HYT00/HYT01 for query/connection timeouts
        args = getattr(error, "args", ())
        if args and str(args[0]) in ("HYT00", "HYT01"):
            return True

        return super().is_timeout(error)

    def get_alter_column_type_sql(
        self, fq_table: str, name: str, old_type: str, new_type: str, allow_nulls: bool
    ) -> List[str]:
        nullability = "NULL" if allow_nulls else "NOT NULL"
        wrapped = self.ensure_wrapped(name)
        statements = []

        translater = self.type_translater
        if translater.is_bit(old_type) and not translater.is_bit(new_type):
            # bit cannot be converted straight to most types, go via a string
            statements.append(
                f"ALTER TABLE {fq_table} ALTER COLUMN {wrapped} {BIT_INTERMEDIATE_TYPE} {nullability}"
            )

        statements.append(f"ALTER TABLE {fq_table} ALTER COLUMN {wrapped} {new_type} {nullability}")
        return statements

    def get_drop_database_sql(self, database: str) -> List[str]:
        wrapped = self.ensure_wrapped(database)
        # other sessions would block the drop
        return [
            f"ALTER DATABASE {wrapped} SET SINGLE_USER WITH ROLLBACK IMMEDIATE",
            f"DROP DATABASE {wrapped}",
        ]

    def get_rename_table_sql(self, database: str, schema: Optional[str], old_name: str, new_name: str) -> str:
        qualified_old = f"{schema or self.default_schema}.{self.get_runtime_name(old_name)}"
        return f"EXEC sp_rename '{qualified_old}', '{self.get_runtime_name(new_name)}'"

    def get_make_distinct_sql(self, fq_table: str, fq_temp_table: str, columns: Sequence[str]) -> List[str]:
        cols = ",".join(self.ensure_wrapped(c) for c in columns)
        return [
            f"WITH CTE AS (SELECT *, ROW_NUMBER() OVER (PARTITION BY {cols} ORDER BY (SELECT 0)) AS RN "
            f"FROM {fq_table}) DELETE FROM CTE WHERE RN > 1"
        ]

    def get_identity_query(self) -> Optional[str]:
        return "SELECT @@IDENTITY"
