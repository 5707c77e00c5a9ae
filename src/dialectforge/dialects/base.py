"""
Base Database Dialect - Abstract base class for database-specific SQL syntax

Dialects handle database-specific syntax differences such as:
- Identifier quoting ([brackets] vs "quotes" vs `backticks`) and escaping
- Fully qualified names (db..table vs "db".public."table")
- Parameter syntax (@name vs :name)
- Row limiting (TOP vs LIMIT vs ROWNUM) and where it goes in a query
- DDL for creating, altering, renaming and emptying tables

Every dialect also owns a TypeTranslater for its proprietary types.
"""

import random
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..constants import RANDOM_CONSTRAINT_SUFFIX_MAX
from ..exceptions import AliasParseError, NamingError, NotSupportedError, RuntimeNameError
from ..translation.translater import TypeTranslater

import logging
logger = logging.getLogger(__name__)


class QueryComponent(Enum):
    """Where a row limiting clause goes in a SELECT statement."""
    SELECT = "select"      # Prefix of the select list (TOP n)
    WHERE = "where"        # A WHERE condition (ROWNUM <= n)
    POSTFIX = "postfix"    # After everything else (LIMIT n)


class MandatoryScalarFunction(Enum):
    """Scalar functions every dialect must support as column defaults."""
    NONE = "none"
    GET_TODAYS_DATE = "get_todays_date"
    GET_GUID = "get_guid"


class TableType(Enum):
    TABLE = "table"
    VIEW = "view"
    TABLE_VALUED_FUNCTION = "table_valued_function"


@dataclass
class TopXResponse:
    """Row limiting SQL and where the caller must put it."""
    sql: str
    location: QueryComponent


class DatabaseDialect(ABC):
    """
    Abstract base class for database dialects.

    Each dialect knows how to:
    1. Quote, escape and unwrap identifiers
    2. Assemble fully qualified names
    3. Generate DDL/DML text specific to its database type
    4. Translate types via its TypeTranslater

    Usage:
        dialect = DialectFactory.create("postgresql")
        fq = dialect.ensure_fully_qualified("mydb", None, "users")
        sql_type = dialect.type_translater.to_proprietary_type(request)
    """

    db_type: str = ""

    database_table_separator = "."
    parameter_symbol = "@"
    alias_prefix = " AS "
    illegal_name_chars = (".", "(", ")")

    maximum_database_length = 128
    maximum_table_length = 128
    maximum_column_length = 128

    # SQLite style: the auto-increment keyword already declares the primary key
    auto_increment_implies_primary_key = False

    # PostgreSQL style: the INSERT itself returns the identity (RETURNING)
    insert_returns_identity = False

    _alias_regex = re.compile(r"""\s+as\s+((\w+)|([\[`"]([^\[`"]+)[\]`"]))$""", re.IGNORECASE | re.MULTILINE)
    _parameter_regex = re.compile(r"(?:^|[\s+\-*/\\=(,])+([@:][A-Za-z0-9_]*)\s?\b", re.IGNORECASE)
    _header_name_char_regex = re.compile(r"[^A-Za-z0-9_ \u0101-\uffff]")
    _sensible_parameter_regex = re.compile(r"^\w*$")

    def __init__(self):
        self.type_translater = self._create_type_translater()

    @abstractmethod
    def _create_type_translater(self) -> TypeTranslater:
        """Build the TypeTranslater for this dialect."""
        pass

    # ==================== Identifier Quoting ====================

    @property
    @abstractmethod
    def quote_char(self) -> str:
        """Character used to quote identifiers (e.g., '"' or '[')."""
        pass

    @property
    def quote_char_end(self) -> str:
        """Closing quote character (same as quote_char for most databases)."""
        return self.quote_char

    def ensure_wrapped(self, name: str) -> str:
        """
        Quote a single identifier, doubling any closing quote inside it.

        An already wrapped identifier is unwrapped first so wrapping twice is
        harmless.

        Raises:
            NamingError: If the name contains the database/table separator
        """
        if self.database_table_separator in name and not self._is_wrapped(name):
            raise NamingError(
                f"Name '{name}' contains the separator '{self.database_table_separator}', "
                f"qualified names cannot be wrapped as a single identifier"
            )
        if self._is_wrapped(name):
            name = self._unescape(name[len(self.quote_char):-len(self.quote_char_end)])
        return self._wrap_impl(name)

    def _wrap_impl(self, name: str) -> str:
        escaped = name.replace(self.quote_char_end, self.quote_char_end * 2)
        return f"{self.quote_char}{escaped}{self.quote_char_end}"

    def _is_wrapped(self, text: str) -> bool:
        return (
            len(text) >= len(self.quote_char) + len(self.quote_char_end)
            and text.startswith(self.quote_char)
            and text.endswith(self.quote_char_end)
        )

    def _unescape(self, text: str) -> str:
        return text.replace(self.quote_char_end * 2, self.quote_char_end)

    def get_runtime_name(self, line: str) -> str:
        """
        The unqualified name of a column/table expression.

        ``[db]..[tbl]`` -> ``tbl``; ``count(*) AS total`` -> ``total``.

        Raises:
            RuntimeNameError: If the expression has brackets but no alias
            AliasParseError: If the expression has more than one alias
        """
        if not line or not line.strip():
            return line

        alias = self._get_alias(line)
        if alias is not None:
            return alias

        if "(" in line or ")" in line:
            raise RuntimeNameError(
                f"Could not determine runtime name of '{line}', it has brackets but no alias"
            )

        last = line.strip()
        if not self._is_wrapped(last):
            last = last.split(self.database_table_separator)[-1]
        else:
            last = self._split_outside_quotes(last)[-1]

        if self._is_wrapped(last):
            return self._unescape(last[len(self.quote_char):-len(self.quote_char_end)])
        return last

    def unwrap(self, wrapped: str) -> str:
        """Recover the original unescaped name from a (qualified/aliased) expression."""
        return self.get_runtime_name(wrapped)

    def _split_outside_quotes(self, text: str) -> List[str]:
        """Split on the separator, ignoring separators inside quoted identifiers."""
        parts, current, depth = [], [], False
        i = 0
        while i < len(text):
            if not depth and text.startswith(self.quote_char, i):
                depth = True
                current.append(self.quote_char)
                i += len(self.quote_char)
                continue
            if depth and text.startswith(self.quote_char_end, i):
                if text.startswith(self.quote_char_end * 2, i):
                    current.append(self.quote_char_end * 2)
                    i += 2 * len(self.quote_char_end)
                    continue
                depth = False
                current.append(self.quote_char_end)
                i += len(self.quote_char_end)
                continue
            if not depth and text.startswith(self.database_table_separator, i):
                parts.append("".join(current))
                current = []
                i += len(self.database_table_separator)
                continue
            current.append(text[i])
            i += 1
        parts.append("".join(current))
        return parts

    def _get_alias(self, line: str) -> Optional[str]:
        matches = list(self._alias_regex.finditer(line))
        if len(matches) > 1:
            raise AliasParseError(f"Found {len(matches)} aliases in '{line}'")
        if not matches:
            return None
        match = matches[0]
        return match.group(2) or match.group(4)

    def split_line_into_select_and_alias(self, line: str) -> Tuple[str, Optional[str]]:
        """Split ``expr AS alias`` into its two halves (alias None if absent)."""
        match = self._alias_regex.search(line)
        if match is None:
            return line, None
        return line[:match.start()], match.group(2) or match.group(4)

    def check_alias_round_trip(self, name: str = "alias") -> bool:
        """Generating an alias and parsing it back must recover the name."""
        return self.get_runtime_name(f"x{self.alias_prefix}{name}") == name

    # ==================== Qualified Names ====================

    @property
    def default_schema(self) -> str:
        """Default schema name for this database type."""
        return ""

    def get_default_schema_if_any(self) -> Optional[str]:
        return self.default_schema or None

    def ensure_fully_qualified(
        self,
        database: str,
        schema: Optional[str],
        table: str,
        column: Optional[str] = None,
        table_valued_function: bool = False,
    ) -> str:
        """
        Quote a full table (or column) reference.

        Args:
            database: Database name
            schema: Optional schema name
            table: Table name
            column: Optional column name to qualify
            table_valued_function: Qualify ``column`` as function.column

        Returns:
            Fully qualified and quoted name
        """
        if column is not None and table_valued_function:
            return f"{self.get_runtime_name(table)}{self.database_table_separator}{self.get_runtime_name(column)}"

        qualified = self._qualify_table(database, schema, table)
        if column is not None:
            return f"{qualified}{self.database_table_separator}{self.ensure_wrapped(self.get_runtime_name(column))}"
        return qualified

    def _qualify_table(self, database: str, schema: Optional[str], table: str) -> str:
        parts = [self.ensure_wrapped(self.get_runtime_name(database))]
        if schema:
            parts.append(self.ensure_wrapped(schema))
        parts.append(self.ensure_wrapped(self.get_runtime_name(table)))
        return self.database_table_separator.join(parts)

    def get_table_valued_function_call(self, database: str, schema: Optional[str], name: str,
                                       parameter_names: Sequence[str]) -> str:
        """
        Invocation of a table valued function, e.g. ``[db]..[fn](@start,@end)``.

        The parameters are left as named variables for the caller to declare.
        """
        return f"{self._qualify_table(database, schema, name)}({','.join(parameter_names)})"

    # ==================== Naming Rules ====================

    def validate_database_name(self, name: str):
        self._validate_name(name, "Database", self.maximum_database_length)

    def validate_table_name(self, name: str):
        self._validate_name(name, "Table", self.maximum_table_length)

    def validate_column_name(self, name: str):
        self._validate_name(name, "Column", self.maximum_column_length)

    def _validate_name(self, name: str, kind: str, max_length: int):
        """
        Raises:
            NamingError: If the name is blank, too long or has illegal characters
        """
        if not name or not name.strip():
            raise NamingError(f"{kind} name cannot be blank")
        if len(name) > max_length:
            raise NamingError(
                f"{kind} name '{name}' is {len(name)} characters long, "
                f"the maximum for {self.db_type} is {max_length}"
            )
        illegal = [c for c in self.illegal_name_chars if c in name]
        if illegal:
            raise NamingError(
                f"{kind} name '{name}' contains unsupported character(s): {' '.join(illegal)}"
            )

    @staticmethod
    def make_header_name_sensible(header: str) -> str:
        """
        Turn free text into an identifier: strip symbols, camel case words.

        "my column (2)" -> "myColumn2", "2nd" -> "_2nd"
        """
        if not header or not header.strip():
            return header

        adjusted = DatabaseDialect._header_name_char_regex.sub("", header)
        chars = list(adjusted)
        for i in range(len(chars) - 1):
            if chars[i] == " " and "a" <= chars[i + 1] <= "z":
                chars[i + 1] = chars[i + 1].upper()
        adjusted = "".join(chars).replace(" ", "")

        if adjusted[:1].isdigit():
            adjusted = f"_{adjusted}"
        return adjusted

    def make_constraint_name(self, prefix: str, table_name: str) -> str:
        """``PK_``/``FK_`` plus a sanitized table name (random if that is empty)."""
        name = self.make_header_name_sensible(self.get_runtime_name(table_name))
        if not name:
            name = f"Constraint{random.randint(0, RANDOM_CONSTRAINT_SUFFIX_MAX)}"
            logger.warning(f"Table name '{table_name}' gave no usable constraint name, using {name}")
        return f"{prefix}{name}"

    # ==================== Parameters ====================

    @property
    def reserved_words(self) -> Set[str]:
        """Lower case words that cannot be used as bare parameter names."""
        return set()

    def get_parameter_names(self, query: str) -> Set[str]:
        """Parameter names (with symbol) used in ``query``, deduplicated case-insensitively."""
        seen: Dict[str, str] = {}
        for match in self._parameter_regex.finditer(query or ""):
            name = match.group(1)
            seen.setdefault(name.lower(), name)
        return set(seen.values())

    def get_parameter_names_for(self, column_names: Sequence[str]) -> Dict[str, str]:
        """
        Parameter name (with symbol) to use for each column.

        Names that are not simple identifiers become ``p<index>``; reserved
        words get a ``1`` suffix. Columns usable as-is claim their own name
        first, and a generated name that is already taken (case-insensitively)
        gets ``_<n>`` appended until it is unique.
        """
        reserved = self.reserved_words
        wanted = {}
        for i, name in enumerate(column_names):
            if not name or not self._sensible_parameter_regex.match(name):
                wanted[name] = f"p{i}"
            elif name.lower() in reserved:
                wanted[name] = f"{name}1"
            else:
                wanted[name] = name

        plain = [n for n in column_names if wanted[n] == n]
        generated = [n for n in column_names if wanted[n] != n]
        taken = set()
        result = {}
        for name in plain + generated:
            candidate = wanted[name]
            suffix = 1
            while candidate.lower() in taken:
                candidate = f"{wanted[name]}_{suffix}"
                suffix += 1
            taken.add(candidate.lower())
            result[name] = f"{self.parameter_symbol}{candidate}"
        return {name: result[name] for name in column_names}

    # ==================== Row Limiting ====================

    @abstractmethod
    def get_top_x(self, x: int) -> TopXResponse:
        """SQL limiting a query to ``x`` rows and where it goes."""
        pass

    def generate_select_query(
        self,
        fully_qualified_table: str,
        columns: Optional[List[str]] = None,
        limit: Optional[int] = None,
    ) -> str:
        """
        Generate a SELECT query, honoring the dialect's TOP placement.

        Args:
            fully_qualified_table: Table reference from ensure_fully_qualified
            columns: Column names to select (None = all)
            limit: Optional row limit

        Returns:
            Complete SELECT statement
        """
        cols = ", ".join(self.ensure_wrapped(c) for c in columns) if columns else "*"
        if not limit:
            return f"SELECT {cols} FROM {fully_qualified_table}"

        top = self.get_top_x(limit)
        if top.location == QueryComponent.SELECT:
            return f"SELECT {top.sql} {cols} FROM {fully_qualified_table}"
        if top.location == QueryComponent.WHERE:
            return f"SELECT {cols} FROM {fully_qualified_table} WHERE {top.sql}"
        return f"SELECT {cols} FROM {fully_qualified_table} {top.sql}"

    # ==================== Scalar Functions ====================

    @abstractmethod
    def get_scalar_function_sql(self, function: MandatoryScalarFunction) -> str:
        pass

    @abstractmethod
    def get_auto_increment_keyword(self) -> str:
        pass

    # ==================== Error Classification ====================

    def is_timeout(self, error: BaseException) -> bool:
        """True if ``error`` means the server was too slow (not a rejection)."""
        message = str(error).lower()
        return "timeout" in message or "timed out" in message

    # ==================== Databases ====================

    def get_create_database_sql(self, database: str) -> List[str]:
        """Statements creating an empty database, run outside any transaction."""
        return [f"CREATE DATABASE {self.ensure_wrapped(database)}"]

    def get_drop_database_sql(self, database: str) -> List[str]:
        return [f"DROP DATABASE {self.ensure_wrapped(database)}"]

    # ==================== DDL ====================

    def get_column_line(
        self,
        name: str,
        sql_type: str,
        allow_nulls: bool,
        is_auto_increment: bool = False,
        default: MandatoryScalarFunction = MandatoryScalarFunction.NONE,
        collation: Optional[str] = None,
    ) -> str:
        """One column of a CREATE TABLE statement."""
        parts = [self.ensure_wrapped(name), sql_type]
        if default != MandatoryScalarFunction.NONE:
            parts.append(f"default {self.get_scalar_function_sql(default)}")
        if collation:
            parts.append(f"COLLATE {collation}")
        parts.append("NULL" if allow_nulls else "NOT NULL")
        if is_auto_increment:
            parts.append(self.get_auto_increment_keyword())
        return " ".join(parts)

    def get_foreign_key_constraint_sql(
        self,
        foreign_table: str,
        primary_table_fq: str,
        pairs: Iterable[Tuple[str, str]],
        cascade_delete: bool,
        constraint_name: Optional[str] = None,
    ) -> str:
        """
        ``CONSTRAINT FK_x FOREIGN KEY (...) REFERENCES pk(...)`` clause.

        Args:
            foreign_table: Table holding the foreign key columns
            primary_table_fq: Fully qualified referenced table
            pairs: (primary key column, foreign key column) names
            cascade_delete: Delete dependent rows with the parent
        """
        pairs = list(pairs)
        name = constraint_name or self.make_constraint_name("FK_", foreign_table)
        foreign_cols = ",".join(self.ensure_wrapped(fk) for _pk, fk in pairs)
        primary_cols = ",".join(self.ensure_wrapped(pk) for pk, _fk in pairs)
        sql = (
            f"CONSTRAINT {self.ensure_wrapped(name)} FOREIGN KEY ({foreign_cols})\n"
            f"REFERENCES {primary_table_fq}({primary_cols})"
        )
        if cascade_delete:
            sql += " on delete cascade"
        return sql

    def get_add_column_sql(self, fq_table: str, name: str, sql_type: str, allow_nulls: bool) -> str:
        return f"ALTER TABLE {fq_table} ADD {self.ensure_wrapped(name)} {sql_type} {'NULL' if allow_nulls else 'NOT NULL'}"

    def get_drop_column_sql(self, fq_table: str, name: str) -> str:
        return f"ALTER TABLE {fq_table} DROP COLUMN {self.ensure_wrapped(name)}"

    def get_alter_column_type_sql(
        self, fq_table: str, name: str, old_type: str, new_type: str, allow_nulls: bool
    ) -> List[str]:
        """
        Statements changing a column's type, executed in order.

        Dialects with quirks (SQL Server changing a bit column) return more
        than one statement.
        """
        raise NotSupportedError(f"{self.db_type} does not support altering column types")

    def get_rename_table_sql(self, database: str, schema: Optional[str], old_name: str, new_name: str) -> str:
        fq = self.ensure_fully_qualified(database, schema, old_name)
        return f"ALTER TABLE {fq} RENAME TO {self.ensure_wrapped(new_name)}"

    def get_truncate_sql(self, fq_table: str) -> str:
        return f"TRUNCATE TABLE {fq_table}"

    def get_row_count_sql(self, fq_table: str) -> str:
        return f"SELECT COUNT(*) FROM {fq_table}"

    def get_drop_sql(self, fq_table: str, table_type: TableType) -> str:
        if table_type == TableType.VIEW:
            return f"DROP VIEW {fq_table}"
        if table_type == TableType.TABLE_VALUED_FUNCTION:
            return f"DROP FUNCTION {fq_table}"
        return f"DROP TABLE {fq_table}"

    def get_create_primary_key_sql(self, fq_table: str, table_name: str, columns: Sequence[str]) -> str:
        name = self.make_constraint_name("PK_", table_name)
        cols = ",".join(self.ensure_wrapped(c) for c in columns)
        return f"ALTER TABLE {fq_table} ADD CONSTRAINT {self.ensure_wrapped(name)} PRIMARY KEY ({cols})"

    def get_add_foreign_key_sql(self, foreign_fq: str, constraint_sql: str) -> str:
        return f"ALTER TABLE {foreign_fq} ADD {constraint_sql}"

    def get_make_distinct_sql(self, fq_table: str, fq_temp_table: str, columns: Sequence[str]) -> List[str]:
        """Statements replacing a table's rows with its distinct rows."""
        return [
            f"CREATE TABLE {fq_temp_table} AS SELECT DISTINCT * FROM {fq_table}",
            f"DELETE FROM {fq_table}",
            f"INSERT INTO {fq_table} SELECT * FROM {fq_temp_table}",
            f"DROP TABLE {fq_temp_table}",
        ]

    # ==================== DML ====================

    def get_insert_sql(
        self,
        fq_table: str,
        columns: Sequence[str],
        placeholders: Sequence[str],
        auto_increment_column: Optional[str] = None,
    ) -> str:
        cols = ", ".join(self.ensure_wrapped(c) for c in columns)
        return f"INSERT INTO {fq_table} ({cols}) VALUES ({', '.join(placeholders)})"

    def get_identity_query(self) -> Optional[str]:
        """Query returning the last generated identity, None if the driver reports it."""
        return None
