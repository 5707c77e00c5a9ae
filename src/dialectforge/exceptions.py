"""
Exception taxonomy for dialectforge.

Every error raised by the portable layer derives from DialectForgeError.
Adapter (driver) errors are either wrapped with context using
``raise ... from original`` or allowed to propagate unchanged.
"""

from typing import Any, Optional


class DialectForgeError(Exception):
    """Base class for all dialectforge errors."""


class NamingError(DialectForgeError):
    """A table/column/database name violates the dialect's naming rules."""


class RuntimeNameError(NamingError):
    """The unqualified name of an expression could not be determined."""


class AliasParseError(NamingError):
    """An expression contains more than one alias."""


class ColumnMappingError(DialectForgeError):
    """A bulk insert input column has no matching destination column."""

    def __init__(self, column: str, table: str):
        super().__init__(
            f"Column '{column}' does not exist in destination table '{table}'"
        )
        self.column = column
        self.table = table


class ResizeError(DialectForgeError):
    """A resize would shrink the column's width, precision or scale."""


class AlterFailedError(DialectForgeError):
    """
    An ALTER (or other schema changing statement) was sent but failed.

    Attributes:
        sql: The statement that was attempted
        original: The adapter error that caused the failure
    """

    def __init__(self, message: str, sql: str, original: Optional[BaseException] = None):
        super().__init__(f"{message}\nSQL: {sql}")
        self.sql = sql
        self.original = original


class UnsupportedValueError(DialectForgeError):
    """An untyped/opaque value column was presented for table creation."""


class TypeNotMappedError(DialectForgeError):
    """A proprietary type string could not be classified."""


class NotSupportedError(DialectForgeError):
    """The dialect cannot perform the requested operation."""


class DuplicateRegistrationError(DialectForgeError):
    """The keyword registry was initialized twice."""


class DatabaseStateError(DialectForgeError):
    """A database level operation found the database missing, present or not empty."""


class CircularDependencyError(DialectForgeError):
    """Foreign keys between a set of tables form a cycle, so they have no dependency order."""


class BulkInsertError(DialectForgeError):
    """
    A bulk upload failed.

    When row-level diagnosis located the offending value, ``row_index``,
    ``column`` and ``value`` are set. If the diagnosis itself failed,
    ``diagnostic_error`` holds that second error; the original error is
    always the ``__cause__``.
    """

    def __init__(
        self,
        message: str,
        row_index: Optional[int] = None,
        column: Optional[str] = None,
        value: Any = None,
        diagnostic_error: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.row_index = row_index
        self.column = column
        self.value = value
        self.diagnostic_error = diagnostic_error
