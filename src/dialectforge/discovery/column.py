"""
Discovered Column - A column read back from the catalog and its data type

Provides:
- DiscoveredDataType: The proprietary type string plus resize/alter operations
- DiscoveredColumn: A named column bound to its DiscoveredTable
"""

import re
from typing import TYPE_CHECKING, Any, Dict, Optional

from ..connections import ManagedTransaction, managed_connection
from ..constants import ALTER_TIMEOUT_S
from ..dialects.base import TableType
from ..exceptions import AlterFailedError, ResizeError
from ..translation.decimal_size import DecimalSize
from ..translation.type_request import TypeKind, TypeRequest

import logging
logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from .table import DiscoveredTable


class DiscoveredDataType:
    """
    The declared type of a column, e.g. ``varchar(10)``.

    Everything portable (TypeRequest, string length, decimal size, Python
    type) is derived from the type string by the dialect's TypeTranslater.
    ``attributes`` keeps the raw catalog values the type was read from.
    """

    def __init__(self, sql_type: str, column: Optional["DiscoveredColumn"] = None,
                 attributes: Optional[Dict[str, Any]] = None):
        self.sql_type = sql_type
        self.column = column
        self.attributes = dict(attributes or {})

    @property
    def _translater(self):
        return self._require_column().table.dialect.type_translater

    def _require_column(self) -> "DiscoveredColumn":
        if self.column is None:
            raise ValueError(f"Data type '{self.sql_type}' is not attached to a column")
        return self.column

    # ==================== Derived Properties ====================

    def get_type_request(self) -> TypeRequest:
        return self._translater.to_type_request(self.sql_type)

    def get_length_if_string(self) -> int:
        return self._translater.get_length_if_string(self.sql_type)

    def get_decimal_size(self) -> Optional[DecimalSize]:
        return self._translater.get_decimal_size(self.sql_type)

    def get_host_type(self) -> type:
        return self._translater.get_host_type(self.sql_type)

    # ==================== Alterations ====================

    def resize(self, new_size: int, transaction: Optional[ManagedTransaction] = None):
        """
        Widen a string column to ``new_size`` characters.

        Resizing to the current width does nothing.

        Raises:
            ResizeError: If the column is not a string or would shrink
        """
        current = self.get_length_if_string()
        if current == -1:
            raise ResizeError(f"Cannot resize '{self.sql_type}', it is not a string type")
        if new_size == current:
            logger.debug(f"Column already has width {new_size} ({self.sql_type}), nothing to resize")
            return
        if new_size < current:
            raise ResizeError(
                f"You can only grow columns, you asked to turn '{self.sql_type}' into width {new_size}"
            )

        new_type, replaced = re.subn(rf"\(\s*{current}\s*\)", f"({new_size})", self.sql_type, count=1)
        if not replaced:
            # no explicit width in the declaration, ask the dialect for one
            request = self.get_type_request()
            new_type = self._translater.to_proprietary_type(
                TypeRequest(TypeKind.STRING, new_size, unicode=request.unicode)
            )
        self.alter_type_to(new_type, transaction)

    def resize_decimal(self, before: int, after: int, transaction: Optional[ManagedTransaction] = None):
        """
        Widen a decimal column to ``before`` digits before and ``after`` after the point.

        Raises:
            ResizeError: If the column is not a decimal or either side would shrink
        """
        current = self.get_decimal_size()
        if current is None or current.is_empty:
            raise ResizeError(f"Cannot resize '{self.sql_type}' as a decimal")
        if (current.before or 0) > before:
            raise ResizeError(
                f"Cannot shrink column, digits before the decimal point are currently "
                f"{current.before} and you asked for {before} ({self.sql_type})"
            )
        if (current.after or 0) > after:
            raise ResizeError(
                f"Cannot shrink column, digits after the decimal point are currently "
                f"{current.after} and you asked for {after} ({self.sql_type})"
            )

        new_type = self._translater.to_proprietary_type(
            TypeRequest(TypeKind.DECIMAL, decimal_size=DecimalSize(before, after))
        )
        self.alter_type_to(new_type, transaction)

    def alter_type_to(self, new_type: str, transaction: Optional[ManagedTransaction] = None,
                      timeout: int = ALTER_TIMEOUT_S):
        """
        Change the column's declared type.

        The cached type string only changes once every statement succeeded.

        Raises:
            NotSupportedError: If the dialect cannot alter column types
            AlterFailedError: If the database rejected the change
        """
        column = self._require_column()
        table = column.table
        statements = table.dialect.get_alter_column_type_sql(
            table.get_fully_qualified_name(), column.get_runtime_name(),
            self.sql_type, new_type, column.allow_nulls,
        )

        with managed_connection(table.server, transaction) as conn:
            for sql in statements:
                try:
                    table.adapter.execute(conn, sql, timeout=timeout)
                except Exception as e:
                    logger.error(f"Failed to alter column {column.get_runtime_name()}: {e}")
                    raise AlterFailedError("Failed to send resize SQL", sql, e) from e

        logger.debug(f"Altered {column.get_fully_qualified_name()} from {self.sql_type} to {new_type}")
        self.sql_type = new_type

    def __eq__(self, other) -> bool:
        if not isinstance(other, DiscoveredDataType):
            return NotImplemented
        return self.sql_type == other.sql_type

    def __hash__(self) -> int:
        return hash(self.sql_type)

    def __str__(self) -> str:
        return self.sql_type

    def __repr__(self) -> str:
        return f"DiscoveredDataType({self.sql_type!r})"


class DiscoveredColumn:
    """A column of a DiscoveredTable. Equal when table and name match."""

    def __init__(
        self,
        table: "DiscoveredTable",
        name: str,
        allow_nulls: bool = True,
        is_primary_key: bool = False,
        is_auto_increment: bool = False,
        collation: Optional[str] = None,
        sql_type: Optional[str] = None,
        attributes: Optional[Dict[str, Any]] = None,
    ):
        self.table = table
        self._name = name
        self.allow_nulls = allow_nulls
        self.is_primary_key = is_primary_key
        self.is_auto_increment = is_auto_increment
        self.collation = collation
        self.data_type = DiscoveredDataType(sql_type, self, attributes) if sql_type is not None else None

    def get_runtime_name(self) -> str:
        return self._name

    def get_fully_qualified_name(self) -> str:
        table = self.table
        return table.dialect.ensure_fully_qualified(
            table.database.get_runtime_name(), table.schema, table.get_runtime_name(), self._name,
            table_valued_function=table.table_type == TableType.TABLE_VALUED_FUNCTION,
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, DiscoveredColumn):
            return NotImplemented
        return self.table == other.table and self._name.lower() == other._name.lower()

    def __hash__(self) -> int:
        return hash((self.table, self._name.lower()))

    def __repr__(self) -> str:
        return f"DiscoveredColumn({self._name!r}, {self.data_type})"

    def __str__(self) -> str:
        return self._name
