"""
Type Request - portable description of "a type able to hold values like these".

A TypeRequest is what callers (or the Guesser) hand to a TypeTranslater
to obtain a proprietary type string, and what a TypeTranslater produces
when reading a proprietary type back.
"""

import datetime
import decimal
import uuid
from enum import Enum
from typing import Optional

from .decimal_size import DecimalSize

import logging
logger = logging.getLogger(__name__)


class TypeKind(Enum):
    """Base kinds every dialect must be able to declare."""
    STRING = "string"
    BOOL = "bool"
    BYTE = "byte"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    DECIMAL = "decimal"
    DATETIME = "datetime"
    TIMESPAN = "timespan"
    BYTE_ARRAY = "byte_array"
    GUID = "guid"

    @property
    def host_type(self) -> type:
        """Python type a value of this kind is materialized as."""
        return _HOST_TYPES[self]

    @property
    def is_integer(self) -> bool:
        return self in (TypeKind.BYTE, TypeKind.INT16, TypeKind.INT32, TypeKind.INT64)


_HOST_TYPES = {
    TypeKind.STRING: str,
    TypeKind.BOOL: bool,
    TypeKind.BYTE: int,
    TypeKind.INT16: int,
    TypeKind.INT32: int,
    TypeKind.INT64: int,
    TypeKind.DECIMAL: decimal.Decimal,
    TypeKind.DATETIME: datetime.datetime,
    TypeKind.TIMESPAN: datetime.time,
    TypeKind.BYTE_ARRAY: bytes,
    TypeKind.GUID: uuid.UUID,
}

# Widening order used when two different kinds must be reconciled.
# Kinds not listed here only reconcile with themselves.
PREFERENCE_ORDER = [
    TypeKind.BOOL,
    TypeKind.BYTE,
    TypeKind.INT16,
    TypeKind.INT32,
    TypeKind.INT64,
    TypeKind.DECIMAL,
    TypeKind.TIMESPAN,
    TypeKind.DATETIME,
    TypeKind.STRING,
]

# Kinds whose width is part of the proprietary declaration
_SIZED_KINDS = (TypeKind.STRING, TypeKind.BYTE_ARRAY)


class TypeRequest:
    """
    Portable type descriptor.

    Attributes:
        kind: Base kind of the values
        width: Maximum string (or byte) length, None if unknown
        decimal_size: Digits before/after the point for decimals
        unicode: True if the values need a unicode capable type
    """

    def __init__(
        self,
        kind: TypeKind,
        width: Optional[int] = None,
        decimal_size: Optional[DecimalSize] = None,
        unicode: bool = False,
    ):
        self.kind = kind
        self.width = width
        self.decimal_size = decimal_size
        self.unicode = unicode

    @property
    def host_type(self) -> type:
        return self.kind.host_type

    def copy(self) -> "TypeRequest":
        size = self.decimal_size.copy() if self.decimal_size is not None else None
        return TypeRequest(self.kind, self.width, size, self.unicode)

    def _normalized(self):
        """Fields that survive a trip through a proprietary type string."""
        width = self.width if self.kind in _SIZED_KINDS else None
        size = self.decimal_size if self.kind == TypeKind.DECIMAL else None
        return self.kind, width, size or DecimalSize()

    def __eq__(self, other) -> bool:
        if not isinstance(other, TypeRequest):
            return NotImplemented
        return self._normalized() == other._normalized()

    def __hash__(self) -> int:
        return hash(self._normalized())

    def __repr__(self) -> str:
        return (
            f"TypeRequest(kind={self.kind.name}, width={self.width}, "
            f"decimal_size={self.decimal_size!r}, unicode={self.unicode})"
        )

    @staticmethod
    def max(first: "TypeRequest", second: "TypeRequest") -> "TypeRequest":
        """
        Return a request able to hold the values of both inputs.

        Different kinds widen along PREFERENCE_ORDER (e.g. int + decimal is
        decimal, anything + string is string).

        Raises:
            ValueError: If the kinds cannot be reconciled (e.g. guid + int)
        """
        if first.kind == second.kind:
            return TypeRequest(
                first.kind,
                _max_width(first.width, second.width),
                DecimalSize.combine(first.decimal_size, second.decimal_size),
                first.unicode or second.unicode,
            )

        if first.kind not in PREFERENCE_ORDER or second.kind not in PREFERENCE_ORDER:
            raise ValueError(
                f"Could not combine type requests {first.kind.name} and {second.kind.name}"
            )

        first_rank = PREFERENCE_ORDER.index(first.kind)
        second_rank = PREFERENCE_ORDER.index(second.kind)
        winner = first if first_rank > second_rank else second

        size = DecimalSize.combine(first.decimal_size, second.decimal_size)
        width = _max_width(first.width, second.width)
        if size is not None:
            width = _max_width(width, size.to_string_length())

        return TypeRequest(winner.kind, width, size, first.unicode or second.unicode)


def _max_width(first: Optional[int], second: Optional[int]) -> Optional[int]:
    if first is None:
        return second
    if second is None:
        return first
    return max(first, second)
