"""
Guesser - infer a TypeRequest from sampled values.

Text values are tried against increasingly permissive kinds
(bool -> int -> decimal -> time -> datetime -> string) and the guess only
ever moves forward. Kinds from different families (e.g. numbers then
dates) cannot be reconciled, so mixing them falls back to string.

Typed values (ints, floats, datetimes...) and typed pandas columns map
directly to their kind.
"""

import datetime
import decimal
import uuid
from typing import Optional

import numpy as np
import pandas as pd

from ..exceptions import UnsupportedValueError
from .date_decider import DateDecider, parse_time_of_day
from .decimal_size import DecimalSize
from .type_request import PREFERENCE_ORDER, TypeKind, TypeRequest

import logging
logger = logging.getLogger(__name__)

INT32_MIN, INT32_MAX = -(2**31), 2**31 - 1
INT64_MIN, INT64_MAX = -(2**63), 2**63 - 1

_BOOL_WORDS = {"true", "false", "t", "f", "yes", "no", "y", "n"}

# Order in which text is tried
_TEXT_ORDER = [
    TypeKind.BOOL,
    TypeKind.INT32,
    TypeKind.INT64,
    TypeKind.DECIMAL,
    TypeKind.TIMESPAN,
    TypeKind.DATETIME,
    TypeKind.STRING,
]

# Kinds that can widen into each other; crossing families means string
_FAMILIES = {
    TypeKind.BOOL: "bool",
    TypeKind.BYTE: "number",
    TypeKind.INT16: "number",
    TypeKind.INT32: "number",
    TypeKind.INT64: "number",
    TypeKind.DECIMAL: "number",
    TypeKind.TIMESPAN: "time",
    TypeKind.DATETIME: "date",
}


def is_supported_value(value) -> bool:
    """True if ``value`` is null, text, a primitive or a date/time/guid/bytes."""
    if value is None or isinstance(value, (str, bool, int, float, decimal.Decimal,
                                           datetime.date, datetime.time,
                                           datetime.timedelta, bytes, bytearray,
                                           uuid.UUID, np.generic)):
        return True
    return bool(pd.api.types.is_scalar(value) and pd.isna(value))


def _digits(text: str) -> Optional[DecimalSize]:
    """Digits before/after the point of a numeric literal, None if not numeric."""
    try:
        number = decimal.Decimal(text)
    except decimal.InvalidOperation:
        return None
    if not number.is_finite():
        return None

    whole, _, fraction = format(abs(number), "f").partition(".")
    fraction = fraction.rstrip("0")
    whole = whole.lstrip("0")
    return DecimalSize(len(whole) if whole else (0 if fraction else 1), len(fraction))


class Guesser:
    """
    Accumulates values and reports the narrowest TypeRequest holding them all.

    Usage:
        guesser = Guesser()
        for value in ["15", "29.9", "200", None]:
            guesser.adjust_to_compensate_for_value(value)
        guesser.guess  # TypeRequest(kind=DECIMAL, width=5, decimal_size=(3,1))
    """

    def __init__(self, extra_length_per_non_ascii: int = 0, date_decider: Optional[DateDecider] = None):
        """
        Args:
            extra_length_per_non_ascii: Extra width added for every non-ASCII
                character (for dialects declaring string width in bytes)
            date_decider: Decider used to recognise date text
        """
        self.extra_length_per_non_ascii = extra_length_per_non_ascii
        self.date_decider = date_decider or DateDecider()

        self._kind: Optional[TypeKind] = None
        self._text_width: Optional[int] = None
        self._size = DecimalSize()
        self._unicode = False
        self._saw_text = False
        self._saw_typed = False

    # ==================== Seeding ====================

    def seed(self, request: TypeRequest):
        """Start from an existing request so values can only widen it."""
        self._kind = request.kind
        if request.kind in (TypeKind.STRING, TypeKind.BYTE_ARRAY):
            self._text_width = request.width
        if request.decimal_size is not None:
            self._size = request.decimal_size.copy()
        self._unicode = request.unicode

    # ==================== Result ====================

    @property
    def guess(self) -> TypeRequest:
        """The current TypeRequest. A column of only nulls guesses string."""
        kind = self._kind or TypeKind.STRING
        size = self._size.copy() if not self._size.is_empty or kind == TypeKind.DECIMAL else None

        if kind == TypeKind.STRING:
            width = self._text_width
            if size is not None:
                width = max(width or 0, size.to_string_length())
            return TypeRequest(kind, width, size, self._unicode)

        if kind == TypeKind.DECIMAL:
            return TypeRequest(kind, size.to_string_length(), size, self._unicode)

        return TypeRequest(kind, self._text_width, size, self._unicode)

    # ==================== Values ====================

    def adjust_to_compensate_for_value(self, value):
        """
        Widen the guess to admit ``value``.

        Raises:
            UnsupportedValueError: If the value is an opaque object
        """
        if value is None:
            return
        if isinstance(value, str):
            self._adjust_for_text(value)
            return
        if pd.api.types.is_scalar(value) and pd.isna(value):
            return
        if not is_supported_value(value):
            raise UnsupportedValueError(
                f"Cannot guess a database type for value of type {type(value).__name__}"
            )

        request = self._request_for_typed_value(value)
        self._saw_typed = True
        if self._saw_text:
            self._become_string(str(value))
            return
        self._widen_to(request.kind)
        if self._kind == TypeKind.STRING:
            self._measure_text(str(value))
            return
        if request.decimal_size is not None:
            self._size.increase_to(request.decimal_size.before, request.decimal_size.after)
        if request.width is not None and self._kind in (TypeKind.STRING, TypeKind.BYTE_ARRAY):
            self._text_width = max(self._text_width or 0, request.width)

    def adjust_to_compensate_for_series(self, series: pd.Series, retype: bool = True):
        """
        Widen the guess for a whole column.

        Typed dtypes map directly to their kind. Object/string columns are
        inspected value by value unless ``retype`` is False, in which case
        they are declared as strings wide enough for their text.
        """
        dtype = series.dtype
        values = series.dropna()

        if pd.api.types.is_bool_dtype(dtype):
            self._widen_to(TypeKind.BOOL)
        elif pd.api.types.is_integer_dtype(dtype):
            self._widen_to(self._kind_for_integer_dtype(dtype, values))
            if len(values):
                largest = max(abs(int(values.max())), abs(int(values.min())))
                self._size.increase_to(len(str(largest)), 0)
        elif pd.api.types.is_float_dtype(dtype):
            self._widen_to(TypeKind.DECIMAL)
            for value in values:
                size = _digits(repr(float(value)))
                if size is not None:
                    self._size.increase_to(size.before, size.after)
        elif pd.api.types.is_datetime64_any_dtype(dtype):
            self._widen_to(TypeKind.DATETIME)
        elif pd.api.types.is_timedelta64_dtype(dtype):
            self._widen_to(TypeKind.TIMESPAN)
        elif not retype:
            for value in values:
                self._measure_text(str(value))
            self._kind = TypeKind.STRING
        else:
            for value in values:
                self.adjust_to_compensate_for_value(value)

    # ==================== Internals ====================

    @staticmethod
    def _kind_for_integer_dtype(dtype, values: pd.Series) -> TypeKind:
        if dtype == np.uint8:
            return TypeKind.BYTE
        if dtype in (np.int8, np.int16):
            return TypeKind.INT16
        if dtype in (np.int32, np.uint16):
            return TypeKind.INT32
        # 64 bit (and nullable) columns narrow when every value fits in 32 bits
        if len(values) == 0 or (values.min() >= INT32_MIN and values.max() <= INT32_MAX):
            return TypeKind.INT32
        return TypeKind.INT64

    def _request_for_typed_value(self, value) -> TypeRequest:
        if isinstance(value, (bool, np.bool_)):
            return TypeRequest(TypeKind.BOOL)
        if isinstance(value, (int, np.integer)):
            number = int(value)
            kind = TypeKind.INT32 if INT32_MIN <= number <= INT32_MAX else TypeKind.INT64
            return TypeRequest(kind, decimal_size=DecimalSize(len(str(abs(number))), 0))
        if isinstance(value, (float, decimal.Decimal, np.floating)):
            return TypeRequest(TypeKind.DECIMAL, decimal_size=_digits(str(value)))
        if isinstance(value, (datetime.datetime, datetime.date, np.datetime64)):
            return TypeRequest(TypeKind.DATETIME)
        if isinstance(value, (datetime.time, datetime.timedelta, np.timedelta64)):
            return TypeRequest(TypeKind.TIMESPAN)
        if isinstance(value, (bytes, bytearray)):
            return TypeRequest(TypeKind.BYTE_ARRAY, width=len(value))
        if isinstance(value, uuid.UUID):
            return TypeRequest(TypeKind.GUID)

        raise UnsupportedValueError(
            f"Cannot guess a database type for value of type {type(value).__name__}"
        )

    def _widen_to(self, kind: TypeKind):
        if self._kind is None or self._kind == kind:
            self._kind = kind
            return

        same_family = (
            self._kind in _FAMILIES and kind in _FAMILIES
            and _FAMILIES[self._kind] == _FAMILIES[kind]
        )
        if same_family:
            if PREFERENCE_ORDER.index(kind) > PREFERENCE_ORDER.index(self._kind):
                self._kind = kind
        elif self._kind != TypeKind.STRING:
            logger.debug(f"Cannot reconcile {self._kind.name} with {kind.name}, using string")
            self._kind = TypeKind.STRING

    def _measure_text(self, text: str):
        non_ascii = sum(1 for ch in text if ord(ch) > 127)
        if non_ascii:
            self._unicode = True
        width = len(text) + non_ascii * self.extra_length_per_non_ascii
        self._text_width = max(self._text_width or 0, width)

    def _become_string(self, text: str):
        self._measure_text(text)
        self._kind = TypeKind.STRING

    def _adjust_for_text(self, value: str):
        text = value.strip()
        if not text:
            return

        self._measure_text(value)
        self._saw_text = True

        if self._saw_typed or self._kind == TypeKind.STRING:
            self._kind = TypeKind.STRING
            return

        start = _TEXT_ORDER.index(self._kind) if self._kind in _TEXT_ORDER else 0
        for kind in _TEXT_ORDER[start:]:
            if self._accepts(kind, text):
                self._widen_to(kind)
                break

    def _accepts(self, kind: TypeKind, text: str) -> bool:
        if kind == TypeKind.BOOL:
            return text.lower() in _BOOL_WORDS

        if kind in (TypeKind.INT32, TypeKind.INT64, TypeKind.DECIMAL):
            size = _digits(text) if _looks_numeric(text) else None
            if size is None:
                return False
            if kind != TypeKind.DECIMAL:
                if size.after or not _is_integer_text(text):
                    return False
                number = int(text)
                low, high = (INT32_MIN, INT32_MAX) if kind == TypeKind.INT32 else (INT64_MIN, INT64_MAX)
                if not low <= number <= high:
                    return False
            self._size.increase_to(size.before, size.after)
            return True

        if kind == TypeKind.TIMESPAN:
            return parse_time_of_day(text) is not None

        if kind == TypeKind.DATETIME:
            return self.date_decider.is_acceptable(text)

        return kind == TypeKind.STRING


def _looks_numeric(text: str) -> bool:
    stripped = text.lstrip("+-")
    return bool(stripped) and (stripped[0].isdigit() or stripped[0] == ".")


def _is_integer_text(text: str) -> bool:
    return text.lstrip("+-").isdigit()
