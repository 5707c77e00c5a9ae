"""
Type Translater - bidirectional bridge between TypeRequest and proprietary types

Each dialect supplies a subclass that knows:
- Which proprietary type declares a given TypeRequest (to_proprietary_type)
- How to classify a proprietary type string back into a TypeRequest
- How long a string type is and what precision/scale a decimal type has

Classification runs an ordered battery of predicates. Order matters: more
specific patterns (e.g. MySQL's tinyint(1) meaning bool) must be checked
before generic numeric patterns.
"""

import re
import threading
from typing import Optional, Pattern

from cachetools import LRUCache, cachedmethod

from ..constants import (
    DATETIME_WIDTH,
    DEFAULT_DECIMAL_PRECISION,
    DEFAULT_DECIMAL_SCALE,
    TIMESPAN_WIDTH,
    TRANSLATER_CACHE_SIZE,
    UNLIMITED_LENGTH,
)
from ..exceptions import TypeNotMappedError
from .decimal_size import DecimalSize
from .guesser import Guesser
from .type_request import TypeKind, TypeRequest

import logging
logger = logging.getLogger(__name__)


def compile_type_regex(pattern: str) -> Pattern:
    return re.compile(pattern, re.IGNORECASE)


class TypeTranslater:
    """
    Base translater implementing the SQL Server flavoured defaults.

    Subclasses override the ``_get_*_data_type`` hooks to change the emitted
    declarations and the ``is_*`` predicates (or the class level regexes) to
    change classification.

    Usage:
        translater = dialect.type_translater
        sql_type = translater.to_proprietary_type(TypeRequest(TypeKind.STRING, 10))
        request = translater.to_type_request("varchar(10)")
    """

    # ==================== Classification Patterns ====================

    bit_regex = compile_type_regex(r"^(bit)|(bool)|(boolean)")
    byte_regex = compile_type_regex(r"^tinyint")
    small_int_regex = compile_type_regex(r"^smallint")
    int_regex = compile_type_regex(r"^(int)|(integer)")
    long_regex = compile_type_regex(r"^bigint")
    date_regex = compile_type_regex(r"date")
    time_regex = compile_type_regex(r"^time$")
    string_regex = compile_type_regex(r"(char)|(text)|(xml)")
    byte_array_regex = compile_type_regex(r"(binary)|(blob)")
    floating_point_regex = compile_type_regex(r"^(float)|(decimal)|(numeric)|(real)|(money)|(smallmoney)|(double)")
    guid_regex = compile_type_regex(r"^uniqueidentifier")

    string_size_regex = re.compile(r"\(([0-9]+)\)")
    decimal_size_regex = re.compile(r"\(([0-9]+),\s*([0-9]+)\)")

    # Bytes a non-ASCII character takes beyond the first (byte-length dialects)
    extra_length_per_non_ascii = 0

    def __init__(self, max_string_width_before_max: int, string_width_when_not_supplied: int):
        """
        Args:
            max_string_width_before_max: Widest inline string before the
                unlimited string type must be used
            string_width_when_not_supplied: Width used for string requests
                that carry no width
        """
        self.max_string_width_before_max = max_string_width_before_max
        self.string_width_when_not_supplied = string_width_when_not_supplied
        self._cache = LRUCache(maxsize=TRANSLATER_CACHE_SIZE)
        self._lock = threading.RLock()

    # ==================== Request -> Proprietary ====================

    def to_proprietary_type(self, request: TypeRequest) -> str:
        """
        Return the narrowest proprietary type able to hold ``request``.

        Raises:
            TypeNotMappedError: If the request kind is unknown
        """
        kind = request.kind

        if kind == TypeKind.BOOL:
            return self._get_bool_data_type()
        if kind == TypeKind.BYTE:
            return self._get_byte_data_type()
        if kind == TypeKind.INT16:
            return self._get_small_int_data_type()
        if kind == TypeKind.INT32:
            return self._get_int_data_type()
        if kind == TypeKind.INT64:
            return self._get_big_int_data_type()
        if kind == TypeKind.DECIMAL:
            return self._get_float_data_type(request.decimal_size)
        if kind == TypeKind.STRING:
            if request.unicode:
                return self.get_unicode_string_data_type(request.width)
            return self.get_string_data_type(request.width)
        if kind == TypeKind.DATETIME:
            return self._get_date_time_data_type()
        if kind == TypeKind.TIMESPAN:
            return self._get_time_data_type()
        if kind == TypeKind.BYTE_ARRAY:
            return self._get_byte_array_data_type()
        if kind == TypeKind.GUID:
            return self._get_guid_data_type()

        raise TypeNotMappedError(
            f"Unsure what SQL type to use for {kind} in {type(self).__name__}"
        )

    def get_string_data_type(self, width: Optional[int]) -> str:
        if width is None:
            width = self.string_width_when_not_supplied
        if width > self.max_string_width_before_max:
            return self.get_string_data_type_with_unlimited_width()
        return self._get_string_data_type_impl(width)

    def get_unicode_string_data_type(self, width: Optional[int]) -> str:
        if width is None:
            width = self.string_width_when_not_supplied
        if width > self.max_string_width_before_max:
            return self.get_unicode_string_data_type_with_unlimited_width()
        return self._get_unicode_string_data_type_impl(width)

    def get_string_data_type_with_unlimited_width(self) -> str:
        return "varchar(max)"

    def get_unicode_string_data_type_with_unlimited_width(self) -> str:
        return "nvarchar(max)"

    def _get_string_data_type_impl(self, width: int) -> str:
        return f"varchar({width})"

    def _get_unicode_string_data_type_impl(self, width: int) -> str:
        return f"nvarchar({width})"

    def _get_float_data_type(self, size: Optional[DecimalSize]) -> str:
        if size is None or size.is_empty:
            return f"decimal({DEFAULT_DECIMAL_PRECISION},{DEFAULT_DECIMAL_SCALE})"
        return f"decimal({size.precision},{size.scale})"

    def _get_bool_data_type(self) -> str:
        return "bit"

    def _get_byte_data_type(self) -> str:
        return "tinyint"

    def _get_small_int_data_type(self) -> str:
        return "smallint"

    def _get_int_data_type(self) -> str:
        return "int"

    def _get_big_int_data_type(self) -> str:
        return "bigint"

    def _get_date_time_data_type(self) -> str:
        return "datetime"

    def _get_time_data_type(self) -> str:
        return "time"

    def _get_byte_array_data_type(self) -> str:
        return "varbinary(max)"

    def _get_guid_data_type(self) -> str:
        return "uniqueidentifier"

    # ==================== Proprietary -> Request ====================

    def to_type_request(self, sql_type: str) -> TypeRequest:
        """
        Parse a proprietary type string into a TypeRequest.

        Raises:
            TypeNotMappedError: If no classification predicate matches
        """
        return self._to_type_request_cached(sql_type.strip()).copy()

    @cachedmethod(lambda self: self._cache, lock=lambda self: self._lock)
    def _to_type_request_cached(self, sql_type: str) -> TypeRequest:
        kind = self.get_kind_for_sql_type(sql_type)

        width = self.get_length_if_string(sql_type)
        size = self.get_decimal_size(sql_type)
        if size is not None:
            width = max(width, size.to_string_length())

        if kind == TypeKind.DATETIME:
            width = DATETIME_WIDTH
        elif kind == TypeKind.TIMESPAN:
            width = TIMESPAN_WIDTH

        unicode = sql_type.lower().startswith("n")
        return TypeRequest(kind, width if width >= 0 else None, size, unicode)

    def get_kind_for_sql_type(self, sql_type: str) -> TypeKind:
        """Classify a proprietary type string."""
        if self.is_bit(sql_type):
            return TypeKind.BOOL
        if self.is_byte(sql_type):
            return TypeKind.BYTE
        if self.is_small_int(sql_type):
            return TypeKind.INT16
        if self.is_int(sql_type):
            return TypeKind.INT32
        if self.is_long(sql_type):
            return TypeKind.INT64
        if self.is_floating_point(sql_type):
            return TypeKind.DECIMAL
        if self.is_string(sql_type):
            return TypeKind.STRING
        if self.is_date(sql_type):
            return TypeKind.DATETIME
        if self.is_time(sql_type):
            return TypeKind.TIMESPAN
        if self.is_byte_array(sql_type):
            return TypeKind.BYTE_ARRAY
        if self.is_guid(sql_type):
            return TypeKind.GUID

        raise TypeNotMappedError(
            f"No type kind is mapped to SQL type '{sql_type}' in {type(self).__name__}"
        )

    def get_host_type(self, sql_type: str) -> type:
        """Python type values of ``sql_type`` are materialized as."""
        return self.get_kind_for_sql_type(sql_type).host_type

    def is_supported_sql_type(self, sql_type: str) -> bool:
        try:
            self.get_kind_for_sql_type(sql_type)
            return True
        except TypeNotMappedError:
            return False

    def is_bit(self, sql_type: str) -> bool:
        return bool(self.bit_regex.search(sql_type))

    def is_byte(self, sql_type: str) -> bool:
        return bool(self.byte_regex.search(sql_type))

    def is_small_int(self, sql_type: str) -> bool:
        return bool(self.small_int_regex.search(sql_type))

    def is_int(self, sql_type: str) -> bool:
        return bool(self.int_regex.search(sql_type))

    def is_long(self, sql_type: str) -> bool:
        return bool(self.long_regex.search(sql_type))

    def is_floating_point(self, sql_type: str) -> bool:
        return bool(self.floating_point_regex.search(sql_type))

    def is_string(self, sql_type: str) -> bool:
        return bool(self.string_regex.search(sql_type))

    def is_date(self, sql_type: str) -> bool:
        return bool(self.date_regex.search(sql_type))

    def is_time(self, sql_type: str) -> bool:
        return bool(self.time_regex.search(sql_type))

    def is_byte_array(self, sql_type: str) -> bool:
        return bool(self.byte_array_regex.search(sql_type))

    def is_guid(self, sql_type: str) -> bool:
        return bool(self.guid_regex.search(sql_type))

    # ==================== Length / Precision ====================

    def get_length_if_string(self, sql_type: str) -> int:
        """
        Declared width of a string type.

        Returns:
            -1 if not a string, UNLIMITED_LENGTH if the type has no enforced
            limit, otherwise the declared width
        """
        if not sql_type or not sql_type.strip():
            return -1

        lowered = sql_type.lower()
        if "(max)" in lowered or lowered in ("text", "ntext"):
            return UNLIMITED_LENGTH

        if "char" in lowered:
            match = self.string_size_regex.search(sql_type)
            if match:
                return int(match.group(1))

        return -1

    def get_decimal_size(self, sql_type: str) -> Optional[DecimalSize]:
        """DecimalSize of a fixed-point type, None otherwise."""
        match = self.decimal_size_regex.search(sql_type)
        if match:
            precision = int(match.group(1))
            scale = int(match.group(2))
            return DecimalSize(precision - scale, scale)
        return None

    # ==================== Cross-dialect helpers ====================

    def translate_sql_type(self, sql_type: str, destination: "TypeTranslater") -> str:
        """Convert a proprietary type of this dialect into ``destination``'s equivalent."""
        return destination.to_proprietary_type(self.to_type_request(sql_type))

    def get_guesser_for(self, sql_type: Optional[str] = None) -> Guesser:
        """
        Build a Guesser seeded with this dialect's non-ASCII allowance.

        When ``sql_type`` is given the guesser starts from that type so it can
        only widen it.
        """
        guesser = Guesser(extra_length_per_non_ascii=self.extra_length_per_non_ascii)
        if sql_type:
            guesser.seed(self.to_type_request(sql_type))
        return guesser
