"""
Connection Keywords - dialect level default connection options.

A ConnectionStringKeywordAccumulator collects keyword/value pairs with a
priority; a later value replaces an earlier one only if its priority is at
least as high. The process wide KeywordRegistry holds one accumulator per
database type. It is initialized once (usually at process start) and is
append-only afterwards.
"""

import threading
from enum import IntEnum
from typing import Any, Dict, Iterable, Optional, Tuple

from .exceptions import DuplicateRegistrationError

import logging
logger = logging.getLogger(__name__)


class KeywordPriority(IntEnum):
    """Who set a keyword. Higher values win."""
    SYSTEM_DEFAULT_LOW = 0
    SYSTEM_DEFAULT_MEDIUM = 1
    SYSTEM_DEFAULT_HIGH = 2
    USER_OVERRIDE = 3
    OBJECT_OVERRIDE = 4
    API_RULE = 5


class ConnectionStringKeywordAccumulator:
    """
    Keyword/value pairs to apply to every connection of one database type.

    Keywords are case-insensitive.

    Usage:
        acc = ConnectionStringKeywordAccumulator("sqlserver")
        acc.add_or_update_keyword("timeout", 10, KeywordPriority.SYSTEM_DEFAULT_LOW)
        kwargs = acc.enforce_options({"host": "srv"})
    """

    def __init__(self, db_type: str):
        self.db_type = db_type
        self._keywords: Dict[str, Tuple[str, Any, KeywordPriority]] = {}

    def add_or_update_keyword(self, keyword: str, value: Any, priority: KeywordPriority) -> bool:
        """
        Set ``keyword`` unless it is already held at a higher priority.

        Returns:
            True if the value was stored
        """
        key = keyword.lower()
        existing = self._keywords.get(key)
        if existing is not None and existing[2] > priority:
            logger.debug(
                f"Ignoring keyword {keyword}={value!r} ({priority.name}) for {self.db_type}, "
                f"already set at {existing[2].name}"
            )
            return False

        self._keywords[key] = (keyword, value, priority)
        return True

    def get_keyword(self, keyword: str) -> Optional[Any]:
        entry = self._keywords.get(keyword.lower())
        return entry[1] if entry else None

    def get_priority(self, keyword: str) -> Optional[KeywordPriority]:
        entry = self._keywords.get(keyword.lower())
        return entry[2] if entry else None

    def enforce_options(self, options: Dict[str, Any]) -> Dict[str, Any]:
        """
        Return a copy of ``options`` with every accumulated keyword applied.

        Existing keys are matched case-insensitively and replaced.
        """
        result = dict(options)
        for keyword, value, _priority in self._keywords.values():
            for existing in [k for k in result if k.lower() == keyword.lower()]:
                del result[existing]
            result[keyword] = value
        return result

    def __len__(self) -> int:
        return len(self._keywords)


class KeywordRegistry:
    """
    Process wide accumulators keyed by database type.

    ``initialize`` may be called only once. After that keywords can still be
    added (append-only) but accumulators are never removed or replaced.
    """

    def __init__(self):
        self._accumulators: Dict[str, ConnectionStringKeywordAccumulator] = {}
        self._lock = threading.Lock()
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def initialize(self, defaults: Optional[Dict[str, Iterable[Tuple[str, Any, KeywordPriority]]]] = None):
        """
        Populate the registry with start-up defaults.

        Args:
            defaults: db_type -> iterable of (keyword, value, priority)

        Raises:
            DuplicateRegistrationError: If already initialized
        """
        with self._lock:
            if self._initialized:
                raise DuplicateRegistrationError("Keyword registry is already initialized")
            for db_type, keywords in (defaults or {}).items():
                accumulator = self._get_or_create(db_type)
                for keyword, value, priority in keywords:
                    accumulator.add_or_update_keyword(keyword, value, priority)
            self._initialized = True
        logger.debug(f"Keyword registry initialized for: {', '.join(self._accumulators) or 'none'}")

    def add_keyword(self, db_type: str, keyword: str, value: Any, priority: KeywordPriority) -> bool:
        with self._lock:
            return self._get_or_create(db_type).add_or_update_keyword(keyword, value, priority)

    def enforce_options(self, db_type: str, options: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            accumulator = self._accumulators.get(db_type.lower())
            if accumulator is None:
                return dict(options)
            return accumulator.enforce_options(options)

    def accumulator_for(self, db_type: str) -> Optional[ConnectionStringKeywordAccumulator]:
        return self._accumulators.get(db_type.lower())

    def _get_or_create(self, db_type: str) -> ConnectionStringKeywordAccumulator:
        key = db_type.lower()
        if key not in self._accumulators:
            self._accumulators[key] = ConnectionStringKeywordAccumulator(key)
        return self._accumulators[key]


# Global registry instance (lazy initialization)
_global_registry: Optional[KeywordRegistry] = None
_registry_lock = threading.Lock()


def get_keyword_registry() -> KeywordRegistry:
    """Get the global keyword registry instance."""
    global _global_registry

    with _registry_lock:
        if _global_registry is None:
            _global_registry = KeywordRegistry()
        return _global_registry


def reset_keyword_registry():
    """Reset the global registry (useful for testing)."""
    global _global_registry

    with _registry_lock:
        _global_registry = None
