"""
Unit tests for connection keywords and the process wide registry.
"""
import pytest

from dialectforge.discovery import DiscoveredServer
from dialectforge.exceptions import DuplicateRegistrationError
from dialectforge.keywords import (
    ConnectionStringKeywordAccumulator,
    KeywordPriority,
    get_keyword_registry,
    reset_keyword_registry,
)


class TestAccumulator:
    """Test priority rules of a single accumulator."""

    def test_higher_priority_replaces(self):
        acc = ConnectionStringKeywordAccumulator("sqlserver")
        acc.add_or_update_keyword("timeout", 5, KeywordPriority.SYSTEM_DEFAULT_LOW)
        assert acc.add_or_update_keyword("timeout", 10, KeywordPriority.USER_OVERRIDE)
        assert acc.get_keyword("timeout") == 10
        assert acc.get_priority("timeout") == KeywordPriority.USER_OVERRIDE

    def test_lower_priority_is_ignored(self):
        acc = ConnectionStringKeywordAccumulator("sqlserver")
        acc.add_or_update_keyword("timeout", 10, KeywordPriority.API_RULE)
        assert not acc.add_or_update_keyword("timeout", 5, KeywordPriority.SYSTEM_DEFAULT_HIGH)
        assert acc.get_keyword("timeout") == 10

    def test_equal_priority_replaces(self):
        acc = ConnectionStringKeywordAccumulator("sqlserver")
        acc.add_or_update_keyword("timeout", 5, KeywordPriority.USER_OVERRIDE)
        acc.add_or_update_keyword("TIMEOUT", 7, KeywordPriority.USER_OVERRIDE)
        assert acc.get_keyword("Timeout") == 7
        assert len(acc) == 1

    def test_enforce_options_replaces_case_insensitively(self):
        acc = ConnectionStringKeywordAccumulator("postgresql")
        acc.add_or_update_keyword("connect_timeout", 3, KeywordPriority.SYSTEM_DEFAULT_LOW)
        options = {"host": "srv", "CONNECT_TIMEOUT": 60}
        result = acc.enforce_options(options)
        assert result == {"host": "srv", "connect_timeout": 3}
        assert options == {"host": "srv", "CONNECT_TIMEOUT": 60}

    def test_unknown_keyword(self):
        acc = ConnectionStringKeywordAccumulator("mysql")
        assert acc.get_keyword("missing") is None
        assert acc.get_priority("missing") is None


class TestKeywordRegistry:
    """Test the global registry."""

    def test_singleton(self):
        assert get_keyword_registry() is get_keyword_registry()

    def test_reset(self):
        registry = get_keyword_registry()
        reset_keyword_registry()
        assert get_keyword_registry() is not registry

    def test_initialize_once(self):
        registry = get_keyword_registry()
        registry.initialize({"sqlite": [("timeout", 2.5, KeywordPriority.SYSTEM_DEFAULT_LOW)]})
        assert registry.is_initialized
        with pytest.raises(DuplicateRegistrationError):
            registry.initialize()

    def test_append_after_initialize(self):
        registry = get_keyword_registry()
        registry.initialize()
        registry.add_keyword("mysql", "charset", "utf8mb4", KeywordPriority.SYSTEM_DEFAULT_MEDIUM)
        assert registry.accumulator_for("MySQL").get_keyword("charset") == "utf8mb4"

    def test_enforce_for_unregistered_type_copies(self):
        options = {"database": "x"}
        result = get_keyword_registry().enforce_options("oracle", options)
        assert result == options
        assert result is not options

    def test_server_connections_use_registered_keywords(self, sqlite_path):
        get_keyword_registry().initialize({"sqlite": [("timeout", 2.5, KeywordPriority.API_RULE)]})
        server = DiscoveredServer("sqlite", {"database": str(sqlite_path), "timeout": 30})
        assert server.build_connection_kwargs() == {"database": str(sqlite_path), "timeout": 2.5}
        # the server's own options are left alone
        assert server.connection_kwargs["timeout"] == 30
