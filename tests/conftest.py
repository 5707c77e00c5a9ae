"""
Pytest configuration and fixtures for dialectforge tests.
"""
import pytest

from dialectforge.discovery import DiscoveredServer
from dialectforge.keywords import reset_keyword_registry


@pytest.fixture(autouse=True)
def fresh_keyword_registry():
    """Every test starts with an empty process wide keyword registry."""
    reset_keyword_registry()
    yield
    reset_keyword_registry()


@pytest.fixture
def sqlite_path(tmp_path):
    """Path of a temporary SQLite database file (created on first connect)."""
    return tmp_path / "test.db"


@pytest.fixture
def sqlite_server(sqlite_path):
    """A server pointing at a fresh SQLite file."""
    server = DiscoveredServer("sqlite", {"database": str(sqlite_path)})
    # create the file so the database exists
    server.get_connection().close()
    return server


@pytest.fixture
def database(sqlite_server):
    """The database of the temporary SQLite file."""
    return sqlite_server.get_current_database()
