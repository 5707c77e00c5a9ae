"""
Unit tests for connection ownership and caller managed transactions.
"""
from unittest.mock import MagicMock

import pytest

from dialectforge.connections import ManagedTransaction, managed_connection


class TestManagedTransaction:
    """Test ending a transaction exactly once."""

    def test_commit_and_close(self):
        conn = MagicMock()
        transaction = ManagedTransaction(conn)
        transaction.commit_and_close()
        conn.commit.assert_called_once()
        conn.close.assert_called_once()
        assert transaction.is_closed

    def test_commit_is_idempotent(self):
        conn = MagicMock()
        transaction = ManagedTransaction(conn)
        transaction.commit_and_close()
        transaction.commit_and_close()
        transaction.abandon_and_close()
        conn.commit.assert_called_once()
        conn.rollback.assert_not_called()
        conn.close.assert_called_once()

    def test_abandon_and_close(self):
        conn = MagicMock()
        transaction = ManagedTransaction(conn)
        transaction.abandon_and_close()
        conn.rollback.assert_called_once()
        conn.close.assert_called_once()

    def test_closes_even_if_commit_fails(self):
        conn = MagicMock()
        conn.commit.side_effect = RuntimeError("lost connection")
        transaction = ManagedTransaction(conn)
        with pytest.raises(RuntimeError):
            transaction.commit_and_close()
        conn.close.assert_called_once()
        assert transaction.is_closed

    def test_context_manager_commits(self):
        conn = MagicMock()
        with ManagedTransaction(conn):
            pass
        conn.commit.assert_called_once()

    def test_context_manager_rolls_back_on_error(self):
        conn = MagicMock()
        with pytest.raises(ValueError):
            with ManagedTransaction(conn):
                raise ValueError("boom")
        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()


class TestManagedConnection:
    """Test who opens, commits and closes connections."""

    def test_owned_connection_is_committed_and_closed(self):
        server = MagicMock()
        with managed_connection(server) as conn:
            assert conn is server.get_connection.return_value
        conn.commit.assert_called_once()
        conn.close.assert_called_once()

    def test_owned_connection_is_rolled_back_on_error(self):
        server = MagicMock()
        with pytest.raises(KeyError):
            with managed_connection(server):
                raise KeyError("x")
        conn = server.get_connection.return_value
        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()
        conn.close.assert_called_once()

    def test_transaction_connection_is_left_alone(self):
        server = MagicMock()
        external = MagicMock()
        transaction = ManagedTransaction(external)
        with managed_connection(server, transaction) as conn:
            assert conn is external
        server.get_connection.assert_not_called()
        external.commit.assert_not_called()
        external.close.assert_not_called()

    def test_transaction_connection_untouched_on_error(self):
        external = MagicMock()
        with pytest.raises(ValueError):
            with managed_connection(MagicMock(), ManagedTransaction(external)):
                raise ValueError("boom")
        external.rollback.assert_not_called()
        external.close.assert_not_called()

    def test_closed_transaction_is_rejected(self):
        transaction = ManagedTransaction(MagicMock())
        transaction.abandon_and_close()
        with pytest.raises(ValueError):
            with managed_connection(MagicMock(), transaction):
                pass
