"""
Connections Module - Connection ownership and caller managed transactions.

Provides:
- ManagedTransaction: A connection with an open transaction owned by the caller
- managed_connection: Context manager that opens/closes a connection only
  when no transaction was supplied
"""

from contextlib import contextmanager
from typing import Any, Optional

import logging
logger = logging.getLogger(__name__)


class ManagedTransaction:
    """
    A connection with an open transaction, owned by the caller.

    Operations given a ManagedTransaction never commit, roll back or close
    it; the caller ends it exactly once with commit_and_close() or
    abandon_and_close(). Both are idempotent.

    Usage:
        transaction = server.begin_new_transaction()
        table.insert({"name": "Frank"}, transaction=transaction)
        transaction.commit_and_close()

        # or as a context manager (commit on success, rollback on exception)
        with server.begin_new_transaction() as transaction:
            table.truncate(transaction=transaction)
    """

    def __init__(self, connection: Any):
        self.connection = connection
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    def commit_and_close(self):
        """Commit the transaction and close the connection."""
        if self._closed:
            return
        try:
            self.connection.commit()
            logger.debug("Transaction committed")
        finally:
            self._close()

    def abandon_and_close(self):
        """Roll back the transaction and close the connection."""
        if self._closed:
            return
        try:
            self.connection.rollback()
            logger.debug("Transaction rolled back")
        finally:
            self._close()

    def _close(self):
        self._closed = True
        self.connection.close()

    def __enter__(self) -> "ManagedTransaction":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.commit_and_close()
        else:
            self.abandon_and_close()
        return False


@contextmanager
def managed_connection(server, transaction: Optional[ManagedTransaction] = None):
    """
    Yield a connection to ``server``.

    With a transaction, its connection is yielded and left untouched.
    Without one, a new connection is opened, committed on success, rolled
    back on exception and always closed.

    Args:
        server: DiscoveredServer to connect to
        transaction: Optional caller owned transaction

    Yields:
        DB-API connection
    """
    if transaction is not None:
        if transaction.is_closed:
            raise ValueError("Transaction has already been committed or abandoned")
        yield transaction.connection
        return

    conn = server.get_connection()
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
