"""
Discovered Database - A database on a DiscoveredServer
"""

from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Sequence

import pandas as pd

from ..connections import ManagedTransaction, managed_connection
from ..creation.column_request import ColumnRequest
from ..creation.table_creation import CreateTableArgs, CreateTableResult, TableCreator
from ..dialects.base import TableType
from ..exceptions import DatabaseStateError
from .column import DiscoveredColumn
from .table import DiscoveredTable
from .table_valued_function import DiscoveredTableValuedFunction

import logging
logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from .server import DiscoveredServer


class DiscoveredDatabase:
    """
    A named database. Constructing one does no I/O.

    Usage:
        database = server.expect_database("test")
        table = database.create_table("people", data=df)
    """

    def __init__(self, server: "DiscoveredServer", name: str):
        self.server = server
        self._name = server.dialect.get_runtime_name(name)

    @property
    def dialect(self):
        return self.server.dialect

    @property
    def adapter(self):
        return self.server.adapter

    def get_runtime_name(self) -> str:
        return self._name

    def exists(self) -> bool:
        return self.adapter.database_exists(self.server.build_connection_kwargs(), self._name)

    # ==================== Lifecycle ====================

    def create(self, drop_first: bool = False) -> "DiscoveredDatabase":
        """
        Create the database on the server.

        Args:
            drop_first: Drop the database (and everything in it) if it exists
        """
        if drop_first and self.exists():
            self.force_drop()
        return self.server.create_database(self._name)

    def drop(self):
        """Drop the database. It must exist and hold no tables."""
        if not self.exists():
            raise DatabaseStateError(f"Database {self._name} does not exist")
        tables = self.discover_tables(include_views=True)
        if tables:
            names = ", ".join(t.get_runtime_name() for t in tables)
            raise DatabaseStateError(f"Database {self._name} is not empty, it contains: {names}")
        self.force_drop()

    def force_drop(self):
        """Drop the database and everything in it. Does nothing if it does not exist."""
        if not self.exists():
            return
        self.adapter.drop_database(self.server.build_connection_kwargs(), self._name)
        logger.info(f"Dropped database {self._name} on {self.server}")

    # ==================== Tables ====================

    def discover_tables(self, include_views: bool = True, schema: Optional[str] = None,
                        transaction: Optional[ManagedTransaction] = None) -> List[DiscoveredTable]:
        with managed_connection(self.server, transaction) as conn:
            infos = self.adapter.list_tables(conn, self._name, schema, include_views)
        return [DiscoveredTable(self, info.name, info.schema, info.table_type) for info in infos]

    def expect_table(self, name: str, schema: Optional[str] = None,
                     table_type: TableType = TableType.TABLE) -> DiscoveredTable:
        """A reference to a table that may or may not exist."""
        if table_type == TableType.TABLE_VALUED_FUNCTION:
            return self.expect_table_valued_function(name, schema)
        return DiscoveredTable(self, name, schema, table_type)

    def discover_table_valued_functions(
            self, transaction: Optional[ManagedTransaction] = None) -> List[DiscoveredTableValuedFunction]:
        with managed_connection(self.server, transaction) as conn:
            infos = self.adapter.list_table_valued_functions(conn, self._name)
        return [DiscoveredTableValuedFunction(self, info.name, info.schema) for info in infos]

    def expect_table_valued_function(self, name: str, schema: Optional[str] = None) -> DiscoveredTableValuedFunction:
        return DiscoveredTableValuedFunction(self, name, schema)

    def create_table(
        self,
        table_name: str,
        data: Optional[pd.DataFrame] = None,
        explicit_columns: Optional[Sequence[ColumnRequest]] = None,
        schema: Optional[str] = None,
        foreign_keys: Optional[Dict[str, DiscoveredColumn]] = None,
        cascade_delete: bool = False,
        adjuster: Optional[Callable[[List[ColumnRequest]], None]] = None,
        create_empty: bool = False,
        dayfirst: Optional[bool] = None,
    ) -> DiscoveredTable:
        """
        Create a table from a DataFrame and/or explicit column requests.

        Args:
            table_name: Name of the new table
            data: Rows to guess column types from (and upload)
            explicit_columns: Columns overriding (or, without data, defining) the guessed ones
            schema: Optional schema
            foreign_keys: New table column name -> referenced primary key column
            cascade_delete: Add "on delete cascade" to the foreign key
            adjuster: Called with the column list before SQL is generated
            create_empty: Create the table but do not upload ``data``
            dayfirst: Day/month ordering for date text (None = guess)

        Returns:
            The new table
        """
        args = CreateTableArgs(
            database=self,
            table_name=table_name,
            schema=schema,
            data=data,
            explicit_columns=list(explicit_columns or []),
            foreign_keys=foreign_keys,
            cascade_delete=cascade_delete,
            adjuster=adjuster,
            create_empty=create_empty,
            dayfirst=dayfirst,
        )
        return self.create_table_with_args(args).table

    def create_table_with_args(self, args: CreateTableArgs) -> CreateTableResult:
        """Create a table and also report the guessed types and batch timings."""
        return TableCreator().create(args)

    # ==================== Equality ====================

    def __eq__(self, other) -> bool:
        if not isinstance(other, DiscoveredDatabase):
            return NotImplemented
        return self.server == other.server and self._name.lower() == other._name.lower()

    def __hash__(self) -> int:
        return hash((self.server, self._name.lower()))

    def __str__(self) -> str:
        return self._name

    def __repr__(self) -> str:
        return f"DiscoveredDatabase({self._name!r})"
