"""
Discovered Table - A table (or view) in a database and the operations on it

Constructing a DiscoveredTable does no I/O; call exists() to find out
whether it is really there. The column list is cached after the first
discover_columns() and dropped again by every operation changing it.
"""

import datetime
from contextlib import closing
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

import pandas as pd

from ..bulk.bulk_copy import BulkCopy
from ..connections import ManagedTransaction, managed_connection
from ..constants import ALTER_TIMEOUT_S, DEFAULT_COMMAND_TIMEOUT_S
from ..creation.column_request import ColumnRequest
from ..creation.table_creation import get_create_table_sql
from ..dialects.base import TableType
from ..exceptions import AlterFailedError, ColumnMappingError, NotSupportedError
from ..translation.date_decider import DateDecider
from ..translation.type_request import TypeRequest
from .column import DiscoveredColumn
from .relationship import CascadeRule, Relationship

import logging
logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from .database import DiscoveredDatabase


class DiscoveredTable:
    """
    A table, view or table valued function in a DiscoveredDatabase.

    Usage:
        table = database.expect_table("people")
        if table.exists():
            table.add_column("age", "int", allow_nulls=True)
            table.insert({"name": "Frank", "age": 42})
    """

    def __init__(
        self,
        database: "DiscoveredDatabase",
        name: str,
        schema: Optional[str] = None,
        table_type: TableType = TableType.TABLE,
    ):
        self.database = database
        self._name = database.dialect.get_runtime_name(name)
        self.schema = schema
        self.table_type = table_type
        self._columns: Optional[List[DiscoveredColumn]] = None

    # ==================== Identity ====================

    @property
    def server(self):
        return self.database.server

    @property
    def dialect(self):
        return self.database.dialect

    @property
    def adapter(self):
        return self.database.adapter

    def get_runtime_name(self) -> str:
        return self._name

    def get_fully_qualified_name(self) -> str:
        return self.dialect.ensure_fully_qualified(self.database.get_runtime_name(), self.schema, self._name)

    def exists(self, transaction: Optional[ManagedTransaction] = None) -> bool:
        if not self.database.exists():
            return False
        return any(
            t.get_runtime_name().lower() == self._name.lower() and t.table_type == self.table_type
            for t in self.database.discover_tables(include_views=True, schema=self.schema, transaction=transaction)
        )

    def get_top_x_sql(self, top_x: int) -> str:
        return self.dialect.generate_select_query(self.get_fully_qualified_name(), limit=top_x)

    # ==================== Columns ====================

    def discover_columns(self, transaction: Optional[ManagedTransaction] = None,
                         refresh: bool = False) -> List[DiscoveredColumn]:
        """Columns in ordinal order, cached until the table's shape changes."""
        if self._columns is None or refresh:
            with managed_connection(self.server, transaction) as conn:
                infos = self.adapter.describe_columns(
                    conn, self.database.get_runtime_name(), self.schema, self._name
                )
            self._columns = [
                DiscoveredColumn(
                    self, info.name,
                    allow_nulls=info.is_nullable,
                    is_primary_key=info.is_primary_key,
                    is_auto_increment=info.is_auto_increment,
                    collation=info.collation,
                    sql_type=info.type_name,
                    attributes=info.attributes,
                )
                for info in infos
            ]
        return list(self._columns)

    def discover_column(self, name: str, transaction: Optional[ManagedTransaction] = None) -> DiscoveredColumn:
        """
        The column called ``name`` (case-insensitive).

        Raises:
            ColumnMappingError: If there is no such column
        """
        runtime_name = self.dialect.get_runtime_name(name)
        for column in self.discover_columns(transaction):
            if column.get_runtime_name().lower() == runtime_name.lower():
                return column
        raise ColumnMappingError(name, self._name)

    def invalidate_columns(self):
        self._columns = None

    def add_column(self, name: str, data_type, allow_nulls: bool = True,
                   transaction: Optional[ManagedTransaction] = None, timeout: int = ALTER_TIMEOUT_S):
        """
        Add a column.

        Args:
            name: New column name
            data_type: Proprietary type string or TypeRequest
            allow_nulls: Create the column NULL (True) or NOT NULL
        """
        self.dialect.validate_column_name(name)
        if isinstance(data_type, TypeRequest):
            data_type = self.dialect.type_translater.to_proprietary_type(data_type)

        sql = self.dialect.get_add_column_sql(self.get_fully_qualified_name(), name, data_type, allow_nulls)
        with managed_connection(self.server, transaction) as conn:
            self.adapter.execute(conn, sql, timeout=timeout)
        self.invalidate_columns()
        logger.debug(f"Added column {name} {data_type} to {self}")

    def drop_column(self, column: DiscoveredColumn, transaction: Optional[ManagedTransaction] = None):
        sql = self.dialect.get_drop_column_sql(self.get_fully_qualified_name(), column.get_runtime_name())
        with managed_connection(self.server, transaction) as conn:
            self.adapter.execute(conn, sql)
        self.invalidate_columns()

    # ==================== Table Operations ====================

    def get_row_count(self, transaction: Optional[ManagedTransaction] = None) -> int:
        with managed_connection(self.server, transaction) as conn:
            count = self.adapter.execute_scalar(conn, self.dialect.get_row_count_sql(self.get_fully_qualified_name()))
        return int(count or 0)

    def is_empty(self, transaction: Optional[ManagedTransaction] = None) -> bool:
        return self.get_row_count(transaction) == 0

    def truncate(self, transaction: Optional[ManagedTransaction] = None):
        with managed_connection(self.server, transaction) as conn:
            self.adapter.execute(conn, self.dialect.get_truncate_sql(self.get_fully_qualified_name()))
        logger.info(f"Truncated {self}")

    def rename(self, new_name: str, transaction: Optional[ManagedTransaction] = None):
        """
        Rename the table. This object then refers to the new name.

        Raises:
            NotSupportedError: If this is a view or table valued function
        """
        if self.table_type != TableType.TABLE:
            raise NotSupportedError(f"Rename is not supported for {self.table_type.value}")
        self.dialect.validate_table_name(new_name)

        sql = self.dialect.get_rename_table_sql(self.database.get_runtime_name(), self.schema, self._name, new_name)
        with managed_connection(self.server, transaction) as conn:
            self.adapter.execute(conn, sql)

        logger.info(f"Renamed table {self._name} to {new_name}")
        self._name = self.dialect.get_runtime_name(new_name)
        self.invalidate_columns()

    def drop(self, transaction: Optional[ManagedTransaction] = None):
        with managed_connection(self.server, transaction) as conn:
            self.adapter.drop(conn, self.get_fully_qualified_name(), self.table_type)
        self.invalidate_columns()
        logger.info(f"Dropped {self.table_type.value} {self}")

    def make_distinct(self, transaction: Optional[ManagedTransaction] = None,
                      timeout: int = DEFAULT_COMMAND_TIMEOUT_S):
        """
        Delete duplicate rows, keeping one of each.

        A table with a primary key is already distinct and is left alone.
        Without a caller transaction the work runs in a transaction of its own.
        """
        if any(c.is_primary_key for c in self.discover_columns(transaction)):
            return

        temp_table = self.database.expect_table(f"{self._name}_DistinctingTemp", self.schema)
        statements = self.dialect.get_make_distinct_sql(
            self.get_fully_qualified_name(),
            temp_table.get_fully_qualified_name(),
            [c.get_runtime_name() for c in self.discover_columns(transaction)],
        )

        if transaction is not None:
            self._execute_all(transaction.connection, statements, timeout)
        else:
            with self.server.begin_new_transaction() as owned:
                self._execute_all(owned.connection, statements, timeout)
        logger.info(f"Made {self} distinct")

    def _execute_all(self, conn, statements: Sequence[str], timeout: int):
        for sql in statements:
            self.adapter.execute(conn, sql, timeout=timeout)

    # ==================== Data ====================

    def insert(self, values: Dict[str, Any], dayfirst: Optional[bool] = None,
               transaction: Optional[ManagedTransaction] = None,
               timeout: int = DEFAULT_COMMAND_TIMEOUT_S) -> int:
        """
        Insert one row.

        Date and time text is parsed with a DateDecider (``dayfirst`` None
        means month-first).

        Args:
            values: Column name (case-insensitive) to value

        Returns:
            The generated identity, 0 if the table has no auto increment column

        Raises:
            ColumnMappingError: If a key is not a column of this table
        """
        columns = self.discover_columns(transaction)
        decider = DateDecider(dayfirst)

        matched = []
        for key, value in values.items():
            column = next((c for c in columns if c.get_runtime_name().lower() == str(key).lower()), None)
            if column is None:
                raise ColumnMappingError(str(key), self._name)
            matched.append((column, self._convert_for_column(column, value, decider)))

        names = [c.get_runtime_name() for c, _ in matched]
        symbol = self.dialect.parameter_symbol
        parameter_names = self.dialect.get_parameter_names_for(names)
        bare_names = [parameter_names[n][len(symbol):] for n in names]

        auto_increment = next((c for c in columns if c.is_auto_increment), None)
        sql = self.dialect.get_insert_sql(
            self.get_fully_qualified_name(), names,
            [self.adapter.placeholder(n) for n in bare_names],
            auto_increment_column=auto_increment.get_runtime_name() if auto_increment else None,
        )
        params = self.adapter.make_params(bare_names, [v for _, v in matched])

        with managed_connection(self.server, transaction) as conn:
            if auto_increment is None:
                self.adapter.execute(conn, sql, params, timeout=timeout)
                return 0
            return self.adapter.insert_returning_identity(
                conn, sql, params,
                identity_sql=self.dialect.get_identity_query(),
                returning=self.dialect.insert_returns_identity,
                timeout=timeout,
            )

    @staticmethod
    def _convert_for_column(column: DiscoveredColumn, value: Any, decider: DateDecider) -> Any:
        if not isinstance(value, str) or column.data_type is None:
            return value
        if not column.table.dialect.type_translater.is_supported_sql_type(column.data_type.sql_type):
            return value
        host_type = column.data_type.get_host_type()
        if host_type is datetime.datetime:
            return decider.parse(value)
        if host_type is datetime.time:
            return decider.parse_time(value)
        return value

    def begin_bulk_insert(self, dayfirst: Optional[bool] = None,
                          transaction: Optional[ManagedTransaction] = None) -> BulkCopy:
        """
        Start a bulk upload into this table.

        Without a transaction the BulkCopy owns (and closes) a new connection.
        """
        if transaction is not None:
            return BulkCopy(self, transaction.connection, dayfirst=dayfirst, owns_connection=False)
        return BulkCopy(self, self.server.get_connection(), dayfirst=dayfirst, owns_connection=True)

    def get_data_table(self, top_x: Optional[int] = None,
                       transaction: Optional[ManagedTransaction] = None) -> pd.DataFrame:
        """Read the table (or its first ``top_x`` rows) into a DataFrame."""
        sql = self.dialect.generate_select_query(self.get_fully_qualified_name(), limit=top_x)
        with managed_connection(self.server, transaction) as conn:
            with closing(conn.cursor()) as cursor:
                cursor.execute(sql)
                names = [d[0] for d in cursor.description]
                rows = [tuple(r) for r in cursor.fetchall()]
        return pd.DataFrame.from_records(rows, columns=names)

    # ==================== Constraints ====================

    def create_primary_key(self, columns: Sequence[DiscoveredColumn],
                           transaction: Optional[ManagedTransaction] = None,
                           timeout: int = ALTER_TIMEOUT_S):
        """
        Raises:
            NotSupportedError: If the dialect cannot add a primary key afterwards
            AlterFailedError: If the database rejected the constraint
        """
        names = [c.get_runtime_name() for c in columns]
        sql = self.dialect.get_create_primary_key_sql(self.get_fully_qualified_name(), self._name, names)

        with managed_connection(self.server, transaction) as conn:
            try:
                self.adapter.execute(conn, sql, timeout=timeout)
            except Exception as e:
                logger.error(f"Failed to create primary key on {self}: {e}")
                raise AlterFailedError(
                    f"Failed to create primary key on table {self._name} using columns ({','.join(names)})", sql, e
                ) from e
        self.invalidate_columns()

    def add_foreign_key(
        self,
        foreign_key_pairs: Dict[DiscoveredColumn, DiscoveredColumn],
        cascade_delete: bool = False,
        constraint_name: Optional[str] = None,
        transaction: Optional[ManagedTransaction] = None,
        timeout: int = ALTER_TIMEOUT_S,
    ) -> Relationship:
        """
        Add a foreign key from this table's columns to another table.

        Args:
            foreign_key_pairs: Column of this table -> referenced primary key column
            cascade_delete: Delete rows of this table with their parent row
            constraint_name: Defaults to FK_<table>

        Returns:
            The new Relationship as discovered from the catalog

        Raises:
            ValueError: If the columns span more than one table on either side
            AlterFailedError: If the database rejected the constraint
        """
        foreign_tables = {fk.table for fk in foreign_key_pairs}
        primary_tables = {pk.table for pk in foreign_key_pairs.values()}
        if len(primary_tables) != 1 or foreign_tables != {self}:
            raise ValueError("Primary and foreign keys must each belong to a single table")
        primary = primary_tables.pop()

        constraint_name = constraint_name or self.dialect.make_constraint_name("FK_", self._name)
        constraint_sql = self.dialect.get_foreign_key_constraint_sql(
            self._name,
            primary.get_fully_qualified_name(),
            [(pk.get_runtime_name(), fk.get_runtime_name()) for fk, pk in foreign_key_pairs.items()],
            cascade_delete,
            constraint_name,
        )
        sql = self.dialect.get_add_foreign_key_sql(self.get_fully_qualified_name(), constraint_sql)

        with managed_connection(self.server, transaction) as conn:
            try:
                self.adapter.execute(conn, sql, timeout=timeout)
            except Exception as e:
                logger.error(f"Failed to create relationship on {self}: {e}")
                raise AlterFailedError("Failed to create relationship", sql, e) from e

        for relationship in primary.discover_relationships(transaction):
            if relationship.name.lower() == constraint_name.lower():
                return relationship
        raise AlterFailedError(f"Relationship {constraint_name} was not found after creating it", sql)

    def discover_relationships(self, transaction: Optional[ManagedTransaction] = None) -> List[Relationship]:
        """Foreign keys in which this table is the primary key table."""
        with managed_connection(self.server, transaction) as conn:
            infos = self.adapter.list_relationships(
                conn, self.database.get_runtime_name(), self.schema, self._name
            )

        relationships = []
        for info in infos:
            foreign = self.database.expect_table(info.foreign_table, info.foreign_schema or self.schema)
            relationship = Relationship(
                info.name, self, foreign, CascadeRule.from_catalog(info.delete_rule)
            )
            for pk_name, fk_name in info.pairs:
                relationship.add_keys(
                    self.discover_column(pk_name, transaction),
                    foreign.discover_column(fk_name, transaction),
                )
            relationships.append(relationship)
        return relationships

    # ==================== Scripting ====================

    def script_table_creation(
        self,
        drop_primary_keys: bool = False,
        drop_nullability: bool = False,
        convert_identity_to_int: bool = False,
        to_create_table: Optional["DiscoveredTable"] = None,
    ) -> str:
        """
        CREATE TABLE SQL recreating this table's columns.

        Args:
            drop_primary_keys: Leave out the primary key
            drop_nullability: Make every column nullable
            convert_identity_to_int: Declare auto increment columns as plain int
            to_create_table: Script for this table instead (types are
                translated when it is on a different database type)
        """
        destination = to_create_table or self
        different_type = destination.dialect.db_type != self.dialect.db_type
        destination_translater = destination.dialect.type_translater

        requests = []
        for column in self.discover_columns():
            sql_type = column.data_type.sql_type
            if column.is_auto_increment and convert_identity_to_int:
                sql_type = destination_translater.to_proprietary_type(
                    self.dialect.type_translater.to_type_request("int")
                )
            elif different_type:
                sql_type = self.dialect.type_translater.translate_sql_type(sql_type, destination_translater)

            is_auto_increment = column.is_auto_increment and not convert_identity_to_int
            requests.append(ColumnRequest(
                column.get_runtime_name(),
                explicit_db_type=sql_type,
                allow_nulls=(column.allow_nulls or drop_nullability) and not is_auto_increment,
                is_primary_key=column.is_primary_key and not drop_primary_keys,
                is_auto_increment=is_auto_increment,
                collation=None if different_type else column.collation,
            ))

        return get_create_table_sql(
            destination.dialect,
            destination.database.get_runtime_name(),
            destination.get_runtime_name(),
            requests,
            schema=destination.schema,
        )

    # ==================== Equality ====================

    def __eq__(self, other) -> bool:
        if not isinstance(other, DiscoveredTable):
            return NotImplemented
        return (
            self.database == other.database
            and (self.schema or "").lower() == (other.schema or "").lower()
            and self._name.lower() == other._name.lower()
        )

    def __hash__(self) -> int:
        return hash((self.database, (self.schema or "").lower(), self._name.lower()))

    def __str__(self) -> str:
        return self._name

    def __repr__(self) -> str:
        return f"DiscoveredTable({self.get_fully_qualified_name()})"
