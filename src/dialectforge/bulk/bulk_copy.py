"""
Bulk Copy - Upload DataFrames into an existing table

Steps of an upload:
1. Reject columns holding values no database can store
2. Map DataFrame columns to table columns (case-insensitive)
3. Reparse date/time text for datetime and time columns
4. Insert everything in one executemany through the adapter

When the insert fails, rows are retried one at a time to find the row
(and, where possible, the column) that was rejected.
"""

import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from ..connections import ManagedTransaction
from ..constants import DEFAULT_COMMAND_TIMEOUT_S
from ..dataset import check_for_opaque_columns, is_text_column
from ..exceptions import BulkInsertError, ColumnMappingError
from ..translation.date_decider import DateDecider

import logging
logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from ..discovery.column import DiscoveredColumn
    from ..discovery.table import DiscoveredTable


class BulkCopy:
    """
    Bulk insert session on one connection.

    When it owns the connection, a successful upload is committed and
    close() closes it. A connection belonging to a caller's transaction is
    never committed, rolled back or closed.

    Usage:
        with table.begin_bulk_insert() as bulk:
            bulk.upload(df)
    """

    def __init__(self, table: "DiscoveredTable", connection: Any,
                 dayfirst: Optional[bool] = None, owns_connection: bool = True):
        self.table = table
        self.connection = connection
        self.owns_connection = owns_connection
        self.allow_unmatched_input_columns = False
        self.timeout = DEFAULT_COMMAND_TIMEOUT_S
        self.date_decider = DateDecider(dayfirst)
        self._columns: Optional[List["DiscoveredColumn"]] = None
        self._closed = False

    # ==================== Destination ====================

    @property
    def target_columns(self) -> List["DiscoveredColumn"]:
        if self._columns is None:
            self._columns = self._discover_columns()
        return self._columns

    def _discover_columns(self) -> List["DiscoveredColumn"]:
        # read through our own connection so uncommitted DDL is visible.
        # The wrapper is never ended, so the connection stays open.
        return self.table.discover_columns(transaction=ManagedTransaction(self.connection), refresh=True)

    def invalidate_table_schema(self):
        """Forget the cached destination columns (call after altering the table)."""
        self._columns = None

    def map(self, input_columns: Sequence[str]) -> Tuple[Dict[str, "DiscoveredColumn"], List["DiscoveredColumn"]]:
        """
        Match input column names to destination columns, ignoring case.

        Returns:
            (input name -> destination column, destination columns nobody maps to)

        Raises:
            ColumnMappingError: If an input column has no destination and
                allow_unmatched_input_columns is False
        """
        mapping: Dict[str, "DiscoveredColumn"] = {}
        for input_column in input_columns:
            name = str(input_column)
            matches = [c for c in self.target_columns if c.get_runtime_name().lower() == name.lower()]
            if len(matches) == 1:
                mapping[input_column] = matches[0]
            elif not self.allow_unmatched_input_columns:
                raise ColumnMappingError(name, self.table.get_runtime_name())
            else:
                logger.debug(f"Ignoring input column {name} with no match in {self.table}")

        mapped = set(mapping.values())
        unmatched = [c for c in self.target_columns if c not in mapped]
        return mapping, unmatched

    # ==================== Upload ====================

    def upload(self, df: pd.DataFrame) -> int:
        """
        Insert every row of ``df``.

        Returns:
            Number of rows inserted

        Raises:
            UnsupportedValueError: If a column holds opaque objects
            ColumnMappingError: If a column has no destination
            BulkInsertError: If the database rejected the rows
        """
        if self._closed:
            raise ValueError("BulkCopy is closed")

        check_for_opaque_columns(df)
        mapping, _unmatched = self.map(list(df.columns))
        if not mapping:
            return 0

        data = self._coerce_dates(df[list(mapping)].copy(), mapping)
        destination = [mapping[c].get_runtime_name() for c in mapping]
        rows = list(data.itertuples(index=False, name=None))

        adapter = self.table.adapter
        fq_table = self.table.get_fully_qualified_name()
        try:
            affected = adapter.bulk_insert(self.connection, fq_table, destination, rows, timeout=self.timeout)
        except Exception as e:
            if self.owns_connection:
                self.connection.rollback()
            raise self._diagnose(e, destination, rows) from e

        if self.owns_connection:
            self.connection.commit()
        logger.info(f"Uploaded {affected} rows into {self.table}")
        return affected

    def _coerce_dates(self, data: pd.DataFrame, mapping: Dict[str, "DiscoveredColumn"]) -> pd.DataFrame:
        translater = self.table.dialect.type_translater
        for input_column, column in mapping.items():
            if not is_text_column(data[input_column]) or column.data_type is None:
                continue
            if not translater.is_supported_sql_type(column.data_type.sql_type):
                continue
            host_type = column.data_type.get_host_type()
            if host_type not in (datetime.datetime, datetime.time):
                continue

            decider = DateDecider(self.date_decider.dayfirst if self.date_decider.explicit else None)
            decider.guess_date_format(data[input_column])
            parsed = decider.parse_series(data[input_column], time_only=host_type is datetime.time)

            position = data.columns.get_loc(input_column)
            temp_name = f"{input_column}_dialectforge_parsed"
            data.insert(position, temp_name, parsed)
            data = data.drop(columns=[input_column]).rename(columns={temp_name: input_column})
            logger.debug(f"Reparsed column {input_column} as {host_type.__name__}")
        return data

    # ==================== Diagnosis ====================

    def _diagnose(self, error: Exception, destination: List[str], rows: List[tuple]) -> BulkInsertError:
        logger.error(f"Bulk insert into {self.table} failed: {error}")
        detail = self.table.adapter.describe_bulk_insert_error(error)
        message = f"Bulk insert into {self.table} failed: {error}"
        if detail:
            message += f" ({detail})"

        try:
            found = self._find_failing_row(destination, rows)
        except Exception as diagnostic_error:
            logger.error(f"Row by row diagnosis of {self.table} failed: {diagnostic_error}")
            return BulkInsertError(
                f"{message}. Row by row diagnosis also failed: {diagnostic_error}",
                diagnostic_error=diagnostic_error,
            )

        if found is None:
            return BulkInsertError(message)
        row_index, column, value = found
        where = f"row {row_index}" + (f", column {column} (value {value!r})" if column else "")
        return BulkInsertError(f"{message}. First failure at {where}", row_index, column, value)

    def _find_failing_row(self, destination: List[str], rows: List[tuple]) -> Optional[Tuple[int, Optional[str], Any]]:
        """Insert rows one by one and roll them all back; the first rejected row wins."""
        adapter = self.table.adapter
        fq_table = self.table.get_fully_qualified_name()

        # an external transaction cannot be rolled back here, use a side connection
        conn = self.connection if self.owns_connection else self.table.server.get_connection()
        try:
            for row_index, row in enumerate(rows):
                try:
                    adapter.bulk_insert(conn, fq_table, destination, [row], timeout=self.timeout)
                except Exception:
                    column, value = self._find_failing_column(destination, row)
                    return row_index, column, value
            return None
        finally:
            conn.rollback()
            if conn is not self.connection:
                conn.close()

    def _find_failing_column(self, destination: List[str], row: tuple) -> Tuple[Optional[str], Any]:
        adapter = self.table.adapter
        by_name = {c.get_runtime_name(): c for c in self.target_columns}
        for name, value in zip(destination, row):
            column = by_name[name]
            value = adapter.to_db_value(value)
            if value is None:
                if not column.allow_nulls and not column.is_auto_increment:
                    return name, value
                continue
            if isinstance(value, str) and column.data_type is not None:
                length = column.data_type.get_length_if_string()
                if 0 <= length < len(value):
                    return name, value
        return None, None

    # ==================== Lifetime ====================

    def close(self):
        if self._closed:
            return
        self._closed = True
        if self.owns_connection:
            self.connection.close()

    def __enter__(self) -> "BulkCopy":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None and self.owns_connection and not self._closed:
            self.connection.rollback()
        self.close()
        return False

