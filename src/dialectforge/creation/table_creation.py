"""
Table Creation - Build and run CREATE TABLE from a DataFrame and/or column requests

Pipeline:
1. Resolve one ColumnRequest per column (explicit request or guessed type)
2. Let the caller's adjuster edit the list
3. Validate names and generate the CREATE TABLE SQL
4. Execute it batch by batch (GO separated), timing each batch
5. Upload the DataFrame unless the table is to be created empty
"""

import time
from contextlib import closing
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from ..connections import managed_connection
from ..constants import BATCH_SEPARATOR, DEFAULT_COMMAND_TIMEOUT_S
from ..dataset import (
    check_for_opaque_columns, get_allow_nulls, get_do_not_retype, get_primary_key, is_text_column,
)
from ..dialects.base import DatabaseDialect
from ..translation.date_decider import DateDecider
from ..translation.translater import TypeTranslater
from ..translation.type_request import TypeRequest
from ..utils.sql_splitter import split_batches
from .column_request import ColumnRequest

import logging
logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from ..discovery.column import DiscoveredColumn
    from ..discovery.database import DiscoveredDatabase
    from ..discovery.table import DiscoveredTable


@dataclass
class CreateTableArgs:
    """Everything needed to create (and optionally populate) a table."""
    database: "DiscoveredDatabase"
    table_name: str
    schema: Optional[str] = None
    data: Optional[pd.DataFrame] = None
    explicit_columns: List[ColumnRequest] = field(default_factory=list)
    foreign_keys: Optional[Dict[str, "DiscoveredColumn"]] = None  # new column name -> primary key column
    cascade_delete: bool = False
    adjuster: Optional[Callable[[List[ColumnRequest]], None]] = None
    create_empty: bool = False
    dayfirst: Optional[bool] = None


@dataclass
class CreateTableResult:
    """The created table, the type chosen for each input column and batch timings."""
    table: "DiscoveredTable"
    column_types: Dict[str, TypeRequest]
    batch_timings: Dict[int, float]  # batch start line -> seconds


# ==================== SQL Generation ====================

def get_create_table_sql(
    dialect: DatabaseDialect,
    database_name: str,
    table_name: str,
    columns: Sequence[ColumnRequest],
    foreign_key_pairs: Optional[Dict[str, "DiscoveredColumn"]] = None,
    cascade_delete: bool = False,
    schema: Optional[str] = None,
) -> str:
    """
    CREATE TABLE statement for ``columns``.

    Raises:
        NamingError: If the table or any column name is invalid
        ValueError: If the foreign keys reference more than one table
    """
    dialect.validate_table_name(table_name)
    for column in columns:
        dialect.validate_column_name(column.name)

    table_name = dialect.get_runtime_name(table_name)
    fully_qualified = dialect.ensure_fully_qualified(database_name, schema, table_name)
    translater = dialect.type_translater

    body = f"CREATE TABLE {fully_qualified}(\n"
    for column in columns:
        line = dialect.get_column_line(
            column.name,
            column.get_sql_db_type(translater),
            column.allow_nulls and not column.is_primary_key,
            column.is_auto_increment,
            column.default,
            column.collation,
        )
        body += f"{line},\n"

    primary_keys = [c for c in columns if c.is_primary_key]
    if primary_keys and not _primary_key_is_implied(dialect, primary_keys):
        name = dialect.make_constraint_name("PK_", table_name)
        keys = ",".join(dialect.ensure_wrapped(c.name) for c in primary_keys)
        body += f" CONSTRAINT {name} PRIMARY KEY ({keys}),\n"

    if foreign_key_pairs:
        primary_tables = {pk.table for pk in foreign_key_pairs.values()}
        if len(primary_tables) != 1:
            raise ValueError("Foreign keys must all reference the same primary key table")
        primary = primary_tables.pop()
        pairs = [(pk.get_runtime_name(), fk_name) for fk_name, pk in foreign_key_pairs.items()]
        constraint = dialect.get_foreign_key_constraint_sql(
            table_name, primary.get_fully_qualified_name(), pairs, cascade_delete
        )
        body += f"\n{constraint}\n"

    body = body.rstrip("\r\n,")
    return body + ")\n"


def _primary_key_is_implied(dialect: DatabaseDialect, primary_keys: Sequence[ColumnRequest]) -> bool:
    """True when the auto increment keyword already declared the only key column."""
    return (
        dialect.auto_increment_implies_primary_key
        and len(primary_keys) == 1
        and primary_keys[0].is_auto_increment
    )


# ==================== Pipeline ====================

class TableCreator:
    """
    Runs the table creation pipeline.

    Usage:
        result = TableCreator().create(CreateTableArgs(database, "people", data=df))
        result.column_types["age"]  # TypeRequest(kind=INT32, ...)
    """

    def create(self, args: CreateTableArgs) -> CreateTableResult:
        database = args.database
        dialect = database.dialect

        if args.data is not None:
            check_for_opaque_columns(args.data)

        columns, column_types = self._resolve_columns(args, dialect.type_translater)

        if args.adjuster is not None:
            args.adjuster(columns)

        sql = get_create_table_sql(
            dialect, database.get_runtime_name(), args.table_name, columns,
            args.foreign_keys, args.cascade_delete, args.schema,
        )
        timings = self.execute_batches(database, f"{sql}\n{BATCH_SEPARATOR}")

        table = database.expect_table(args.table_name, args.schema)
        logger.info(f"Created table {table.get_fully_qualified_name()} with {len(columns)} columns")

        if args.data is not None and not args.create_empty:
            with table.begin_bulk_insert(dayfirst=args.dayfirst) as bulk:
                bulk.upload(args.data)

        return CreateTableResult(table, column_types, timings)

    def _resolve_columns(
        self, args: CreateTableArgs, translater: TypeTranslater
    ) -> Tuple[List[ColumnRequest], Dict[str, TypeRequest]]:
        remaining = list(args.explicit_columns)

        if args.data is None:
            return remaining, {c.name: c.get_type_request(translater) for c in remaining}

        df = args.data
        primary_key = {str(c).lower() for c in get_primary_key(df)}
        columns: List[ColumnRequest] = []
        column_types: Dict[str, TypeRequest] = {}

        for df_column in df.columns:
            name = str(df_column)
            override = next((c for c in remaining if c.name.lower() == name.lower()), None)

            if override is not None:
                remaining.remove(override)
                columns.append(override)
                column_types[name] = override.get_type_request(translater)
                continue

            guesser = translater.get_guesser_for()
            guesser.date_decider = DateDecider(args.dayfirst)
            series = df[df_column]
            if is_text_column(series):
                guesser.date_decider.guess_date_format(series)
            guesser.adjust_to_compensate_for_series(series, retype=not get_do_not_retype(df, df_column))

            request = guesser.guess
            logger.debug(f"Guessed {request} for column {name}")
            column_types[name] = request
            columns.append(ColumnRequest(
                name,
                request,
                allow_nulls=get_allow_nulls(df, df_column),
                is_primary_key=name.lower() in primary_key,
            ))

        # explicit columns with no data (e.g. an identity column) go last
        columns.extend(remaining)
        return columns, column_types

    def execute_batches(self, database: "DiscoveredDatabase", sql: str,
                        timeout: int = DEFAULT_COMMAND_TIMEOUT_S) -> Dict[int, float]:
        """
        Run GO separated SQL on one connection and cursor.

        Returns:
            Seconds taken by each batch, keyed by the batch's first line
        """
        timings: Dict[int, float] = {}
        with managed_connection(database.server) as conn:
            database.adapter.apply_timeout(conn, timeout)
            with closing(conn.cursor()) as cursor:
                for batch in split_batches(sql):
                    logger.debug(f"Executing batch at line {batch.line_start}:\n{batch.text}")
                    started = time.time()
                    cursor.execute(batch.text)
                    timings[batch.line_start] = time.time() - started
        logger.debug(f"Executed {len(timings)} batch(es)")
        return timings
