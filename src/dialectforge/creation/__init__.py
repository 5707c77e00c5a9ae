"""Table creation from DataFrames and column requests."""

from .column_request import ColumnRequest
from .table_creation import CreateTableArgs, CreateTableResult, TableCreator, get_create_table_sql

__all__ = [
    "ColumnRequest",
    "CreateTableArgs",
    "CreateTableResult",
    "TableCreator",
    "get_create_table_sql",
]
