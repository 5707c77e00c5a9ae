"""
Execution adapters - the DB-API drivers behind each dialect.
"""

from .base import (
    ColumnInfo,
    DataAdapter,
    DatabaseAdapter,
    RelationshipInfo,
    SchemaAdapter,
    TableInfo,
)
from .factory import AdapterFactory

__all__ = [
    "AdapterFactory",
    "ColumnInfo",
    "DataAdapter",
    "DatabaseAdapter",
    "RelationshipInfo",
    "SchemaAdapter",
    "TableInfo",
]
