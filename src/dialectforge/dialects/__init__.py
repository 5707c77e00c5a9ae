"""
Database dialects - SQL syntax and type translation per database engine.
"""

from .base import (
    DatabaseDialect,
    MandatoryScalarFunction,
    QueryComponent,
    TableType,
    TopXResponse,
)
from .factory import DialectFactory

__all__ = [
    "DatabaseDialect",
    "DialectFactory",
    "MandatoryScalarFunction",
    "QueryComponent",
    "TableType",
    "TopXResponse",
]
