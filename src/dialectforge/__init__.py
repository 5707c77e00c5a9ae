"""
dialectforge - Cross-database schema discovery, type translation and table creation
"""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("dialectforge")
except PackageNotFoundError:
    # Package not installed
    __version__ = "0.3.0"

from .connections import ManagedTransaction, managed_connection
from .dialects import DatabaseDialect, DialectFactory, MandatoryScalarFunction, TableType
from .adapters import AdapterFactory
from .translation import DateDecider, DecimalSize, Guesser, TypeKind, TypeRequest, TypeTranslater
from .discovery import (
    CascadeRule,
    DiscoveredColumn,
    DiscoveredDatabase,
    DiscoveredDataType,
    DiscoveredServer,
    DiscoveredTable,
    DiscoveredTableValuedFunction,
    Relationship,
    RelationshipTopologicalSort,
)
from .creation import ColumnRequest, CreateTableArgs, CreateTableResult, TableCreator
from .bulk import BulkCopy
from .keywords import KeywordPriority, get_keyword_registry, reset_keyword_registry
from .exceptions import (
    AlterFailedError,
    BulkInsertError,
    CircularDependencyError,
    ColumnMappingError,
    DatabaseStateError,
    DialectForgeError,
    NamingError,
    ResizeError,
    UnsupportedValueError,
)

__all__ = [
    "__version__",
    "AdapterFactory",
    "AlterFailedError",
    "BulkCopy",
    "BulkInsertError",
    "CircularDependencyError",
    "CascadeRule",
    "ColumnMappingError",
    "ColumnRequest",
    "CreateTableArgs",
    "CreateTableResult",
    "DatabaseStateError",
    "DatabaseDialect",
    "DateDecider",
    "DecimalSize",
    "DialectFactory",
    "DialectForgeError",
    "DiscoveredColumn",
    "DiscoveredDataType",
    "DiscoveredDatabase",
    "DiscoveredServer",
    "DiscoveredTable",
    "DiscoveredTableValuedFunction",
    "Guesser",
    "KeywordPriority",
    "MandatoryScalarFunction",
    "ManagedTransaction",
    "NamingError",
    "Relationship",
    "RelationshipTopologicalSort",
    "ResizeError",
    "TableCreator",
    "TableType",
    "TypeKind",
    "TypeRequest",
    "TypeTranslater",
    "UnsupportedValueError",
    "get_keyword_registry",
    "managed_connection",
    "reset_keyword_registry",
]
