"""
Schema object model - servers, databases, tables, columns and relationships.
"""

from .column import DiscoveredColumn, DiscoveredDataType
from .relationship import CascadeRule, Relationship, RelationshipTopologicalSort
from .table import DiscoveredTable
from .table_valued_function import DiscoveredParameter, DiscoveredTableValuedFunction
from .database import DiscoveredDatabase
from .server import DiscoveredServer

__all__ = [
    "CascadeRule",
    "DiscoveredColumn",
    "DiscoveredDataType",
    "DiscoveredDatabase",
    "DiscoveredParameter",
    "DiscoveredServer",
    "DiscoveredTable",
    "DiscoveredTableValuedFunction",
    "Relationship",
    "RelationshipTopologicalSort",
]
