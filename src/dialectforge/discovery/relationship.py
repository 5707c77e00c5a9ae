"""
Relationship - A foreign key between two discovered tables
"""

from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Set, Tuple

from ..exceptions import CircularDependencyError

import logging
logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from .column import DiscoveredColumn
    from .table import DiscoveredTable


class CascadeRule(Enum):
    """What happens to foreign key rows when the primary key row is deleted."""
    DELETE = "delete"
    NO_ACTION = "no_action"
    SET_NULL = "set_null"
    SET_DEFAULT = "set_default"
    UNKNOWN = "unknown"

    @classmethod
    def from_catalog(cls, rule: Optional[str]) -> "CascadeRule":
        """Map a catalog DELETE_RULE ("CASCADE", "NO ACTION", "RESTRICT"...)."""
        normalized = (rule or "").strip().upper().replace("_", " ")
        return {
            "CASCADE": cls.DELETE,
            "NO ACTION": cls.NO_ACTION,
            "RESTRICT": cls.NO_ACTION,
            "SET NULL": cls.SET_NULL,
            "SET DEFAULT": cls.SET_DEFAULT,
        }.get(normalized, cls.UNKNOWN)


class Relationship:
    """
    A named foreign key constraint.

    ``keys`` pairs each primary key column with the foreign key column
    referencing it, in constraint order.
    """

    def __init__(
        self,
        name: str,
        primary_key_table: "DiscoveredTable",
        foreign_key_table: "DiscoveredTable",
        cascade_delete: CascadeRule = CascadeRule.UNKNOWN,
    ):
        self.name = name
        self.primary_key_table = primary_key_table
        self.foreign_key_table = foreign_key_table
        self.cascade_delete = cascade_delete
        self.keys: List[Tuple["DiscoveredColumn", "DiscoveredColumn"]] = []

    def add_keys(self, primary_key_column: "DiscoveredColumn", foreign_key_column: "DiscoveredColumn"):
        self.keys.append((primary_key_column, foreign_key_column))

    def __repr__(self) -> str:
        return f"Relationship({self.name}: {self.foreign_key_table} -> {self.primary_key_table})"


class RelationshipTopologicalSort:
    """
    Orders tables so every table comes after the tables its foreign keys reference.

    Creating (or inserting into) tables in ``order`` never breaks a foreign
    key; dropping them in reverse order never does either. Tables with no
    dependency between them keep their input order.

    Usage:
        order = RelationshipTopologicalSort([orders, customers, items]).order
        for table in reversed(order):
            table.drop()

    Raises:
        CircularDependencyError: The foreign keys form a cycle
    """

    def __init__(self, tables: Sequence["DiscoveredTable"]):
        self.tables: List["DiscoveredTable"] = []
        for table in tables:
            if table not in self.tables:
                self.tables.append(table)
        self.order = self._sort(self._dependencies())

    def _dependencies(self) -> Dict["DiscoveredTable", Set["DiscoveredTable"]]:
        """Table -> the tables in the set it references."""
        depends_on: Dict["DiscoveredTable", Set["DiscoveredTable"]] = {t: set() for t in self.tables}
        for table in self.tables:
            for relationship in table.discover_relationships():
                child = relationship.foreign_key_table
                # a self reference does not constrain the order
                if child in depends_on and child != table:
                    depends_on[child].add(table)
        return depends_on

    def _sort(self, depends_on: Dict["DiscoveredTable", Set["DiscoveredTable"]]) -> List["DiscoveredTable"]:
        order: List["DiscoveredTable"] = []
        remaining = list(self.tables)
        while remaining:
            ready = [t for t in remaining if not depends_on[t] - set(order)]
            if not ready:
                names = ", ".join(t.get_runtime_name() for t in remaining)
                raise CircularDependencyError(f"Foreign keys form a cycle between: {names}")
            order.extend(ready)
            remaining = [t for t in remaining if t not in ready]
        logger.debug(f"Dependency order: {[t.get_runtime_name() for t in order]}")
        return order
