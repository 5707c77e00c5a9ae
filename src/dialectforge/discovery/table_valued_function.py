"""
Discovered Table Valued Function - A function returning a table (SQL Server only)

A table valued function is queried like a table but its fully qualified
name is an invocation, ``[db]..[fn](@a,@b)``. The parameters are left as
named variables for the caller to declare and set.
"""

from typing import TYPE_CHECKING, List, Optional

from ..connections import ManagedTransaction, managed_connection
from ..dialects.base import TableType
from ..translation.type_request import TypeRequest
from .table import DiscoveredTable

import logging
logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from .database import DiscoveredDatabase


class DiscoveredParameter:
    """A declared parameter of a table valued function, e.g. ``@start datetime``."""

    def __init__(self, function: "DiscoveredTableValuedFunction", name: str, sql_type: str):
        self.function = function
        self.name = name
        self.sql_type = sql_type

    def get_type_request(self) -> TypeRequest:
        return self.function.dialect.type_translater.to_type_request(self.sql_type)

    def __repr__(self) -> str:
        return f"DiscoveredParameter({self.name!r}, {self.sql_type!r})"


class DiscoveredTableValuedFunction(DiscoveredTable):
    """
    Usage:
        function = database.expect_table_valued_function("MyFunction")
        sql = function.get_top_x_sql(10)  # SELECT TOP 10 * FROM [db]..[MyFunction](@start)
    """

    def __init__(self, database: "DiscoveredDatabase", name: str, schema: Optional[str] = None):
        super().__init__(database, name, schema, TableType.TABLE_VALUED_FUNCTION)

    def exists(self, transaction: Optional[ManagedTransaction] = None) -> bool:
        return any(
            f.get_runtime_name().lower() == self._name.lower()
            for f in self.database.discover_table_valued_functions(transaction)
        )

    def discover_parameters(self, transaction: Optional[ManagedTransaction] = None) -> List[DiscoveredParameter]:
        with managed_connection(self.server, transaction) as conn:
            infos = self.adapter.describe_function_parameters(
                conn, self.database.get_runtime_name(), self.schema, self._name
            )
        return [DiscoveredParameter(self, info.name, info.type_name) for info in infos]

    def get_fully_qualified_name(self) -> str:
        # needs a catalog query to find out how to invoke the function
        parameters = [p.name for p in self.discover_parameters()]
        return self.dialect.get_table_valued_function_call(
            self.database.get_runtime_name(), self.schema, self._name, parameters
        )

    def drop(self, transaction: Optional[ManagedTransaction] = None):
        fq = self.dialect.ensure_fully_qualified(self.database.get_runtime_name(), self.schema, self._name)
        with managed_connection(self.server, transaction) as conn:
            self.adapter.drop(conn, fq, TableType.TABLE_VALUED_FUNCTION)
        logger.info(f"Dropped table valued function {self}")

    def __repr__(self) -> str:
        return f"DiscoveredTableValuedFunction({self._name!r})"
