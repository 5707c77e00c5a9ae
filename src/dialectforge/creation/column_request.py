"""
Column Request - Description of a column to be created
"""

from dataclasses import dataclass
from typing import Optional

from ..dialects.base import MandatoryScalarFunction
from ..translation.translater import TypeTranslater
from ..translation.type_request import TypeRequest


@dataclass
class ColumnRequest:
    """
    A column to create, typed either portably or with a proprietary type.

    When both are given the explicit proprietary type wins.

    Usage:
        ColumnRequest("name", TypeRequest(TypeKind.STRING, 10))
        ColumnRequest("id", explicit_db_type="int", is_auto_increment=True, is_primary_key=True)
    """
    name: str
    type_request: Optional[TypeRequest] = None
    explicit_db_type: Optional[str] = None
    allow_nulls: bool = True
    is_primary_key: bool = False
    is_auto_increment: bool = False
    default: MandatoryScalarFunction = MandatoryScalarFunction.NONE
    collation: Optional[str] = None

    def __post_init__(self):
        if self.type_request is None and not (self.explicit_db_type and self.explicit_db_type.strip()):
            raise ValueError(f"Column '{self.name}' needs either a type request or an explicit database type")

    def get_sql_db_type(self, translater: TypeTranslater) -> str:
        if self.explicit_db_type and self.explicit_db_type.strip():
            return self.explicit_db_type
        return translater.to_proprietary_type(self.type_request)

    def get_type_request(self, translater: TypeTranslater) -> TypeRequest:
        """The portable type, reverse translated from the explicit type if there is one."""
        if self.explicit_db_type and self.explicit_db_type.strip():
            return translater.to_type_request(self.explicit_db_type)
        return self.type_request.copy()
