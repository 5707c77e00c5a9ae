"""Portable type model and translation between it and proprietary types."""

from .decimal_size import DecimalSize
from .type_request import TypeKind, TypeRequest
from .guesser import Guesser
from .date_decider import DateDecider
from .translater import TypeTranslater

__all__ = [
    "DecimalSize",
    "TypeKind",
    "TypeRequest",
    "Guesser",
    "DateDecider",
    "TypeTranslater",
]
