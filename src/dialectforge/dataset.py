"""
Dataset helpers - Table creation hints carried on a pandas DataFrame

A DataFrame has no notion of primary keys or nullability, so the hints
the table creation pipeline reads are kept in ``DataFrame.attrs``:
- ``primary_key``: column names forming the primary key
- ``not_null``: column names that must be created NOT NULL
- ``do_not_retype``: object columns that stay strings instead of being guessed
"""

from typing import Iterable, List

import pandas as pd

from .exceptions import UnsupportedValueError
from .translation.guesser import is_supported_value

import logging
logger = logging.getLogger(__name__)

PRIMARY_KEY_ATTR = "primary_key"
NOT_NULL_ATTR = "not_null"
DO_NOT_RETYPE_ATTR = "do_not_retype"


def _names(df: pd.DataFrame, key: str) -> List[str]:
    return list(df.attrs.get(key, []))


def _set_names(df: pd.DataFrame, key: str, columns: Iterable[str]):
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise KeyError(f"Columns not in dataset: {', '.join(map(str, missing))}")
    df.attrs[key] = list(columns)


# ==================== Primary Key ====================

def set_primary_key(df: pd.DataFrame, columns: Iterable[str]):
    _set_names(df, PRIMARY_KEY_ATTR, list(columns))


def get_primary_key(df: pd.DataFrame) -> List[str]:
    return _names(df, PRIMARY_KEY_ATTR)


# ==================== Nullability ====================

def set_allow_nulls(df: pd.DataFrame, column: str, allow_nulls: bool):
    """Mark a single column as nullable (the default) or NOT NULL."""
    not_null = [c for c in _names(df, NOT_NULL_ATTR) if c != column]
    if not allow_nulls:
        not_null.append(column)
    _set_names(df, NOT_NULL_ATTR, not_null)


def get_allow_nulls(df: pd.DataFrame, column: str) -> bool:
    return column not in _names(df, NOT_NULL_ATTR)


# ==================== Re-typing ====================

def set_do_not_retype(df: pd.DataFrame, column: str, do_not_retype: bool = True):
    names = [c for c in _names(df, DO_NOT_RETYPE_ATTR) if c != column]
    if do_not_retype:
        names.append(column)
    _set_names(df, DO_NOT_RETYPE_ATTR, names)


def get_do_not_retype(df: pd.DataFrame, column: str) -> bool:
    return column in _names(df, DO_NOT_RETYPE_ATTR)


# ==================== Validation ====================

def is_text_column(series: pd.Series) -> bool:
    """True for object columns and the dedicated string dtype (the pandas 3 default for text)."""
    return pd.api.types.is_object_dtype(series) or pd.api.types.is_string_dtype(series)



def check_for_opaque_columns(df: pd.DataFrame):
    """
    Reject columns holding values no database type can represent.

    Raises:
        UnsupportedValueError: Naming the first offending column
    """
    for column in df.columns:
        series = df[column]
        if series.dtype != object:
            continue
        for value in series:
            if not is_supported_value(value):
                logger.error(f"Column '{column}' holds unsupported value type {type(value).__name__}")
                raise UnsupportedValueError(
                    f"Column '{column}' holds values of type {type(value).__name__} "
                    f"which cannot be stored in a database"
                )
