"""Bulk upload of DataFrames into existing tables."""

from .bulk_copy import BulkCopy

__all__ = ["BulkCopy"]
