"""Utility helpers shared across dialectforge."""

from .sql_splitter import SQLBatch, split_batches

__all__ = ["SQLBatch", "split_batches"]
