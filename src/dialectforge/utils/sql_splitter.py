"""
SQL Splitter - Split generated SQL into batches for execution.

Handles:
- The GO batch separator (alone on its line, any case)
- Batches that hold only whitespace or comments (skipped, via sqlparse)
- Line numbers so failures and timings can point at the source line
"""

import re
from dataclasses import dataclass
from typing import List

import sqlparse

from ..constants import BATCH_SEPARATOR

import logging
logger = logging.getLogger(__name__)

# GO on its own line: matches "GO", "  go  ", but not "GOING" or "ERGO"
_GO_PATTERN = re.compile(rf"^\s*{BATCH_SEPARATOR}\s*$", re.IGNORECASE)


@dataclass
class SQLBatch:
    """One batch of SQL to send in a single execute call."""
    text: str           # The SQL text
    line_start: int     # Starting line number (1-based)


def split_batches(sql_text: str) -> List[SQLBatch]:
    """
    Split SQL text on GO separators.

    Args:
        sql_text: SQL text, possibly holding several GO separated batches

    Returns:
        List of SQLBatch objects, empty batches removed
    """
    if not sql_text or not sql_text.strip():
        return []

    batches = []
    current_lines: List[str] = []
    current_start = 1

    for i, line in enumerate(sql_text.split("\n"), 1):
        if _GO_PATTERN.match(line):
            _append_batch(batches, current_lines, current_start)
            current_lines = []
            current_start = i + 1
        else:
            current_lines.append(line)

    _append_batch(batches, current_lines, current_start)
    return batches


def _append_batch(batches: List[SQLBatch], lines: List[str], line_start: int):
    text = "\n".join(lines)
    if _is_blank(text):
        return

    # Leading blank lines do not count towards the reported start line
    stripped = text.lstrip("\n")
    line_start += text.count("\n") - stripped.count("\n")
    batches.append(SQLBatch(text=stripped.rstrip(), line_start=line_start))


def _is_blank(text: str) -> bool:
    """True if the batch holds nothing but whitespace and comments."""
    if not text.strip():
        return True
    cleaned = sqlparse.format(text, strip_comments=True).strip()
    return not cleaned
