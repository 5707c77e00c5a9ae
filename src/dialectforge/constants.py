"""
Centralized constants for dialectforge.

Eliminates magic numbers scattered across the codebase.
Import from here instead of hardcoding values.
"""

# ===========================================================================
# Timeouts (seconds)
# ===========================================================================
DEFAULT_COMMAND_TIMEOUT_S = 30  # Per-call budget handed to adapters
CONNECTION_TIMEOUT_S = 5        # Driver connect timeout
ALTER_TIMEOUT_S = 500           # Budget for ALTER statements
CREATE_DATABASE_TIMEOUT_S = 30  # Budget for CREATE/DROP DATABASE

# ===========================================================================
# Batch execution
# ===========================================================================
BATCH_SEPARATOR = "GO"          # Must sit on its own line

# ===========================================================================
# Type widths
# ===========================================================================
DATETIME_WIDTH = 27             # Longest textual rendering of a datetime
TIMESPAN_WIDTH = 16             # Longest textual rendering of a time of day
DEFAULT_DECIMAL_PRECISION = 20  # decimal(20,10) when no size was observed
DEFAULT_DECIMAL_SCALE = 10
BIT_INTERMEDIATE_TYPE = "varchar(4000)"  # Two-step bit widening in SQL Server
UNLIMITED_LENGTH = 2**31 - 1    # Reported length of (max)/text/clob types

# ===========================================================================
# Type guessing
# ===========================================================================
DATE_SAMPLE_SIZE = 500          # Values inspected when guessing a date format
TRANSLATER_CACHE_SIZE = 256     # Memoized proprietary -> request lookups

# ===========================================================================
# Naming
# ===========================================================================
RANDOM_CONSTRAINT_SUFFIX_MAX = 10_000_000
