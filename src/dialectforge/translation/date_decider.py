"""
Date Decider - recognise and parse loosely formatted date/time text.

Ambiguous dates such as 01/02/2007 are resolved by a day-first or
month-first preference. When none is given the preference is guessed from
a sample of the values: a leading number above 12 votes day-first, a second
number above 12 votes month-first. Without a majority the current
preference (month-first) is kept.
"""

import datetime
import re
import warnings
from typing import Iterable, Optional

import pandas as pd

from ..constants import DATE_SAMPLE_SIZE

import logging
logger = logging.getLogger(__name__)

# A date needs at least day/month/year separated by one of \ / - .
# or a month name. Bare numbers ("2013", "1.5") are never dates.
_DATE_SHAPE = re.compile(
    r"(\d{1,4}[\\/\-.]\d{1,2}[\\/\-.]\d{1,4})"
    r"|(\b(jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\b)",
    re.IGNORECASE,
)

# Leading "a/b/" pair of an all-numeric date, used to vote on the ordering
_LEADING_NUMBERS = re.compile(r"^\s*(\d{1,2})[\\/\-.](\d{1,2})[\\/\-.]\d{2,4}")

_TIME_FORMATS = (
    "%H:%M:%S",
    "%H:%M",
    "%H:%M:%S.%f",
    "%I:%M %p",
    "%I:%M:%S %p",
)


def parse_time_of_day(text: str) -> Optional[datetime.time]:
    """Parse a bare time of day ("13:45", "1:45 PM"), None if not one."""
    text = text.strip()
    for fmt in _TIME_FORMATS:
        try:
            return datetime.datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    return None


class DateDecider:
    """
    Parses date/time text with a consistent day/month ordering.

    Usage:
        decider = DateDecider()
        decider.guess_date_format(["13/01/2007", "01/02/2007"])
        decider.dayfirst  # True
        decider.parse("01/02/2007")  # datetime(2007, 2, 1)
    """

    def __init__(self, dayfirst: Optional[bool] = None):
        """
        Args:
            dayfirst: Explicit ordering for ambiguous dates. None means guess
                from samples (month-first until a guess is made)
        """
        self.explicit = dayfirst is not None
        self.dayfirst = bool(dayfirst)

    def guess_date_format(self, samples: Iterable) -> bool:
        """
        Decide the day/month ordering from up to DATE_SAMPLE_SIZE values.

        Does nothing when the ordering was given explicitly.

        Returns:
            The chosen dayfirst flag
        """
        if self.explicit:
            return self.dayfirst

        values = []
        for value in samples:
            if isinstance(value, str) and value.strip():
                values.append(value.strip())
            if len(values) >= DATE_SAMPLE_SIZE:
                break

        if not values:
            return self.dayfirst

        count_dm = count_md = 0
        for value in values:
            match = _LEADING_NUMBERS.match(value)
            if not match:
                continue
            first, second = int(match.group(1)), int(match.group(2))
            if first > 12 >= second:
                count_dm += 1
            elif second > 12 >= first:
                count_md += 1

        if count_dm != count_md:
            self.dayfirst = count_dm > count_md
        logger.debug(
            f"Guessed date ordering from {len(values)} samples: "
            f"{'day-first' if self.dayfirst else 'month-first'} ({count_dm} vs {count_md})"
        )
        return self.dayfirst

    def is_acceptable(self, text: str) -> bool:
        """True if ``text`` looks like and parses as a date (with optional time)."""
        if not _DATE_SHAPE.search(text):
            return False
        return self._try_parse(text, self.dayfirst) is not None

    def parse(self, value) -> Optional[datetime.datetime]:
        """
        Parse a single value, None if it is null or cannot be parsed.

        Non-text values (datetimes, Timestamps) pass straight through.
        """
        if value is None or (not isinstance(value, str) and pd.isna(value)):
            return None
        if isinstance(value, datetime.datetime):
            return value
        if isinstance(value, datetime.date):
            return datetime.datetime(value.year, value.month, value.day)
        text = str(value).strip()
        if not text:
            return None
        return self._try_parse(text, self.dayfirst)

    def parse_series(self, series: pd.Series, time_only: bool = False) -> pd.Series:
        """
        Reparse a whole column. Values that fail to parse become null.

        Args:
            series: Column of (mostly) text values
            time_only: Produce ``datetime.time`` values instead of datetimes
        """
        if time_only:
            return series.map(self.parse_time).astype(object)

        return series.map(self.parse).astype(object)

    def parse_time(self, value) -> Optional[datetime.time]:
        if isinstance(value, datetime.time):
            return value
        if isinstance(value, str):
            parsed_time = parse_time_of_day(value)
            if parsed_time is not None:
                return parsed_time
        parsed = self.parse(value)
        return parsed.time() if parsed is not None else None

    @staticmethod
    def _try_parse(text: str, dayfirst: bool) -> Optional[datetime.datetime]:
        with warnings.catch_warnings():
            # pandas warns when an ISO date ignores the dayfirst hint
            warnings.simplefilter("ignore", UserWarning)
            try:
                parsed = pd.to_datetime(text, dayfirst=dayfirst)
            except (ValueError, TypeError, OverflowError):
                return None
        if pd.isna(parsed):
            return None
        return parsed.to_pydatetime()
