"""
Unit tests for the Guesser and DateDecider.
"""
import datetime

import numpy as np
import pandas as pd
import pytest

from dialectforge.exceptions import UnsupportedValueError
from dialectforge.translation import DateDecider, DecimalSize, Guesser, TypeKind, TypeRequest


def guess_values(values, **kwargs):
    guesser = Guesser(**kwargs)
    for value in values:
        guesser.adjust_to_compensate_for_value(value)
    return guesser.guess


class TestGuesserText:
    """Test guessing from text values."""

    def test_mixed_numbers_become_decimal(self):
        guess = guess_values(["15", "29.9", "200", None])
        assert guess.kind == TypeKind.DECIMAL
        assert guess.decimal_size == DecimalSize(3, 1)
        assert guess.width == 5

    def test_text_among_numbers_falls_back_to_string(self):
        guess = guess_values(["15", "29.9", "200", None, "D"])
        assert guess.kind == TypeKind.STRING
        assert guess.width == 5

    def test_integers(self):
        guess = guess_values(["1", "22", "-333"])
        assert guess.kind == TypeKind.INT32
        assert guess.decimal_size == DecimalSize(3, 0)

    def test_large_integers_are_int64(self):
        assert guess_values(["5000000000"]).kind == TypeKind.INT64

    def test_bool_words(self):
        assert guess_values(["true", "False", "T"]).kind == TypeKind.BOOL

    def test_zero_and_one_are_not_bools(self):
        assert guess_values(["0", "1"]).kind == TypeKind.INT32

    def test_dates(self):
        guess = guess_values(["2007-01-01", "01/02/2007"])
        assert guess.kind == TypeKind.DATETIME

    def test_time_of_day(self):
        assert guess_values(["12:30:00", "1:45 PM"]).kind == TypeKind.TIMESPAN

    def test_bare_year_is_not_a_date(self):
        assert guess_values(["2013"]).kind == TypeKind.INT32

    def test_text_after_numbers_is_string(self):
        guess = guess_values(["12", "abc"])
        assert guess.kind == TypeKind.STRING
        assert guess.width == 3

    def test_numbers_then_dates_is_string(self):
        assert guess_values(["12", "2007-01-01"]).kind == TypeKind.STRING

    def test_blank_and_none_are_ignored(self):
        guess = guess_values(["", "   ", None, "5"])
        assert guess.kind == TypeKind.INT32

    def test_only_nulls_guess_string(self):
        guess = guess_values([None, None])
        assert guess.kind == TypeKind.STRING

    def test_unicode_text(self):
        guess = guess_values(["héllo"])
        assert guess.kind == TypeKind.STRING
        assert guess.unicode is True
        assert guess.width == 5

    def test_extra_width_for_non_ascii(self):
        assert guess_values(["héllo"], extra_length_per_non_ascii=3).width == 8


class TestGuesserTyped:
    """Test guessing from typed values and pandas columns."""

    def test_typed_then_text_is_string(self):
        guess = guess_values([1, "abc"])
        assert guess.kind == TypeKind.STRING
        assert guess.width == 3

    def test_python_datetime(self):
        assert guess_values([datetime.datetime(2020, 1, 1)]).kind == TypeKind.DATETIME

    def test_opaque_object_raises(self):
        with pytest.raises(UnsupportedValueError):
            guess_values([object()])

    def test_int_series(self):
        guesser = Guesser()
        guesser.adjust_to_compensate_for_series(pd.Series([1, 200, 3], dtype="int64"))
        assert guesser.guess.kind == TypeKind.INT32
        assert guesser.guess.decimal_size == DecimalSize(3, 0)

    def test_float_series(self):
        guesser = Guesser()
        guesser.adjust_to_compensate_for_series(pd.Series([1.5, 22.25, np.nan]))
        assert guesser.guess.kind == TypeKind.DECIMAL
        assert guesser.guess.decimal_size == DecimalSize(2, 2)

    def test_bool_series(self):
        guesser = Guesser()
        guesser.adjust_to_compensate_for_series(pd.Series([True, False]))
        assert guesser.guess.kind == TypeKind.BOOL

    def test_datetime_series(self):
        guesser = Guesser()
        guesser.adjust_to_compensate_for_series(pd.to_datetime(pd.Series(["2020-01-01", "2021-06-30"])))
        assert guesser.guess.kind == TypeKind.DATETIME

    def test_object_series_without_retype_stays_string(self):
        guesser = Guesser()
        guesser.adjust_to_compensate_for_series(pd.Series(["1", "22"], dtype=object), retype=False)
        assert guesser.guess.kind == TypeKind.STRING
        assert guesser.guess.width == 2

    def test_seeded_guesser_only_widens(self):
        guesser = Guesser()
        guesser.seed(TypeRequest(TypeKind.STRING, 10))
        guesser.adjust_to_compensate_for_value("abc")
        assert guesser.guess.width == 10


class TestDateDecider:
    """Test day/month ordering and parsing."""

    def test_guess_day_first(self):
        decider = DateDecider()
        assert decider.guess_date_format(["13/01/2007", "01/02/2007"]) is True
        assert decider.parse("01/02/2007") == datetime.datetime(2007, 2, 1)

    def test_guess_month_first(self):
        decider = DateDecider()
        assert decider.guess_date_format(["01/13/2007"]) is False
        assert decider.parse("01/02/2007") == datetime.datetime(2007, 1, 2)

    def test_explicit_ordering_is_not_guessed(self):
        decider = DateDecider(dayfirst=False)
        decider.guess_date_format(["13/01/2007", "14/01/2007"])
        assert decider.dayfirst is False

    def test_no_majority_keeps_month_first(self):
        decider = DateDecider()
        assert decider.guess_date_format(["01/02/2007", "2007-01-01"]) is False

    def test_unparseable_is_none(self):
        assert DateDecider().parse("not a date") is None
        assert DateDecider().parse(None) is None

    def test_is_acceptable(self):
        decider = DateDecider()
        assert decider.is_acceptable("2007-01-01 10:00:00")
        assert decider.is_acceptable("1 Jan 2007")
        assert not decider.is_acceptable("2013")
        assert not decider.is_acceptable("1.5")

    def test_parse_series_both_formats(self):
        series = pd.Series(["01/01/2007 00:00:00", "2007-01-01 00:00:00", "junk", None])
        parsed = DateDecider().parse_series(series)
        assert parsed[0] == datetime.datetime(2007, 1, 1)
        assert parsed[1] == datetime.datetime(2007, 1, 1)
        assert pd.isna(parsed[2])
        assert pd.isna(parsed[3])

    def test_parse_time(self):
        decider = DateDecider()
        assert decider.parse_time("13:45") == datetime.time(13, 45)
        assert decider.parse_time("2007-01-01 08:30:00") == datetime.time(8, 30)
        assert decider.parse_time("junk") is None
