"""
Unit tests for DecimalSize.
"""
import pytest

from dialectforge.translation import DecimalSize


class TestDecimalSize:
    """Test precision/scale bookkeeping."""

    def test_precision_and_scale(self):
        size = DecimalSize(3, 2)
        assert size.precision == 5
        assert size.scale == 2

    def test_negative_parts_are_clamped(self):
        size = DecimalSize(-1, -5)
        assert size.before == 0
        assert size.after == 0
        assert size.is_empty

    def test_increase_to_only_widens(self):
        size = DecimalSize(3, 0)
        size.increase_to(1, 4)
        assert size.before == 3
        assert size.after == 4
        assert size.precision == 7

    def test_increase_to_adopts_unset_fields(self):
        size = DecimalSize()
        size.increase_to(2)
        assert size.before == 2
        assert size.after is None

    @pytest.mark.parametrize("first,second,expected", [
        (DecimalSize(3, 1), DecimalSize(1, 4), DecimalSize(3, 4)),
        (DecimalSize(5, 0), DecimalSize(2, 2), DecimalSize(5, 2)),
        (None, DecimalSize(1, 1), DecimalSize(1, 1)),
        (DecimalSize(2, 0), None, DecimalSize(2, 0)),
    ])
    def test_combine(self, first, second, expected):
        assert DecimalSize.combine(first, second) == expected

    def test_combine_widens_both_parts(self):
        combined = DecimalSize.combine(DecimalSize(3, 0), DecimalSize(1, 4))
        assert combined.before == 3
        assert combined.after == 4
        assert combined.precision == 7
        assert combined.scale == 4

    @pytest.mark.parametrize("first,second", [
        (DecimalSize(3, 0), DecimalSize(1, 4)),
        (DecimalSize(5, 0), DecimalSize(2, 2)),
        (DecimalSize(None, 3), DecimalSize(4, None)),
        (None, DecimalSize(1, 1)),
    ])
    def test_combine_is_commutative(self, first, second):
        assert DecimalSize.combine(first, second) == DecimalSize.combine(second, first)

    def test_combine_is_associative(self):
        a, b, c = DecimalSize(3, 0), DecimalSize(1, 4), DecimalSize(6, 1)
        left = DecimalSize.combine(DecimalSize.combine(a, b), c)
        right = DecimalSize.combine(a, DecimalSize.combine(b, c))
        assert left == right == DecimalSize(6, 4)

    def test_combine_with_none_returns_a_copy(self):
        first = DecimalSize(2, 1)
        combined = DecimalSize.combine(first, None)
        assert combined == first
        assert combined is not first
        combined.increase_to(9, 9)
        assert first == DecimalSize(2, 1)
        assert DecimalSize.combine(None, first) is not first

    def test_combine_does_not_modify_inputs(self):
        first = DecimalSize(1, 1)
        DecimalSize.combine(first, DecimalSize(9, 9))
        assert first == DecimalSize(1, 1)

    def test_combine_two_nones(self):
        assert DecimalSize.combine(None, None) is None

    def test_string_length_counts_point(self):
        assert DecimalSize(3, 1).to_string_length() == 5
        assert DecimalSize(3, 0).to_string_length() == 3

    def test_equality_treats_none_as_zero(self):
        assert DecimalSize(None, None) == DecimalSize(0, 0)
        assert hash(DecimalSize(None, 2)) == hash(DecimalSize(0, 2))
