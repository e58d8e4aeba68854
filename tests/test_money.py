"""
Test suite for money module

All balance arithmetic must be exact; floats are converted through their
shortest string form and never accumulated.
"""

import pytest
from decimal import Decimal

from securebank.money import (
    ZERO, add_amounts, amount_to_string, decimal_places, format_amount,
    from_minor_units, parse_amount, quantize_amount, to_minor_units
)


class TestParseAmount:
    """Test boundary conversion to Decimal"""

    def test_float_uses_shortest_repr(self):
        """Test 100.01 does not become 100.0100000000000051..."""
        assert parse_amount(100.01) == Decimal('100.01')
        assert parse_amount(0.1) == Decimal('0.1')

    def test_int_and_decimal(self):
        assert parse_amount(10) == Decimal('10')
        assert parse_amount(Decimal('7.49')) == Decimal('7.49')

    def test_string_formatting_is_tolerated(self):
        """Test dollar signs, commas and whitespace are ignored"""
        assert parse_amount(" $1,234.56 ") == Decimal('1234.56')

    def test_invalid_inputs(self):
        """Test non-numeric values raise ValueError"""
        for value in ["", "abc", None, True, [1]]:
            with pytest.raises(ValueError):
                parse_amount(value)


class TestArithmetic:
    """Test exact minor-unit arithmetic"""

    def test_running_balance_is_exact(self):
        """Test deposits of 10, 2.5, 100.01, 7.49 accumulate without drift"""
        balance = ZERO
        expected = [Decimal('10.00'), Decimal('12.50'), Decimal('112.51'), Decimal('120.00')]
        for amount, total in zip([10, 2.5, 100.01, 7.49], expected):
            balance = add_amounts(balance, parse_amount(amount))
            assert balance == total
        assert amount_to_string(balance) == "120.00"

    def test_many_small_deposits(self):
        """Test ten deposits of 0.1 sum to exactly 1.00"""
        balance = ZERO
        for _ in range(10):
            balance = add_amounts(balance, parse_amount(0.1))
        assert balance == Decimal('1.00')

    def test_minor_units_round_trip(self):
        assert to_minor_units(Decimal('112.51')) == 11251
        assert from_minor_units(11251) == Decimal('112.51')

    def test_decimal_places(self):
        """Test trailing zeros are not significant"""
        assert decimal_places(Decimal('10')) == 0
        assert decimal_places(Decimal('10.10')) == 1
        assert decimal_places(Decimal('10.001')) == 3

    def test_formatting(self):
        assert quantize_amount(Decimal('2.005')) == Decimal('2.01')
        assert format_amount(Decimal('1234.5')) == "$1,234.50"
