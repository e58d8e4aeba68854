"""
Money Module

Exact Decimal handling for USD amounts. Balances and transaction amounts are
always Decimal quantized to cents; floats are only accepted at the boundary
and converted through their shortest string form. NEVER accumulates floats.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, getcontext
from typing import Union
import re

# Set global decimal context for financial precision
getcontext().prec = 28

CURRENCY_CODE = "USD"
CURRENCY_PRECISION = 2
CENT = Decimal('0.01')
ZERO = Decimal('0.00')
# Largest single deposit
MAX_AMOUNT = Decimal('1000000.00')

AmountInput = Union[Decimal, int, float, str]


def parse_amount(value: AmountInput) -> Decimal:
    """
    Convert a boundary value into an unrounded Decimal

    Args:
        value: Decimal, int, float or numeric string (``$`` and thousands
            separators are tolerated in strings)

    Returns:
        Decimal value, possibly NaN or infinite; callers decide validity

    Raises:
        ValueError: If the value cannot be interpreted as a number
    """
    if isinstance(value, bool):
        raise ValueError("Amount must be a number, not a boolean")

    if isinstance(value, Decimal):
        return value

    if isinstance(value, int):
        return Decimal(value)

    if isinstance(value, float):
        # repr of a float is its shortest round-tripping form: 100.01 -> '100.01'
        return Decimal(repr(value))

    if isinstance(value, str):
        clean_value = re.sub(r'[\s$,]', '', value)
        if not clean_value:
            raise ValueError("Amount must be a non-empty string")
        try:
            return Decimal(clean_value)
        except InvalidOperation:
            raise ValueError(f"Cannot convert '{value}' to Decimal")

    raise ValueError(f"Unsupported amount type: {type(value).__name__}")


def quantize_amount(value: Decimal) -> Decimal:
    """Round to currency precision"""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def decimal_places(value: Decimal) -> int:
    """Number of significant fractional digits (trailing zeros ignored)"""
    normalized = value.normalize()
    exponent = normalized.as_tuple().exponent
    return -exponent if exponent < 0 else 0


def to_minor_units(amount: Decimal) -> int:
    """Convert a Decimal amount to integer cents"""
    return int(quantize_amount(amount) * 100)


def from_minor_units(cents: int) -> Decimal:
    """Convert integer cents to a Decimal amount"""
    return quantize_amount(Decimal(cents) / 100)


def add_amounts(balance: Decimal, amount: Decimal) -> Decimal:
    """Exact balance addition, done in integer minor units"""
    return from_minor_units(to_minor_units(balance) + to_minor_units(amount))


def format_amount(amount: Decimal) -> str:
    """Format for display"""
    return f"${quantize_amount(amount):,.2f}"


def amount_to_string(amount: Decimal) -> str:
    """Canonical storage representation, e.g. '112.51'"""
    return str(quantize_amount(amount))
