"""
Monetary Amount Helpers

Every balance and transaction amount is a Decimal rounded to cents with
ROUND_HALF_UP. NEVER uses float for stored monetary values.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation, getcontext
from typing import Union
import re

from .exceptions import InvalidInputError

# Set global decimal context for financial precision
getcontext().prec = 28

CENT = Decimal('0.01')
ZERO = Decimal('0.00')

AmountLike = Union[Decimal, int, float, str]

# Optional sign, optional leading currency symbol, plain digits with an optional fraction
AMOUNT_PATTERN = re.compile(r'^(?P<sign>[+-]?)\s*[$€£]?\s*(?P<digits>\d+(?:\.\d+)?)$')


def to_amount(value: AmountLike) -> Decimal:
    """
    Convert a number or numeric string to a cent-rounded Decimal

    Floats go through str() first so that 0.1 becomes Decimal('0.10')
    rather than its binary expansion.

    Raises:
        InvalidInputError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise InvalidInputError(f"Cannot convert {value!r} to an amount")

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    elif isinstance(value, str):
        amount = decimal_from_string(value)
    else:
        raise InvalidInputError(f"Cannot convert {value!r} to an amount")

    if not amount.is_finite():
        raise InvalidInputError(f"Amount must be finite, got {value!r}")

    return quantize_amount(amount)


def quantize_amount(value: Decimal) -> Decimal:
    """Round a Decimal to cents"""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def decimal_from_string(value: str) -> Decimal:
    """
    Safely convert string to Decimal, tolerating a leading currency
    symbol, whitespace and thousands separators

    Args:
        value: String representation of number

    Returns:
        Decimal value

    Raises:
        InvalidInputError: If string cannot be converted to valid Decimal
    """
    if not value or not value.strip():
        raise InvalidInputError("Value must be a non-empty string")

    match = AMOUNT_PATTERN.match(value.strip().replace(',', ''))
    if match is None:
        raise InvalidInputError(f"Cannot convert '{value}' to Decimal")

    try:
        return Decimal(match.group("sign") + match.group("digits"))
    except InvalidOperation:
        raise InvalidInputError(f"Cannot convert '{value}' to Decimal")


def format_amount(value: Decimal) -> str:
    """Two-decimal text form used in every record file"""
    return f"{quantize_amount(value):.2f}"
