"""
Currency Amount Module

Parses and validates monetary amounts. Every balance and transaction
amount is a Decimal quantized to minor units. NEVER uses float for monetary values.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation, getcontext
from typing import Union
import re

from .errors import InvalidAmountError

# Set global decimal context for financial precision
getcontext().prec = 28

CURRENCY_PRECISION = 2  # Decimal places held in minor units (cents)
MINOR_UNIT = Decimal('0.1') ** CURRENCY_PRECISION
ZERO = Decimal('0.00')

AmountLike = Union[Decimal, int, str]


# Thousands groups with a dot decimal part, e.g. "1,250.50"
_GROUPED_PATTERN = re.compile(r'^[+-]?\d{1,3}(,\d{3})+(\.\d+)?$')
# Plain digits with an optional dot or comma decimal part, e.g. "40", "12,5"
_PLAIN_PATTERN = re.compile(r'^[+-]?\d+([.,]\d+)?$')
_CURRENCY_SYMBOLS = "$€£₹"


def quantize_amount(value: Decimal) -> Decimal:
    """Round a Decimal to minor-unit precision"""
    return value.quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)


def decimal_from_string(value: str) -> Decimal:
    """
    Convert an amount string to Decimal

    Only whole, well-formed amounts are accepted: surrounding whitespace and
    one leading currency symbol are stripped, nothing else is. Exponents,
    embedded letters and mixed separator styles are rejected rather than
    reinterpreted.

    Args:
        value: String representation of number, e.g. "1,250.50", "$40" or "12,5"

    Returns:
        Decimal value

    Raises:
        InvalidAmountError: If string is not a well-formed amount
    """
    if not value or not isinstance(value, str):
        raise InvalidAmountError(value, "amount must be a non-empty string")

    clean_value = value.strip()
    if clean_value[:1] in _CURRENCY_SYMBOLS:
        clean_value = clean_value[1:].strip()

    if _GROUPED_PATTERN.match(clean_value):
        clean_value = clean_value.replace(',', '')
    elif _PLAIN_PATTERN.match(clean_value):
        clean_value = clean_value.replace(',', '.')
    else:
        raise InvalidAmountError(value, "not a decimal number")

    try:
        return Decimal(clean_value)
    except InvalidOperation:
        raise InvalidAmountError(value, "not a decimal number") from None


def to_amount(value: AmountLike) -> Decimal:
    """
    Normalize an incoming amount to a quantized Decimal.

    Floats are refused: binary floating point cannot represent most cent
    values exactly.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise InvalidAmountError(value, "use Decimal, int or str for money")
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise InvalidAmountError(value, "not a finite number")
        return quantize_amount(value)
    if isinstance(value, int):
        return quantize_amount(Decimal(value))
    if isinstance(value, str):
        return quantize_amount(decimal_from_string(value))
    raise InvalidAmountError(value, f"unsupported amount type {type(value).__name__}")


def to_positive_amount(value: AmountLike) -> Decimal:
    """Normalize an amount and require it to be strictly positive"""
    amount = to_amount(value)
    if amount <= ZERO:
        raise InvalidAmountError(value, "amount must be positive")
    return amount


def to_minor_units(amount: Decimal) -> int:
    """Convert a Decimal amount to integer minor units (cents)"""
    return int(quantize_amount(amount).scaleb(CURRENCY_PRECISION))


def from_minor_units(minor_units: int) -> Decimal:
    """Convert integer minor units (cents) back to a Decimal amount"""
    return quantize_amount(Decimal(minor_units).scaleb(-CURRENCY_PRECISION))
