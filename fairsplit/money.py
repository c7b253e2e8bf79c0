"""Decimal helpers shared by the split, balance and settlement code.

All money is held as :class:`~decimal.Decimal` with two fractional digits.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from .errors import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
TOLERANCE = CENT
MAX_VALUE = Decimal("1e15")


def to_decimal(value: Any, places: Decimal = CENT) -> Decimal:
    """Parse ``value`` into a Decimal quantized to ``places``.

    Floats go through ``str`` so that ``0.1`` becomes ``Decimal("0.1")``
    rather than its binary expansion. Booleans, NaN, infinities and
    magnitudes of 1e15 or more are refused.
    """
    if isinstance(value, bool):
        raise ValidationError("invalid amount")
    try:
        if isinstance(value, Decimal):
            parsed = value
        elif isinstance(value, (int, float)):
            parsed = Decimal(str(value))
        elif isinstance(value, str):
            parsed = Decimal(value.strip())
        else:
            raise ValidationError("invalid amount")
    except InvalidOperation:
        raise ValidationError("invalid amount") from None

    if not parsed.is_finite() or abs(parsed) >= MAX_VALUE:
        raise ValidationError("invalid amount")
    try:
        return parsed.quantize(places, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError("invalid amount") from None


def to_percentage(value: Any) -> Decimal:
    # percentages keep four places so 33.3333 survives parsing
    return to_decimal(value, Decimal("0.0001"))


def round2(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def amounts_close(a: Decimal, b: Decimal, tolerance: Decimal = TOLERANCE) -> bool:
    return abs(a - b) <= tolerance


def is_settled(value: Decimal) -> bool:
    return abs(value) <= TOLERANCE


def as_number(value: Decimal) -> float:
    return float(round2(value))
