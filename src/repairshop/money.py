from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

from .errors import ValidationError

CENT = Decimal("0.01")

Amount = Union[Decimal, int, float, str]


def to_decimal(value: Amount) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() keeps floats like 0.1 from dragging binary noise into the sum
    return Decimal(str(value))


def q2(value: Amount) -> Decimal:
    """Round half-up to cents."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def parse_amount(raw: Amount | None, field: str, *, required: bool = True) -> Decimal | None:
    """Parse a user-entered amount at full precision.

    Blank input returns None when the field is optional. Negative, NaN and
    infinite values are rejected with a ValidationError naming ``field``.
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        if required:
            raise ValidationError(f"{field} is required.", field=field)
        return None

    try:
        value = to_decimal(raw.strip() if isinstance(raw, str) else raw)
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a valid number.", field=field) from None

    if not value.is_finite():
        raise ValidationError(f"{field} must be a valid number.", field=field)
    if value < 0:
        raise ValidationError(f"{field} cannot be negative.", field=field)
    return value


def fmt(value: Amount, symbol: str = "S/") -> str:
    return f"{symbol} {q2(value):,.2f}"
