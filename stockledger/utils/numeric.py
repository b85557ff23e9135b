from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from ..errors import ValidationError

MONEY_PLACES = Decimal("0.01")
COST_PLACES = Decimal("0.0001")
ZERO = Decimal("0")


def to_decimal(value, *, default: Decimal | None = None) -> Decimal:
    """Coerce ints, strings, floats and Decimals to Decimal.

    Floats go through ``str`` so ``0.1`` becomes ``Decimal('0.1')``.
    """
    if value is None:
        if default is None:
            raise ValidationError("A numeric value is required")
        return default
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        value = str(value)
    try:
        result = Decimal(value)
    except (InvalidOperation, TypeError) as exc:
        raise ValidationError(f"{value!r} is not a valid number") from exc
    if not result.is_finite():
        raise ValidationError(f"{value!r} is not a valid number")
    return result


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def quantize_cost(value: Decimal) -> Decimal:
    return value.quantize(COST_PLACES, rounding=ROUND_HALF_UP)


def require_positive_int(value, field: str = "quantity") -> int:
    """Return value as an int, rejecting bools, fractions and non-positive numbers."""
    quantity = require_int(value, field)
    if quantity <= 0:
        raise ValidationError(f"{field} must be greater than zero")
    return quantity


def require_int(value, field: str = "quantity") -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a whole number")
    if isinstance(value, int):
        return value
    try:
        as_decimal = to_decimal(value)
    except ValidationError as exc:
        raise ValidationError(f"{field} must be a whole number") from exc
    if not as_decimal.is_finite() or as_decimal != as_decimal.to_integral_value():
        raise ValidationError(f"{field} must be a whole number")
    return int(as_decimal)
