"""
Discounted price calculation
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

from wasteless.exceptions import ValidationError

CENT = Decimal("0.01")
HUNDRED = Decimal(100)

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    """Convert to Decimal; floats go through str so 12.90 stays exactly 12.90"""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValidationError(f"Invalid amount: {value!r}")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid amount: {value!r}", {"value": str(value)})


def round_price(amount: Number) -> Decimal:
    return to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_price(base_price: Number, discount_percent: Number) -> Decimal:
    """base_price * (1 - discount/100), rounded half-up to the cent"""
    base = to_decimal(base_price)
    discount = to_decimal(discount_percent)

    if not base.is_finite() or base < 0:
        raise ValidationError("Base price must be a non-negative number", {"base_price": str(base)})
    if not discount.is_finite() or not (0 <= discount <= 100):
        raise ValidationError(
            "Discount percent must be between 0 and 100",
            {"discount_percent": str(discount)},
        )

    price = round_price(base * (HUNDRED - discount) / HUNDRED)
    assert price >= 0, "discounted price must never be negative"
    return price
