"""
Money Utilities - Decimal operations for prices shown in the cart.

Catalog prices are stored in rupees with two decimal places. Values coming from
JSON (floats) go through str() before Decimal to avoid binary float noise.
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Union

Number = Union[str, int, float, Decimal, None]

MONEY_PRECISION = Decimal("0.01")
HUNDRED = Decimal("100")


def to_decimal(value: Number) -> Decimal:
    """
    Convert any value to Decimal safely.

    Returns Decimal("0") for None or values that cannot be parsed.
    """
    if value is None:
        return Decimal("0")

    if isinstance(value, Decimal):
        return value

    try:
        if isinstance(value, float):
            return Decimal(str(value))
        return Decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        return Decimal("0")


def round_money(value: Number) -> Decimal:
    """Round a monetary value to paise."""
    return to_decimal(value).quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP)


def to_float(value: Number) -> float:
    """
    Convert to float for JSON serialization.

    Use only at API boundaries, not for internal calculations.
    """
    return float(to_decimal(value))


def final_price(price: Number, discount_percent: Number) -> Decimal:
    """Unit price after applying a percentage discount."""
    base = to_decimal(price)
    discount = base * to_decimal(discount_percent) / HUNDRED
    return round_money(base - discount)


def line_total(price: Number, discount_percent: Number, quantity: int) -> Decimal:
    """Discounted price for `quantity` units."""
    return round_money(final_price(price, discount_percent) * quantity)
