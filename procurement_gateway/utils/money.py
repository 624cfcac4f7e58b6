"""Money helpers - every amount in the engine is a Decimal with 2 places"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

Number = Union[Decimal, int, float, str]


def to_money(value: Number | None) -> Decimal:
    """Coerce a number to a 2-place Decimal (floats go through str to avoid binary noise)"""
    if value is None:
        return ZERO
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def percentage_of(part: Decimal, whole: Decimal) -> Decimal:
    """part / whole * 100, rounded to 1 place; 0 when whole is 0"""
    if whole == 0:
        return Decimal("0.0")
    return (Decimal(part) / Decimal(whole) * 100).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)


def format_amount(amount: Decimal, currency: str = "KES") -> str:
    """KES 12,500.00"""
    return f"{currency} {to_money(amount):,.2f}"
