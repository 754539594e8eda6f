"""
Money — cent-exact arithmetic over Decimal.

All amounts are quantized to two places with ROUND_HALF_UP,
so sums of rounded shares never drift.

    from discounts import money as M

    M.percentage(M.to_money("199.99"), 25)   # Decimal("50.00")
    M.format_money(M.to_money(50))           # "$50.00"
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal, ROUND_HALF_UP

from discounts._types import Money

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "TRY": "₺",
}


def to_money(value: object) -> Money:
    """Coerce int/str/float/Decimal into a cent-quantized Decimal."""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def round_money(value: Decimal) -> Money:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def add(a: Money, b: Money) -> Money:
    return round_money(a + b)


def subtract(a: Money, b: Money) -> Money:
    return round_money(a - b)


def total(amounts: Iterable[Money]) -> Money:
    return round_money(sum(amounts, ZERO))


def percentage(amount: Money, percent: Decimal | int) -> Money:
    """`percent`% of amount, rounded to the cent."""
    return round_money(amount * Decimal(percent) / Decimal(100))


def ratio_of(part: Money, whole: Money) -> Decimal:
    """part / whole, unrounded. Zero when whole is zero."""
    if whole == 0:
        return Decimal(0)
    return part / whole


def scale(amount: Money, ratio: Decimal) -> Money:
    return round_money(amount * ratio)


def is_set(value: Decimal | int | None) -> bool:
    """Limits stored as NULL or 0 mean "no limit"."""
    return value is not None and value != 0


def format_money(amount: Money, currency: str = "USD") -> str:
    """
    Format amount for user-facing messages.

    Example:
        format_money(Decimal("1234.5"))         # "$1,234.50"
        format_money(Decimal("10"), "CHF")      # "10.00 CHF"
    """
    amount = round_money(amount)
    sign = "-" if amount < 0 else ""
    body = f"{abs(amount):,.2f}"
    symbol = _SYMBOLS.get(currency.upper())
    if symbol is None:
        return f"{sign}{body} {currency.upper()}"
    return f"{sign}{symbol}{body}"


__all__ = (
    "CENT",
    "ZERO",
    "to_money",
    "round_money",
    "add",
    "subtract",
    "total",
    "percentage",
    "ratio_of",
    "scale",
    "is_set",
    "format_money",
)
