from decimal import Decimal

import pytest

from discounts import money as M


def test_to_money_quantizes_to_cents():
    assert M.to_money("10") == Decimal("10.00")
    assert M.to_money(0.1 + 0.2) == Decimal("0.30")
    assert M.to_money(Decimal("2.005")) == Decimal("2.01")
    assert M.to_money(None) == M.ZERO


def test_percentage_rounds_half_up():
    assert M.percentage(Decimal("199.99"), 25) == Decimal("50.00")
    assert M.percentage(Decimal("10.00"), Decimal("12.5")) == Decimal("1.25")


def test_ratio_of_zero_whole():
    assert M.ratio_of(Decimal("5.00"), M.ZERO) == 0
    assert M.ratio_of(Decimal("5.00"), Decimal("20.00")) == Decimal("0.25")


@pytest.mark.parametrize(
    ("value", "expected"),
    [(None, False), (0, False), (Decimal("0.00"), False), (5, True), (Decimal("0.01"), True)],
)
def test_is_set(value, expected):
    assert M.is_set(value) is expected


@pytest.mark.parametrize(
    ("amount", "currency", "expected"),
    [
        (Decimal("1234.5"), "USD", "$1,234.50"),
        (Decimal("10"), "eur", "€10.00"),
        (Decimal("10"), "CHF", "10.00 CHF"),
        (Decimal("-5"), "USD", "-$5.00"),
    ],
)
def test_format_money(amount, currency, expected):
    assert M.format_money(amount, currency) == expected
