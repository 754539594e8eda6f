from datetime import timedelta
from decimal import Decimal

from discounts.rules import (
    NO_HISTORY,
    AppliesTo,
    DiscountType,
    calculate,
    distribute,
    evaluate,
)
from tests.factories import NOW, cart, discount, item


def test_percentage_spreads_by_price():
    calc = calculate(discount(value="10"), cart(item("a", "30"), item("b", "70")))

    assert calc.amount == Decimal("10.00")
    assert calc.item_discounts == {"a": Decimal("3.00"), "b": Decimal("7.00")}
    assert not calc.free_shipping


def test_distribute_gives_remainder_to_last_item():
    items = (item("a", "10"), item("b", "10"), item("c", "10"))
    shares = distribute(items, Decimal("10.00"))

    assert shares == {"a": Decimal("3.33"), "b": Decimal("3.33"), "c": Decimal("3.34")}
    assert sum(shares.values()) == Decimal("10.00")


def test_distribute_nothing():
    assert distribute((), Decimal("5.00")) == {}
    assert distribute((item("a", "10"),), Decimal("0.00")) == {}


def test_fixed_amount_never_exceeds_eligible_total():
    calc = calculate(discount(type=DiscountType.FIXED_AMOUNT, value="50"), cart(item("a", "30")))
    assert calc.amount == Decimal("30.00")


def test_fixed_amount_on_specific_products():
    d = discount(
        type=DiscountType.FIXED_AMOUNT,
        value="10",
        applies_to=AppliesTo.SPECIFIC_PRODUCTS,
        product_ids=("p-a",),
    )
    calc = calculate(d, cart(item("a", "30"), item("b", "70")))

    assert calc.amount == Decimal("10.00")
    assert calc.item_discounts == {"a": Decimal("10.00")}


def test_free_shipping():
    d = discount("SHIPFREE", type=DiscountType.FREE_SHIPPING, value="0")

    calc = calculate(d, cart(item("a", "30"), shipping="7.50"))
    assert calc.free_shipping
    assert calc.amount == Decimal("7.50")
    assert calc.item_discounts == {}

    assert calculate(d, cart(item("a", "30"))).amount == Decimal("0.00")


def test_buy_two_get_one_discounts_cheapest_unit():
    d = discount("B2G1", type=DiscountType.BUY_X_GET_Y, value="0", buy_quantity=2, get_quantity=1)
    calc = calculate(d, cart(item("a", "10", quantity=2), item("b", "4")))

    assert calc.amount == Decimal("4.00")
    assert calc.item_discounts == {"b": Decimal("4.00")}


def test_buy_x_get_y_counts_every_group():
    d = discount("B2G1", type=DiscountType.BUY_X_GET_Y, value="0", buy_quantity=2, get_quantity=1)
    calc = calculate(d, cart(item("a", "10", quantity=4), item("b", "5", quantity=2)))

    assert calc.amount == Decimal("10.00")
    assert calc.item_discounts == {"b": Decimal("10.00")}


def test_buy_x_get_y_partial_percentage():
    d = discount(
        "B2G1HALF",
        type=DiscountType.BUY_X_GET_Y,
        value="0",
        buy_quantity=2,
        get_quantity=1,
        get_discount_percentage=Decimal("50"),
    )
    calc = calculate(d, cart(item("a", "10", quantity=2), item("b", "4")))
    assert calc.amount == Decimal("2.00")


def test_buy_x_get_y_needs_enough_units():
    d = discount("B2G1", type=DiscountType.BUY_X_GET_Y, value="0", buy_quantity=2, get_quantity=1)
    assert calculate(d, cart(item("a", "10", quantity=2))).amount == Decimal("0.00")


def test_maximum_discount_caps_amount_and_shares():
    d = discount(value="50", maximum_discount_amount=Decimal("20.00"))
    calc = calculate(d, cart(item("a", "60"), item("b", "40")))

    assert calc.amount == Decimal("20.00")
    assert calc.item_discounts == {"a": Decimal("12.00"), "b": Decimal("8.00")}


def test_evaluate_valid():
    d = discount(value="25")
    result = evaluate(d, cart(item("a", "80")), NO_HISTORY, NOW)

    assert result.is_valid
    assert result.discount_amount == Decimal("20.00")
    assert result.applied_discount is not None
    assert result.applied_discount.code == "SAVE10"
    assert result.applied_discount.discount_amount == Decimal("20.00")
    assert result.errors == ()


def test_evaluate_invalid_takes_nothing():
    d = discount(ends_at=NOW - timedelta(days=1))
    result = evaluate(d, cart(item("a", "80")), NO_HISTORY, NOW)

    assert not result.is_valid
    assert result.discount_amount == Decimal("0.00")
    assert result.applied_discount is None
    assert result.errors == ("This discount has expired",)
