from datetime import timedelta
from decimal import Decimal

import pytest

from discounts.rules import (
    NO_HISTORY,
    AppliesTo,
    BudgetType,
    CustomerHistory,
    eligible_items,
    is_live,
    validate,
)
from tests.factories import NOW, cart, discount, item


def errors_for(d, context=None, history=NO_HISTORY, currency="USD"):
    return validate(d, context or cart(item("a", "20")), history, NOW, currency)


def test_valid_discount_has_no_errors():
    assert errors_for(discount()) == []


def test_errors_are_collected_in_order():
    d = discount(
        is_active=False,
        ends_at=NOW - timedelta(days=1),
        usage_limit=1,
        usage_count=1,
        minimum_order_amount=Decimal("100.00"),
    )
    assert errors_for(d) == [
        "This discount is not active",
        "This discount has expired",
        "This discount has reached its usage limit",
        "Minimum order amount of $100.00 required",
    ]


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"starts_at": NOW + timedelta(hours=1)}, "This discount is not yet active"),
        ({"ends_at": NOW - timedelta(seconds=1)}, "This discount has expired"),
        ({"usage_limit": 5, "usage_count": 5}, "This discount has reached its usage limit"),
        (
            {"budget_type": BudgetType.USAGE, "budget_limit": Decimal("10.00"), "budget_used": Decimal("10.00")},
            "This campaign has reached its budget limit",
        ),
        (
            {"budget_type": BudgetType.SPEND, "budget_limit": Decimal("500.00"), "budget_used": Decimal("512.00")},
            "This campaign has reached its spend limit",
        ),
        ({"minimum_order_amount": Decimal("50.00")}, "Minimum order amount of $50.00 required"),
        ({"maximum_order_amount": Decimal("10.00")}, "Maximum order amount of $10.00 exceeded"),
        ({"minimum_quantity": 3}, "Minimum 3 items required"),
        (
            {"applies_to": AppliesTo.SPECIFIC_PRODUCTS, "product_ids": ("p-other",)},
            "No eligible products in cart for this discount",
        ),
        ({"customer_ids": ("c-2",)}, "This discount is not available for your account"),
        ({"customer_group_ids": ("vip",)}, "This discount is not available for your customer group"),
        ({"region_ids": ("eu",)}, "This discount is not available in your region"),
    ],
)
def test_single_rule(overrides, message):
    assert errors_for(discount(**overrides)) == [message]


def test_window_bounds_are_inclusive():
    assert errors_for(discount(starts_at=NOW, ends_at=NOW)) == []


def test_zero_limits_mean_unlimited():
    d = discount(usage_limit=0, usage_count=40, minimum_order_amount=Decimal("0.00"))
    assert errors_for(d) == []


def test_minimum_amount_uses_store_currency():
    d = discount(minimum_order_amount=Decimal("50.00"))
    assert errors_for(d, currency="EUR") == ["Minimum order amount of €50.00 required"]


def test_per_customer_limit_needs_a_customer():
    d = discount(usage_limit_per_customer=1)
    history = CustomerHistory(usage={d.id: 1})

    assert errors_for(d, cart(item("a", "20")), history) == []
    assert errors_for(d, cart(item("a", "20"), customer_id="c-1"), history) == [
        "You have already used this discount the maximum number of times"
    ]


def test_first_order_only():
    d = discount(first_order_only=True)
    returning = CustomerHistory(has_orders=True)

    assert errors_for(d, cart(item("a", "20"), customer_id="c-1"), returning) == [
        "This discount is only valid for first orders"
    ]
    assert errors_for(d, cart(item("a", "20"), customer_id="c-1")) == []


def test_targeting_matches_context():
    d = discount(customer_ids=("c-1",), customer_group_ids=("vip",), region_ids=("eu",))
    context = cart(item("a", "20"), customer_id="c-1", customer_group_ids=("vip", "staff"), region_id="eu")
    assert errors_for(d, context) == []


def test_eligible_items_by_category():
    d = discount(applies_to=AppliesTo.SPECIFIC_CATEGORIES, category_ids=("shoes",))
    shoes = item("a", "50", category_ids=("shoes", "sale"))
    hat = item("b", "20", category_ids=("hats",))

    assert eligible_items(d, cart(shoes, hat)) == (shoes,)


def test_missing_product_list_ignores_restriction():
    d = discount(applies_to=AppliesTo.SPECIFIC_PRODUCTS, product_ids=None)
    context = cart(item("a", "20"), item("b", "30"))

    assert eligible_items(d, context) == context.items
    assert errors_for(d, context) == []


def test_empty_product_list_matches_nothing():
    d = discount(applies_to=AppliesTo.SPECIFIC_PRODUCTS, product_ids=())
    assert errors_for(d) == ["No eligible products in cart for this discount"]


def test_is_live():
    assert is_live(discount(), NOW)
    assert not is_live(discount(is_active=False), NOW)
    assert not is_live(discount(starts_at=NOW + timedelta(days=1)), NOW)
    assert not is_live(discount(ends_at=NOW - timedelta(days=1)), NOW)
    assert not is_live(discount(usage_limit=2, usage_count=2), NOW)
    assert is_live(discount(usage_limit=0, usage_count=2), NOW)
