"""
Calculation — how much a discount takes off, per type.

Amounts are spread over the eligible items so every line knows its share.
"""

from __future__ import annotations

from datetime import datetime

from discounts import money as M
from discounts._types import ItemId, Money
from discounts.rules._types import (
    AppliedDiscount,
    Calculation,
    CustomerHistory,
    Discount,
    DiscountContext,
    DiscountItem,
    DiscountResult,
    DiscountType,
)
from discounts.rules._validate import eligible_items, validate


# ═══════════════════════════════════════════════════════════════════════════════
# Distribution
# ═══════════════════════════════════════════════════════════════════════════════


def distribute(items: tuple[DiscountItem, ...], amount: Money) -> dict[ItemId, Money]:
    """
    Spread amount over items by price weight.

    The last item takes the remainder, so shares sum exactly to amount.
    """
    shares: dict[ItemId, Money] = {}
    if not items or amount <= 0:
        return shares

    total_price = M.total(i.total_price for i in items)
    if total_price <= 0:
        return shares

    remaining = amount
    last = len(items) - 1
    for idx, item in enumerate(items):
        if idx == last:
            share = M.round_money(remaining)
        else:
            share = M.scale(amount, M.ratio_of(item.total_price, total_price))
            remaining = M.subtract(remaining, share)
        shares[item.id] = M.add(shares.get(item.id, M.ZERO), share)
    return shares


# ═══════════════════════════════════════════════════════════════════════════════
# Buy X get Y
# ═══════════════════════════════════════════════════════════════════════════════


def _buy_x_get_y(discount: Discount, context: DiscountContext) -> tuple[Money, dict[ItemId, Money]]:
    buy = discount.buy_quantity or 0
    get = discount.get_quantity or 0
    if not buy or not get:
        return M.ZERO, {}

    # One entry per unit; the cheapest units are the discounted ones.
    units = [
        (item.unit_price, item.id)
        for item in eligible_items(discount, context)
        for _ in range(item.quantity)
    ]
    free_count = (len(units) // (buy + get)) * get
    if free_count <= 0:
        return M.ZERO, {}

    percent = discount.get_discount_percentage or 100
    cheapest = sorted(units, key=lambda unit: unit[0])[:free_count]

    amount = M.ZERO
    per_item: dict[ItemId, Money] = {}
    for unit_price, item_id in cheapest:
        off = M.percentage(unit_price, percent)
        per_item[item_id] = M.add(per_item.get(item_id, M.ZERO), off)
        amount = M.add(amount, off)
    return amount, per_item


# ═══════════════════════════════════════════════════════════════════════════════
# calculate / evaluate
# ═══════════════════════════════════════════════════════════════════════════════


def calculate(discount: Discount, context: DiscountContext) -> Calculation:
    """Amount, free-shipping flag and per-item split for a discount."""
    items = eligible_items(discount, context)
    eligible_total = M.total(i.total_price for i in items)
    free_shipping = False
    per_item: dict[ItemId, Money] = {}

    match discount.type:
        case DiscountType.PERCENTAGE:
            amount = M.percentage(eligible_total, discount.value)
            per_item = distribute(items, amount)
        case DiscountType.FIXED_AMOUNT:
            amount = min(M.to_money(discount.value), eligible_total)
            per_item = distribute(items, amount)
        case DiscountType.FREE_SHIPPING:
            free_shipping = True
            amount = M.to_money(context.shipping_amount)
        case DiscountType.BUY_X_GET_Y:
            amount, per_item = _buy_x_get_y(discount, context)

    cap = discount.maximum_discount_amount
    if M.is_set(cap) and amount > cap:
        ratio = M.ratio_of(cap, amount)
        amount = M.to_money(cap)
        per_item = {item_id: M.scale(share, ratio) for item_id, share in per_item.items()}

    return Calculation(
        amount=M.round_money(amount),
        free_shipping=free_shipping,
        item_discounts=per_item,
    )


def evaluate(
    discount: Discount,
    context: DiscountContext,
    history: CustomerHistory,
    now: datetime,
    currency: str = "USD",
) -> DiscountResult:
    """Validate, then calculate. Invalid results carry every error."""
    errors = validate(discount, context, history, now, currency)
    if errors:
        return DiscountResult.invalid(*errors)

    calc = calculate(discount, context)
    return DiscountResult(
        is_valid=True,
        discount_amount=calc.amount,
        free_shipping=calc.free_shipping,
        applied_discount=AppliedDiscount(
            id=discount.id,
            code=discount.code,
            name=discount.name,
            type=discount.type,
            value=discount.value,
            discount_amount=calc.amount,
        ),
        item_discounts=calc.item_discounts,
    )


__all__ = ("distribute", "calculate", "evaluate")
