"""
Validation — every rule a discount must pass before it applies.

Rules are checked in a fixed order and all violations are collected,
so the customer sees each reason at once.
"""

from __future__ import annotations

from datetime import datetime

from discounts import money as M
from discounts.rules._types import (
    AppliesTo,
    BudgetType,
    CustomerHistory,
    Discount,
    DiscountContext,
    DiscountItem,
)


def eligible_items(discount: Discount, context: DiscountContext) -> tuple[DiscountItem, ...]:
    """
    Items the discount may touch.

    Without a product/category list the restriction is ignored.
    """
    match discount.applies_to:
        case AppliesTo.SPECIFIC_PRODUCTS if discount.product_ids is not None:
            products = set(discount.product_ids)
            return tuple(i for i in context.items if i.product_id in products)
        case AppliesTo.SPECIFIC_CATEGORIES if discount.category_ids is not None:
            categories = set(discount.category_ids)
            return tuple(
                i for i in context.items if categories.intersection(i.category_ids)
            )
        case _:
            return context.items


def validate(
    discount: Discount,
    context: DiscountContext,
    history: CustomerHistory,
    now: datetime,
    currency: str = "USD",
) -> list[str]:
    """Collect all violated rules. Empty list means the discount applies."""
    errors: list[str] = []

    if not discount.is_active:
        errors.append("This discount is not active")

    # Date window
    if discount.starts_at is not None and discount.starts_at > now:
        errors.append("This discount is not yet active")
    if discount.ends_at is not None and discount.ends_at < now:
        errors.append("This discount has expired")

    # Usage
    if M.is_set(discount.usage_limit) and discount.usage_count >= discount.usage_limit:
        errors.append("This discount has reached its usage limit")
    if M.is_set(discount.usage_limit_per_customer) and context.customer_id:
        if history.uses_of(discount.id) >= discount.usage_limit_per_customer:
            errors.append("You have already used this discount the maximum number of times")

    # Campaign budget
    if discount.budget_type is not None and M.is_set(discount.budget_limit):
        if discount.budget_used >= discount.budget_limit:
            match discount.budget_type:
                case BudgetType.USAGE:
                    errors.append("This campaign has reached its budget limit")
                case BudgetType.SPEND:
                    errors.append("This campaign has reached its spend limit")

    # Order size
    minimum = discount.minimum_order_amount
    if M.is_set(minimum) and context.subtotal < minimum:
        errors.append(f"Minimum order amount of {M.format_money(minimum, currency)} required")
    maximum = discount.maximum_order_amount
    if M.is_set(maximum) and context.subtotal > maximum:
        errors.append(f"Maximum order amount of {M.format_money(maximum, currency)} exceeded")
    if M.is_set(discount.minimum_quantity) and context.total_quantity < discount.minimum_quantity:
        errors.append(f"Minimum {discount.minimum_quantity} items required")

    # Product / category restriction
    restricted = (
        discount.applies_to is AppliesTo.SPECIFIC_PRODUCTS and discount.product_ids is not None
    ) or (
        discount.applies_to is AppliesTo.SPECIFIC_CATEGORIES and discount.category_ids is not None
    )
    if restricted and not eligible_items(discount, context):
        errors.append("No eligible products in cart for this discount")

    # Who may use it
    if discount.customer_ids:
        if not context.customer_id or context.customer_id not in discount.customer_ids:
            errors.append("This discount is not available for your account")
    if discount.customer_group_ids:
        if not set(discount.customer_group_ids).intersection(context.customer_group_ids):
            errors.append("This discount is not available for your customer group")
    if discount.region_ids:
        if not context.region_id or context.region_id not in discount.region_ids:
            errors.append("This discount is not available in your region")

    if discount.first_order_only and context.customer_id and history.has_orders:
        errors.append("This discount is only valid for first orders")

    return errors


def is_live(discount: Discount, now: datetime) -> bool:
    """Active, inside its date window and under its usage limit."""
    if not discount.is_active:
        return False
    if discount.starts_at is not None and discount.starts_at > now:
        return False
    if discount.ends_at is not None and discount.ends_at < now:
        return False
    if M.is_set(discount.usage_limit) and discount.usage_count >= discount.usage_limit:
        return False
    return True


__all__ = ("eligible_items", "validate", "is_live")
