"""
Rule types — discounts, cart context, evaluation results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import StrEnum

from discounts._types import CustomerId, DiscountId, ItemId, Money, StoreId
from discounts.money import ZERO

# ═══════════════════════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════════════════════


class DiscountType(StrEnum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"
    FREE_SHIPPING = "free_shipping"
    BUY_X_GET_Y = "buy_x_get_y"


class AppliesTo(StrEnum):
    ALL = "all"
    SPECIFIC_PRODUCTS = "specific_products"
    SPECIFIC_CATEGORIES = "specific_categories"


class BudgetType(StrEnum):
    """Campaign budget — counted in redemptions or in order spend."""

    SPEND = "spend"
    USAGE = "usage"


# ═══════════════════════════════════════════════════════════════════════════════
# Discount
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Discount:
    """
    A discount definition as stored.

    Limits and amounts set to None or 0 mean "no limit".
    Lower priority value wins when ranking candidates.
    """

    id: DiscountId
    store_id: StoreId
    name: str
    code: str
    type: DiscountType
    value: Money = ZERO
    applies_to: AppliesTo = AppliesTo.ALL
    product_ids: tuple[str, ...] | None = None
    category_ids: tuple[str, ...] | None = None
    customer_ids: tuple[str, ...] | None = None
    minimum_order_amount: Money | None = None
    maximum_order_amount: Money | None = None
    minimum_quantity: int | None = None
    maximum_discount_amount: Money | None = None
    usage_limit: int | None = None
    usage_limit_per_customer: int | None = None
    usage_count: int = 0
    is_active: bool = True
    is_public: bool = False
    first_order_only: bool = False
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    buy_quantity: int | None = None
    get_quantity: int | None = None
    get_discount_percentage: Decimal | None = None
    is_automatic: bool = False
    priority: int = 0
    is_combinable: bool = False
    campaign_name: str | None = None
    budget_type: BudgetType | None = None
    budget_limit: Money | None = None
    budget_used: Money = ZERO
    customer_group_ids: tuple[str, ...] | None = None
    region_ids: tuple[str, ...] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Context
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class DiscountItem:
    """One cart line."""

    id: ItemId
    product_id: str
    quantity: int
    unit_price: Money
    total_price: Money
    variant_id: str | None = None
    category_ids: tuple[str, ...] = ()
    collection_ids: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class DiscountContext:
    """Everything a discount is evaluated against."""

    store_id: StoreId
    items: tuple[DiscountItem, ...]
    subtotal: Money
    customer_id: CustomerId | None = None
    customer_email: str | None = None
    customer_group_ids: tuple[str, ...] = ()
    region_id: str | None = None
    shipping_amount: Money | None = None

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)


@dataclass(frozen=True, slots=True)
class CustomerHistory:
    """
    Prior orders of one customer, preloaded for validation.

    usage maps discount id to the customer's non-cancelled orders using it.
    """

    usage: dict[DiscountId, int] = field(default_factory=dict)
    has_orders: bool = False

    def uses_of(self, discount_id: DiscountId) -> int:
        return self.usage.get(discount_id, 0)


NO_HISTORY = CustomerHistory()

# ═══════════════════════════════════════════════════════════════════════════════
# Results
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class AppliedDiscount:
    id: DiscountId
    code: str
    name: str
    type: DiscountType
    value: Money
    discount_amount: Money


@dataclass(frozen=True, slots=True)
class Calculation:
    """Raw amount produced by a discount, before validity is known."""

    amount: Money
    free_shipping: bool
    item_discounts: dict[ItemId, Money]


@dataclass(frozen=True, slots=True)
class DiscountResult:
    """Outcome of evaluating one discount."""

    is_valid: bool
    discount_amount: Money = ZERO
    free_shipping: bool = False
    applied_discount: AppliedDiscount | None = None
    item_discounts: dict[ItemId, Money] = field(default_factory=dict)
    errors: tuple[str, ...] = ()

    @classmethod
    def invalid(cls, *errors: str) -> DiscountResult:
        return cls(is_valid=False, errors=errors)


@dataclass(frozen=True, slots=True)
class Candidate:
    """A valid discount together with its evaluation, ready for ranking."""

    discount: Discount
    result: DiscountResult


@dataclass(frozen=True, slots=True)
class CartDiscountResult:
    """Aggregate of every discount applied to a cart."""

    total_discount: Money = ZERO
    free_shipping: bool = False
    applied_discounts: tuple[AppliedDiscount, ...] = ()
    item_discounts: dict[ItemId, Money] = field(default_factory=dict)


EMPTY_CART_RESULT = CartDiscountResult()

# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "DiscountType",
    "AppliesTo",
    "BudgetType",
    "Discount",
    "DiscountItem",
    "DiscountContext",
    "CustomerHistory",
    "NO_HISTORY",
    "AppliedDiscount",
    "Calculation",
    "DiscountResult",
    "Candidate",
    "CartDiscountResult",
    "EMPTY_CART_RESULT",
)
