"""
Store types — orders, query filters, pages.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from discounts._types import CustomerId, DiscountId, Money, StoreId
from discounts.rules import Discount, DiscountType

# ═══════════════════════════════════════════════════════════════════════════════
# Orders
# ═══════════════════════════════════════════════════════════════════════════════


class OrderStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    PAID = "paid"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


@dataclass(frozen=True, slots=True)
class Order:
    """
    The slice of an order the discount engine cares about.

    Non-cancelled orders count toward per-customer limits and
    first-order checks.
    """

    id: str
    store_id: StoreId
    total: Money
    customer_id: CustomerId | None = None
    discount_id: DiscountId | None = None
    discount_code: str | None = None
    discount_amount: Money | None = None
    status: OrderStatus = OrderStatus.PENDING
    created_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class Redemption:
    """
    Outcome of redeeming an order.

    recorded is False when the order was already known (a retry);
    discount is the discount after its usage was counted.
    """

    order: Order
    recorded: bool
    discount: Discount | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Queries
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class DiscountFilters:
    """
    Admin listing filters.

    search matches name or code, case-insensitive.
    """

    store_id: StoreId
    is_active: bool | None = None
    type: DiscountType | None = None
    search: str | None = None
    starts_after: datetime | None = None
    ends_before: datetime | None = None
    page: int = 1
    limit: int = 20

    @property
    def offset(self) -> int:
        return (max(self.page, 1) - 1) * self.limit


@dataclass(frozen=True, slots=True)
class Page[T]:
    items: tuple[T, ...]
    total: int
    page: int
    limit: int

    @property
    def last_page(self) -> int:
        if self.limit <= 0:
            return 1
        return max(1, -(-self.total // self.limit))


__all__ = ("OrderStatus", "Order", "Redemption", "DiscountFilters", "Page")
