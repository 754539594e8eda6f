"""
Discount store — typed storage protocol.

All methods return Result for explicit error handling.
Missing records are Ok(None), never an error.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Protocol

from kungfu import Result, Ok, Error

from discounts import money as M
from discounts._types import CustomerId, DiscountId, Money, StoreId
from discounts.rules import BudgetType, Discount, is_live
from discounts.store._types import DiscountFilters, Order, OrderStatus, Page, Redemption

# ═══════════════════════════════════════════════════════════════════════════════
# Store Error
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class StoreError:
    """Storage operation error."""

    message: str
    cause: Exception | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Store Protocol — Result-based
# ═══════════════════════════════════════════════════════════════════════════════


class DiscountStore(Protocol):
    """
    Persistence for discounts and the orders that redeem them.

    Codes are stored upper-case; lookups are case-insensitive.
    """

    async def get(self, discount_id: DiscountId) -> Result[Discount | None, StoreError]:
        ...

    async def find_by_code(
        self,
        store_id: StoreId,
        code: str,
        *,
        active_only: bool = True,
    ) -> Result[Discount | None, StoreError]:
        ...

    async def list_automatic(
        self, store_id: StoreId, now: datetime
    ) -> Result[list[Discount], StoreError]:
        """Live automatic discounts, priority ascending."""
        ...

    async def list_public(
        self, store_id: StoreId, now: datetime
    ) -> Result[list[Discount], StoreError]:
        """Live public code discounts (not automatic), priority ascending."""
        ...

    async def query(self, filters: DiscountFilters) -> Result[Page[Discount], StoreError]:
        """Filtered listing, newest first."""
        ...

    async def add(self, discount: Discount) -> Result[Discount, StoreError]:
        ...

    async def save(self, discount: Discount) -> Result[Discount, StoreError]:
        ...

    async def delete(self, discount_id: DiscountId) -> Result[bool, StoreError]:
        """Returns Ok(True) if existed."""
        ...

    async def customer_usage_count(
        self, discount_id: DiscountId, customer_id: CustomerId
    ) -> Result[int, StoreError]:
        """Non-cancelled orders of the customer that used the discount."""
        ...

    async def customer_has_orders(self, customer_id: CustomerId) -> Result[bool, StoreError]:
        ...

    async def get_order(self, order_id: str) -> Result[Order | None, StoreError]:
        ...

    async def add_order(self, order: Order) -> Result[bool, StoreError]:
        """Insert once. Ok(False) if an order with the same id exists."""
        ...

    async def redeem_order(self, order: Order) -> Result[Redemption, StoreError]:
        """
        Insert the order and count its discount in one step.

        Either both happen or neither does. A known order id returns the
        stored order with recorded=False and counts nothing. The discount is
        counted only when it belongs to the order's store.
        """
        ...

    async def set_order_status(
        self, order_id: str, status: OrderStatus
    ) -> Result[bool, StoreError]:
        ...

    async def increment_usage(
        self, discount_id: DiscountId, order_total: Money | None = None
    ) -> Result[Discount | None, StoreError]:
        """
        Count one redemption.

        usage_count += 1; a usage budget grows by 1, a spend budget
        by order_total.
        """
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# Shared predicates
# ═══════════════════════════════════════════════════════════════════════════════


def matches(discount: Discount, filters: DiscountFilters) -> bool:
    if discount.store_id != filters.store_id:
        return False
    if filters.is_active is not None and discount.is_active != filters.is_active:
        return False
    if filters.type is not None and discount.type != filters.type:
        return False
    if filters.search:
        needle = filters.search.lower()
        if needle not in discount.name.lower() and needle not in discount.code.lower():
            return False
    if filters.starts_after is not None:
        if discount.starts_at is None or discount.starts_at < filters.starts_after:
            return False
    if filters.ends_before is not None:
        if discount.ends_at is None or discount.ends_at > filters.ends_before:
            return False
    return True


def with_usage(discount: Discount, order_total: Money | None) -> Discount:
    budget_used = discount.budget_used
    match discount.budget_type:
        case BudgetType.USAGE:
            budget_used = M.add(budget_used, M.to_money(1))
        case BudgetType.SPEND if order_total:
            budget_used = M.add(budget_used, order_total)
    return replace(
        discount,
        usage_count=discount.usage_count + 1,
        budget_used=budget_used,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Memory Store — For Testing
# ═══════════════════════════════════════════════════════════════════════════════


class MemoryStore:
    """
    In-memory discount store.

    Note: single process only, data does not survive a restart.
    """

    def __init__(self, discounts: list[Discount] | None = None) -> None:
        self._discounts: dict[DiscountId, Discount] = {d.id: d for d in discounts or ()}
        self._orders: dict[str, Order] = {}
        self._lock = asyncio.Lock()

    async def get(self, discount_id: DiscountId) -> Result[Discount | None, StoreError]:
        return Ok(self._discounts.get(discount_id))

    async def find_by_code(
        self,
        store_id: StoreId,
        code: str,
        *,
        active_only: bool = True,
    ) -> Result[Discount | None, StoreError]:
        wanted = code.strip().upper()
        for d in self._discounts.values():
            if d.store_id == store_id and d.code == wanted:
                if active_only and not d.is_active:
                    return Ok(None)
                return Ok(d)
        return Ok(None)

    async def list_automatic(
        self, store_id: StoreId, now: datetime
    ) -> Result[list[Discount], StoreError]:
        found = [
            d for d in self._discounts.values()
            if d.store_id == store_id and d.is_automatic and is_live(d, now)
        ]
        return Ok(sorted(found, key=lambda d: d.priority))

    async def list_public(
        self, store_id: StoreId, now: datetime
    ) -> Result[list[Discount], StoreError]:
        found = [
            d for d in self._discounts.values()
            if d.store_id == store_id
            and d.is_public
            and not d.is_automatic
            and is_live(d, now)
        ]
        return Ok(sorted(found, key=lambda d: d.priority))

    async def query(self, filters: DiscountFilters) -> Result[Page[Discount], StoreError]:
        found = [d for d in self._discounts.values() if matches(d, filters)]
        found.sort(key=lambda d: (d.created_at or datetime.min, d.id), reverse=True)
        window = found[filters.offset:filters.offset + filters.limit]
        return Ok(Page(tuple(window), len(found), filters.page, filters.limit))

    async def add(self, discount: Discount) -> Result[Discount, StoreError]:
        async with self._lock:
            if discount.id in self._discounts:
                return Error(StoreError(f"Discount already exists: {discount.id}"))
            for d in self._discounts.values():
                if d.store_id == discount.store_id and d.code == discount.code:
                    return Error(StoreError(f"Duplicate code: {discount.code}"))
            self._discounts[discount.id] = discount
            return Ok(discount)

    async def save(self, discount: Discount) -> Result[Discount, StoreError]:
        async with self._lock:
            if discount.id not in self._discounts:
                return Error(StoreError(f"Discount not found: {discount.id}"))
            self._discounts[discount.id] = discount
            return Ok(discount)

    async def delete(self, discount_id: DiscountId) -> Result[bool, StoreError]:
        async with self._lock:
            return Ok(self._discounts.pop(discount_id, None) is not None)

    async def customer_usage_count(
        self, discount_id: DiscountId, customer_id: CustomerId
    ) -> Result[int, StoreError]:
        return Ok(sum(
            1 for o in self._orders.values()
            if o.customer_id == customer_id
            and o.discount_id == discount_id
            and o.status is not OrderStatus.CANCELLED
        ))

    async def customer_has_orders(self, customer_id: CustomerId) -> Result[bool, StoreError]:
        return Ok(any(
            o.customer_id == customer_id and o.status is not OrderStatus.CANCELLED
            for o in self._orders.values()
        ))

    async def get_order(self, order_id: str) -> Result[Order | None, StoreError]:
        return Ok(self._orders.get(order_id))

    async def add_order(self, order: Order) -> Result[bool, StoreError]:
        async with self._lock:
            if order.id in self._orders:
                return Ok(False)
            self._orders[order.id] = order
            return Ok(True)

    async def redeem_order(self, order: Order) -> Result[Redemption, StoreError]:
        async with self._lock:
            existing = self._orders.get(order.id)
            if existing is not None:
                return Ok(Redemption(existing, recorded=False))
            discount = self._discounts.get(order.discount_id) if order.discount_id else None
            if discount is not None and discount.store_id == order.store_id:
                discount = with_usage(discount, order.total)
                self._discounts[discount.id] = discount
            else:
                discount = None
            self._orders[order.id] = order
            return Ok(Redemption(order, recorded=True, discount=discount))

    async def set_order_status(
        self, order_id: str, status: OrderStatus
    ) -> Result[bool, StoreError]:
        async with self._lock:
            order = self._orders.get(order_id)
            if order is None:
                return Ok(False)
            self._orders[order_id] = replace(order, status=status)
            return Ok(True)

    async def increment_usage(
        self, discount_id: DiscountId, order_total: Money | None = None
    ) -> Result[Discount | None, StoreError]:
        async with self._lock:
            discount = self._discounts.get(discount_id)
            if discount is None:
                return Ok(None)
            updated = with_usage(discount, order_total)
            self._discounts[discount_id] = updated
            return Ok(updated)


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "StoreError",
    "DiscountStore",
    "MemoryStore",
    "matches",
    "with_usage",
)
