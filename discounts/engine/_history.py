"""
History — the customer's prior orders, loaded once per evaluation.

Only what the candidate discounts actually check is queried.
"""

from __future__ import annotations

from collections.abc import Sequence

from kungfu import LazyCoroResult, Result, Ok, Error

import combinators as C
from discounts import lift as L
from discounts import money as M
from discounts._types import CustomerId
from discounts.rules import CustomerHistory, Discount, NO_HISTORY
from discounts.store import DiscountStore, StoreError


def load_history(
    store: DiscountStore,
    customer_id: CustomerId | None,
    discounts: Sequence[Discount],
) -> LazyCoroResult[CustomerHistory, StoreError]:
    """
    Usage counts for per-customer-limited discounts and the
    has-orders flag for first-order-only ones, fetched in parallel.
    """
    limited = list(dict.fromkeys(
        d.id for d in discounts if M.is_set(d.usage_limit_per_customer)
    ))
    needs_orders = any(d.first_order_only for d in discounts)

    if not customer_id or (not limited and not needs_orders):
        return L.pure(NO_HISTORY)

    counts = C.traverse_par(
        limited,
        lambda discount_id: L.deferred(store.customer_usage_count, discount_id, customer_id),
    ) if limited else L.pure([])
    has_orders = (
        L.deferred(store.customer_has_orders, customer_id)
        if needs_orders
        else L.pure(False)
    )

    async def impl() -> Result[CustomerHistory, StoreError]:
        match await C.parallel(counts, has_orders):
            case Ok(values):
                usage, ordered = values
                return Ok(CustomerHistory(
                    usage=dict(zip(limited, usage)),
                    has_orders=bool(ordered),
                ))
            case Error(e):
                return Error(e)

    return LazyCoroResult(impl)


__all__ = ("load_history",)
