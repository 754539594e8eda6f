"""
DiscountEngine — async façade over rules, store and cache.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from kungfu import LazyCoroResult, Result, Ok, Error

import combinators as C
from discounts import cache as cache_module
from discounts import lift as L
from discounts import rules as R
from discounts._types import Clock, CustomerId, DiscountId, Money, StoreId
from discounts.config import Settings
from discounts.engine._graph import Pipeline
from discounts.engine._history import load_history
from discounts.engine._nodes import CartDiscountNode
from discounts.engine._types import (
    AutoApplyResult,
    CartRequest,
    EngineError,
)
from discounts.rules import (
    Candidate,
    CartDiscountResult,
    Discount,
    DiscountContext,
    DiscountResult,
)
from discounts.store import DiscountStore, StoreError

logger = logging.getLogger(__name__)

INVALID_CODE = "Invalid discount code"
NO_CODE = "No discount code provided"

_pricing = Pipeline.build(CartDiscountNode)


def _automatic_key(store_id: StoreId) -> str:
    return f"automatic:{store_id}"


class DiscountEngine:
    """
    Validates codes and prices carts.

    Example:
        engine = DiscountEngine(store, Settings.from_env())

        match await engine.apply_to_cart(context, coupon_code="SAVE10"):
            case Ok(cart):
                print(cart.total_discount)
            case Error(e):
                print(f"pricing unavailable: {e.message}")
    """

    def __init__(
        self,
        store: DiscountStore,
        settings: Settings | None = None,
        clock: Clock = datetime.now,
    ) -> None:
        self.store = store
        self.settings = settings or Settings()
        self._clock = clock
        self._automatic_cache = None
        if self.settings.auto_cache_ttl is not None:
            self._automatic_cache = (
                cache_module.cache(_automatic_key, self._fetch_automatic)
                .tier(cache_module.LocalTier[list[Discount]](
                    max_size=self.settings.auto_cache_size,
                    ttl=self.settings.auto_cache_ttl,
                ))
                .build()
            )

    # ───────────────────────────────────────────────────────────────────────────
    # Automatic discounts
    # ───────────────────────────────────────────────────────────────────────────

    def _fetch_automatic(self, store_id: StoreId) -> LazyCoroResult[list[Discount], StoreError]:
        return L.deferred(self.store.list_automatic, store_id, self._clock())

    def _automatic(self, store_id: StoreId) -> LazyCoroResult[list[Discount], StoreError]:
        if self._automatic_cache is None:
            return self._fetch_automatic(store_id)
        return self._automatic_cache.get(store_id).map(lambda hit: hit.value)

    async def invalidate(self, store_id: StoreId) -> None:
        """Drop cached automatic discounts of a store after a write."""
        if self._automatic_cache is None:
            return
        match await self._automatic_cache.invalidate(store_id):
            case Error(e):
                logger.warning("Failed to invalidate automatic discounts of %s: %s", store_id, e.message)
            case Ok(_):
                pass

    # ───────────────────────────────────────────────────────────────────────────
    # Single discount
    # ───────────────────────────────────────────────────────────────────────────

    async def apply_code(
        self, code: str, context: DiscountContext
    ) -> Result[DiscountResult, EngineError]:
        """Look up an active code and evaluate it against the cart."""
        match await self.store.find_by_code(context.store_id, code):
            case Error(e):
                return Error(EngineError.from_store(e))
            case Ok(None):
                logger.debug("Unknown code %r for store %s", code, context.store_id)
                return Ok(DiscountResult.invalid(INVALID_CODE))
            case Ok(discount):
                return await self.evaluate(discount, context)

    async def evaluate(
        self, discount: Discount, context: DiscountContext
    ) -> Result[DiscountResult, EngineError]:
        """Evaluate a discount, loading the customer history it needs."""
        match await load_history(self.store, context.customer_id, [discount]):
            case Ok(history):
                return Ok(R.evaluate(
                    discount, context, history, self._clock(), self.settings.currency,
                ))
            case Error(e):
                return Error(EngineError.from_store(e))

    # ───────────────────────────────────────────────────────────────────────────
    # Whole cart
    # ───────────────────────────────────────────────────────────────────────────

    async def apply_to_cart(
        self,
        context: DiscountContext,
        coupon_code: str | None = None,
    ) -> Result[CartDiscountResult, EngineError]:
        """
        Automatic discounts plus the optional coupon, stacked by
        combinability. A coupon that does not apply is silently skipped.
        """
        request = CartRequest(
            context=context,
            coupon_code=coupon_code,
            store=self.store,
            automatic=self._automatic,
            now=self._clock(),
            currency=self.settings.currency,
        )
        node = await _pricing.run(request)
        match node.result:
            case Ok(cart):
                logger.debug(
                    "Priced cart for store %s: %s off via %s",
                    context.store_id,
                    cart.total_discount,
                    [a.code for a in cart.applied_discounts],
                )
        return node.result

    async def _evaluate_all(
        self, discounts: list[Discount], context: DiscountContext
    ) -> Result[list[Candidate], EngineError]:
        match await load_history(self.store, context.customer_id, discounts):
            case Ok(history):
                now = self._clock()
                return Ok([
                    Candidate(d, R.evaluate(d, context, history, now, self.settings.currency))
                    for d in discounts
                ])
            case Error(e):
                return Error(EngineError.from_store(e))

    async def find_best(
        self, codes: Iterable[str], context: DiscountContext
    ) -> Result[DiscountResult, EngineError]:
        """
        Best valid discount among several codes.

        When none applies, the result carries every code's errors,
        each prefixed with its code.
        """
        wanted = list(dict.fromkeys(c.strip().upper() for c in codes if c.strip()))
        if not wanted:
            return Ok(DiscountResult.invalid(NO_CODE))

        lookups = await C.traverse_par(
            wanted,
            lambda code: L.deferred(self.store.find_by_code, context.store_id, code),
        )
        match lookups:
            case Error(e):
                return Error(EngineError.from_store(e))
            case Ok(found):
                pass

        discounts = [d for d in found if d is not None]
        match await self._evaluate_all(discounts, context):
            case Error(e):
                return Error(e)
            case Ok(candidates):
                pass

        best = R.pick_best(candidates)
        if best is not None:
            return Ok(best.result)

        by_code = {c.discount.code: c.result.errors for c in candidates}
        errors = [
            f"{code}: {error}"
            for code in wanted
            for error in by_code.get(code, (INVALID_CODE,))
        ]
        return Ok(DiscountResult.invalid(*errors))

    def _visible_to(self, discount: Discount, customer_id: CustomerId | None) -> bool:
        if not discount.customer_ids or customer_id is None:
            return True
        return customer_id in discount.customer_ids

    async def available_discounts(
        self, store_id: StoreId, customer_id: CustomerId | None = None
    ) -> Result[list[Discount], EngineError]:
        """Live public codes the customer may use, priority ascending."""
        match await self.store.list_public(store_id, self._clock()):
            case Ok(discounts):
                return Ok([d for d in discounts if self._visible_to(d, customer_id)])
            case Error(e):
                return Error(EngineError.from_store(e))

    async def auto_apply(self, context: DiscountContext) -> Result[AutoApplyResult, EngineError]:
        """
        Pick the best public code for the cart and price the cart with it.
        """
        match await self.available_discounts(context.store_id, context.customer_id):
            case Error(e):
                return Error(e)
            case Ok(public):
                pass

        match await self._evaluate_all(public, context):
            case Error(e):
                return Error(e)
            case Ok(candidates):
                pass

        best = R.pick_best(candidates)
        code = best.discount.code if best is not None else None
        match await self.apply_to_cart(context, code):
            case Ok(cart):
                # The code may lose to an exclusive automatic discount.
                if code not in {a.code for a in cart.applied_discounts}:
                    code = None
                return Ok(AutoApplyResult(code=code, cart=cart))
            case Error(e):
                return Error(e)

    # ───────────────────────────────────────────────────────────────────────────
    # Usage
    # ───────────────────────────────────────────────────────────────────────────

    async def increment_usage(
        self, discount_id: DiscountId, order_total: Money | None = None
    ) -> Result[Discount | None, EngineError]:
        """Count one redemption against limits and campaign budget."""
        match await self.store.increment_usage(discount_id, order_total):
            case Ok(None):
                logger.warning("Usage increment for unknown discount %s", discount_id)
                return Ok(None)
            case Ok(discount):
                logger.info(
                    "Discount %s used %d time(s), budget used %s",
                    discount.code,
                    discount.usage_count,
                    discount.budget_used,
                )
                await self.invalidate(discount.store_id)
                return Ok(discount)
            case Error(e):
                return Error(EngineError.from_store(e))


__all__ = ("DiscountEngine", "INVALID_CODE", "NO_CODE")
