"""
RedemptionService — records orders and counts their discount exactly once.

The order id is the idempotency key: a retried redeem finds the order
already recorded and leaves the counters alone.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum, auto

from kungfu import Result, Ok, Error

from discounts._types import Clock, StoreId
from discounts.engine import DiscountEngine
from discounts.store import Order, OrderStatus, Redemption, StoreError

logger = logging.getLogger(__name__)


class RedemptionErrorKind(Enum):
    NOT_FOUND = auto()
    STORE = auto()


@dataclass(frozen=True, slots=True)
class RedemptionError:
    kind: RedemptionErrorKind
    message: str
    cause: Exception | None = None

    @classmethod
    def from_store(cls, e: StoreError) -> RedemptionError:
        return cls(RedemptionErrorKind.STORE, e.message, e.cause)


class RedemptionService:
    def __init__(
        self,
        engine: DiscountEngine,
        clock: Clock = datetime.now,
    ) -> None:
        self.engine = engine
        self.store = engine.store
        self._clock = clock

    async def redeem(self, order: Order) -> Result[Redemption, RedemptionError]:
        """
        Record the order and count its discount together.

        The store does both in one step, so a failed redeem can be retried
        with the same order and is counted exactly once. Orders and discounts
        of another store are NOT_FOUND.
        """
        if order.created_at is None:
            order = replace(order, created_at=self._clock())
        if order.discount_code is not None:
            order = replace(order, discount_code=order.discount_code.upper())

        match await self.store.get_order(order.id):
            case Error(e):
                return Error(RedemptionError.from_store(e))
            case Ok(None):
                pass
            case Ok(existing) if existing.store_id != order.store_id:
                return Error(_not_found("Order", order.id))
            case Ok(existing):
                logger.info("Order %s already redeemed, skipping usage count", order.id)
                return Ok(Redemption(order=existing, recorded=False))

        if order.discount_id is not None:
            match await self.store.get(order.discount_id):
                case Error(e):
                    return Error(RedemptionError.from_store(e))
                case Ok(discount) if discount is None or discount.store_id != order.store_id:
                    return Error(_not_found("Discount", order.discount_id))
                case Ok(_):
                    pass

        match await self.store.redeem_order(order):
            case Error(e):
                logger.error("Failed to redeem order %s: %s", order.id, e.message)
                return Error(RedemptionError.from_store(e))
            case Ok(redemption) if redemption.order.store_id != order.store_id:
                return Error(_not_found("Order", order.id))
            case Ok(redemption):
                if redemption.discount is not None:
                    logger.info("Order %s redeemed %s", order.id, redemption.discount.code)
                    await self.engine.invalidate(order.store_id)
                return Ok(redemption)

    async def cancel(self, store_id: StoreId, order_id: str) -> Result[Order, RedemptionError]:
        """
        Mark the store's order cancelled.

        It stops counting toward per-customer limits and first-order checks.
        usage_count and campaign budgets are not rolled back.
        """
        match await self.store.get_order(order_id):
            case Error(e):
                return Error(RedemptionError.from_store(e))
            case Ok(found) if found is None or found.store_id != store_id:
                return Error(_not_found("Order", order_id))
            case Ok(found):
                order = found

        match await self.store.set_order_status(order_id, OrderStatus.CANCELLED):
            case Error(e):
                return Error(RedemptionError.from_store(e))
            case Ok(False):
                return Error(_not_found("Order", order_id))
            case Ok(True):
                logger.info("Order %s cancelled", order_id)
                return Ok(replace(order, status=OrderStatus.CANCELLED))


def _not_found(what: str, id: str) -> RedemptionError:
    return RedemptionError(RedemptionErrorKind.NOT_FOUND, f"{what} not found: {id}")


__all__ = (
    "RedemptionErrorKind",
    "RedemptionError",
    "Redemption",
    "RedemptionService",
)
