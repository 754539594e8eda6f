"""
Engine types.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum, auto

from kungfu import LazyCoroResult

from discounts._types import StoreId
from discounts.rules import CartDiscountResult, Discount, DiscountContext
from discounts.store import DiscountStore, StoreError

# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════


class EngineErrorKind(Enum):
    STORE = auto()


@dataclass(frozen=True, slots=True)
class EngineError:
    """
    Infrastructure failure while evaluating discounts.

    A rejected code is not an EngineError: validation problems are
    reported inside DiscountResult.errors.
    """

    kind: EngineErrorKind
    message: str
    cause: Exception | None = None

    @classmethod
    def from_store(cls, e: StoreError) -> EngineError:
        return cls(EngineErrorKind.STORE, e.message, e.cause)


# ═══════════════════════════════════════════════════════════════════════════════
# Requests / Results
# ═══════════════════════════════════════════════════════════════════════════════

type AutomaticSource = Callable[[StoreId], LazyCoroResult[list[Discount], StoreError]]


@dataclass(frozen=True, slots=True)
class CartRequest:
    """Graph input for pricing one cart."""

    context: DiscountContext
    coupon_code: str | None
    store: DiscountStore
    automatic: AutomaticSource
    now: datetime
    currency: str = "USD"


@dataclass(frozen=True, slots=True)
class AutoApplyResult:
    """Cart pricing with the public code picked on the customer's behalf."""

    code: str | None
    cart: CartDiscountResult


__all__ = (
    "EngineErrorKind",
    "EngineError",
    "AutomaticSource",
    "CartRequest",
    "AutoApplyResult",
)
