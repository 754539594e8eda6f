"""
Rules — pure discount evaluation.

No I/O: everything a rule needs (cart, customer history, now) is passed in.

    from discounts import rules as R

    result = R.evaluate(discount, context, history, now)
    cart = R.resolve(R.rank(candidates))
"""

from discounts.rules._types import (
    DiscountType,
    AppliesTo,
    BudgetType,
    Discount,
    DiscountItem,
    DiscountContext,
    CustomerHistory,
    NO_HISTORY,
    AppliedDiscount,
    Calculation,
    DiscountResult,
    Candidate,
    CartDiscountResult,
    EMPTY_CART_RESULT,
)
from discounts.rules._validate import eligible_items, validate, is_live
from discounts.rules._calculate import distribute, calculate, evaluate
from discounts.rules._resolve import rank, resolve, pick_best

__all__ = (
    # Types
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
    # Operations
    "eligible_items",
    "validate",
    "is_live",
    "distribute",
    "calculate",
    "evaluate",
    "rank",
    "resolve",
    "pick_best",
)
