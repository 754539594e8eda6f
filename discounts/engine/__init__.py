"""
Engine — validates codes and prices carts against the store.

    from discounts.engine import DiscountEngine

    engine = DiscountEngine(store, settings)
    result = await engine.apply_to_cart(context, coupon_code="WELCOME10")
"""

from discounts.engine._types import (
    EngineErrorKind,
    EngineError,
    CartRequest,
    AutoApplyResult,
)
from discounts.engine._history import load_history
from discounts.engine._nodes import (
    RequestNode,
    AutomaticNode,
    CouponNode,
    HistoryNode,
    CandidatesNode,
    CartDiscountNode,
)
from discounts.engine._engine import DiscountEngine, INVALID_CODE, NO_CODE

__all__ = (
    # Types
    "EngineErrorKind",
    "EngineError",
    "CartRequest",
    "AutoApplyResult",
    # Graph
    "RequestNode",
    "AutomaticNode",
    "CouponNode",
    "HistoryNode",
    "CandidatesNode",
    "CartDiscountNode",
    "load_history",
    # Façade
    "DiscountEngine",
    "INVALID_CODE",
    "NO_CODE",
)
