"""
Redemption — counting discount usage when orders are placed.

    redemptions = RedemptionService(engine)
    result = await redemptions.redeem(order)   # safe to retry with the same order id
"""

from discounts.redemption._service import (
    RedemptionErrorKind,
    RedemptionError,
    Redemption,
    RedemptionService,
)

__all__ = (
    "RedemptionErrorKind",
    "RedemptionError",
    "Redemption",
    "RedemptionService",
)
