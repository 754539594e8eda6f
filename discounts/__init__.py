"""
discounts — discount and promotion engine for storefronts.

    from discounts import rules as R        # Pure validation and pricing
    from discounts import store as S        # Persistence
    from discounts import engine as E       # Codes and carts against the store
    from discounts import admin as A        # Discount management
"""

from discounts import money
from discounts import rules
from discounts import store
from discounts import cache
from discounts import lift
from discounts import engine
from discounts import admin
from discounts import redemption
from discounts.config import Settings
from discounts._types import (
    Money,
    DiscountId,
    StoreId,
    CustomerId,
    ItemId,
    Clock,
)

__version__ = "0.1.0"

__all__ = (
    "money",
    "rules",
    "store",
    "cache",
    "lift",
    "engine",
    "admin",
    "redemption",
    "Settings",
    "Money",
    "DiscountId",
    "StoreId",
    "CustomerId",
    "ItemId",
    "Clock",
)
