"""
Admin — discount management.

    from discounts import admin as A

    service = A.DiscountService(store, on_change=engine.invalidate)
    result = await service.create(store_id, A.DiscountCreate(name="Spring", code="spring25", ...))
"""

from discounts.admin._schemas import DiscountCreate, DiscountUpdate
from discounts.admin._service import (
    DUPLICATE_CODE,
    AdminErrorKind,
    AdminError,
    DiscountService,
)

__all__ = (
    "DiscountCreate",
    "DiscountUpdate",
    "DUPLICATE_CODE",
    "AdminErrorKind",
    "AdminError",
    "DiscountService",
)
