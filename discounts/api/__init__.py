"""
API — FastAPI application for storefront and admin clients.

    from discounts.api import create_app

    app = create_app(engine, service, redemptions)
"""

from discounts.api._codecs import (
    ItemIn,
    CartIn,
    ValidateIn,
    PriceIn,
    BestIn,
    OrderIn,
    AppliedOut,
    DiscountResultOut,
    CartDiscountOut,
    AutoApplyOut,
    DiscountOut,
    PublicDiscountOut,
    DiscountPageOut,
    OrderOut,
    RedemptionOut,
)
from discounts.api._app import ApiError, create_app, app_from_settings

__all__ = (
    # Inbound
    "ItemIn",
    "CartIn",
    "ValidateIn",
    "PriceIn",
    "BestIn",
    "OrderIn",
    # Outbound
    "AppliedOut",
    "DiscountResultOut",
    "CartDiscountOut",
    "AutoApplyOut",
    "DiscountOut",
    "PublicDiscountOut",
    "DiscountPageOut",
    "OrderOut",
    "RedemptionOut",
    # Application
    "ApiError",
    "create_app",
    "app_from_settings",
)
