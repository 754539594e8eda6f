"""
Store — persistence for discounts and redeeming orders.

    from discounts import store as S

    session_factory, engine = await S.create_database(url)
    discounts = S.SQLAlchemyStore(session_factory)

    # or, in tests
    discounts = S.MemoryStore([discount])
"""

from discounts.store._types import OrderStatus, Order, Redemption, DiscountFilters, Page
from discounts.store._store import StoreError, DiscountStore, MemoryStore
from discounts.store._sqlalchemy import (
    Base,
    DiscountTable,
    OrderTable,
    SQLAlchemyStore,
    create_database,
)

__all__ = (
    # Types
    "OrderStatus",
    "Order",
    "Redemption",
    "DiscountFilters",
    "Page",
    # Protocol
    "StoreError",
    "DiscountStore",
    # Implementations
    "MemoryStore",
    "SQLAlchemyStore",
    "Base",
    "DiscountTable",
    "OrderTable",
    "create_database",
)
