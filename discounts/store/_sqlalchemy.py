"""
SQLAlchemy integration — discounts and orders tables, async store.

Usage:
    session_factory, engine = await create_database("sqlite+aiosqlite:///shop.db")
    store = SQLAlchemyStore(session_factory)

    match await store.find_by_code(store_id, "save10"):
        case Ok(discount): ...
        case Error(e): ...
"""

import logging
from dataclasses import fields
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    case,
    func,
    or_,
    select,
    update,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from kungfu import Result, Ok, Error

from discounts import money as M
from discounts._types import CustomerId, DiscountId, Money, StoreId
from discounts.rules import AppliesTo, BudgetType, Discount, DiscountType
from discounts.store._store import StoreError
from discounts.store._types import DiscountFilters, Order, OrderStatus, Page, Redemption

logger = logging.getLogger(__name__)

MONEY = Numeric(12, 2)

# ═══════════════════════════════════════════════════════════════════════════════
# Base
# ═══════════════════════════════════════════════════════════════════════════════


class Base(DeclarativeBase):
    pass


# ═══════════════════════════════════════════════════════════════════════════════
# Discounts Table
# ═══════════════════════════════════════════════════════════════════════════════


class DiscountTable(Base):
    __tablename__ = "discounts"
    __table_args__ = (
        UniqueConstraint("store_id", "code", name="uq_discounts_store_code"),
        Index("ix_discounts_store_active", "store_id", "is_active"),
        Index("ix_discounts_window", "starts_at", "ends_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    store_id: Mapped[str] = mapped_column(String(36), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    value: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=0)
    applies_to: Mapped[str] = mapped_column(String(30), nullable=False, default="all")

    # Targeting
    product_ids: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    category_ids: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    customer_ids: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    customer_group_ids: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    region_ids: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)

    # Limits
    minimum_order_amount: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    maximum_order_amount: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    minimum_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    maximum_discount_amount: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    usage_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    usage_limit_per_customer: Mapped[int | None] = mapped_column(Integer, nullable=True)
    usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Flags
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    first_order_only: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_automatic: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_combinable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Window
    starts_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    ends_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Buy X get Y
    buy_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    get_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    get_discount_percentage: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)

    # Campaign
    campaign_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    budget_type: Mapped[str | None] = mapped_column(String(10), nullable=True)
    budget_limit: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    budget_used: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=0)

    created_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


# ═══════════════════════════════════════════════════════════════════════════════
# Orders Table
# ═══════════════════════════════════════════════════════════════════════════════


class OrderTable(Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    store_id: Mapped[str] = mapped_column(String(36), nullable=False)
    customer_id: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    discount_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    discount_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    discount_amount: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    total: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    created_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


# ═══════════════════════════════════════════════════════════════════════════════
# Row <-> Domain
# ═══════════════════════════════════════════════════════════════════════════════


def _column_value(value: object) -> object:
    if isinstance(value, tuple):
        return list(value)
    if isinstance(value, Enum):
        return value.value
    return value


def _row_values(discount: Discount) -> dict[str, Any]:
    return {f.name: _column_value(getattr(discount, f.name)) for f in fields(Discount)}


def _ids(value: list[str] | None) -> tuple[str, ...] | None:
    return tuple(value) if value is not None else None


def _money(value: Decimal | None) -> Money | None:
    return M.to_money(value) if value is not None else None


def _to_domain(row: DiscountTable) -> Discount:
    return Discount(
        id=row.id,
        store_id=row.store_id,
        name=row.name,
        code=row.code,
        type=DiscountType(row.type),
        value=M.to_money(row.value),
        applies_to=AppliesTo(row.applies_to),
        product_ids=_ids(row.product_ids),
        category_ids=_ids(row.category_ids),
        customer_ids=_ids(row.customer_ids),
        minimum_order_amount=_money(row.minimum_order_amount),
        maximum_order_amount=_money(row.maximum_order_amount),
        minimum_quantity=row.minimum_quantity,
        maximum_discount_amount=_money(row.maximum_discount_amount),
        usage_limit=row.usage_limit,
        usage_limit_per_customer=row.usage_limit_per_customer,
        usage_count=row.usage_count,
        is_active=row.is_active,
        is_public=row.is_public,
        first_order_only=row.first_order_only,
        starts_at=row.starts_at,
        ends_at=row.ends_at,
        buy_quantity=row.buy_quantity,
        get_quantity=row.get_quantity,
        get_discount_percentage=row.get_discount_percentage,
        is_automatic=row.is_automatic,
        priority=row.priority,
        is_combinable=row.is_combinable,
        campaign_name=row.campaign_name,
        budget_type=BudgetType(row.budget_type) if row.budget_type else None,
        budget_limit=_money(row.budget_limit),
        budget_used=M.to_money(row.budget_used),
        customer_group_ids=_ids(row.customer_group_ids),
        region_ids=_ids(row.region_ids),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _order_to_domain(row: OrderTable) -> Order:
    return Order(
        id=row.id,
        store_id=row.store_id,
        total=M.to_money(row.total),
        customer_id=row.customer_id,
        discount_id=row.discount_id,
        discount_code=row.discount_code,
        discount_amount=_money(row.discount_amount),
        status=OrderStatus(row.status),
        created_at=row.created_at,
    )


def _order_row(order: Order) -> OrderTable:
    return OrderTable(
        id=order.id,
        store_id=order.store_id,
        customer_id=order.customer_id,
        discount_id=order.discount_id,
        discount_code=order.discount_code,
        discount_amount=order.discount_amount,
        total=order.total,
        status=order.status.value,
        created_at=order.created_at,
    )


def _usage_update(discount_id: DiscountId, order_total: Money | None) -> Any:
    """Single UPDATE so concurrent redemptions never lose a count."""
    spend = order_total or M.ZERO
    return (
        update(DiscountTable)
        .where(DiscountTable.id == discount_id)
        .values(
            usage_count=DiscountTable.usage_count + 1,
            budget_used=case(
                (DiscountTable.budget_type == BudgetType.USAGE.value,
                 DiscountTable.budget_used + 1),
                (DiscountTable.budget_type == BudgetType.SPEND.value,
                 DiscountTable.budget_used + spend),
                else_=DiscountTable.budget_used,
            ),
        )
    )


def _live(now: datetime) -> tuple[Any, ...]:
    return (
        DiscountTable.is_active.is_(True),
        or_(DiscountTable.starts_at.is_(None), DiscountTable.starts_at <= now),
        or_(DiscountTable.ends_at.is_(None), DiscountTable.ends_at >= now),
        or_(
            DiscountTable.usage_limit.is_(None),
            DiscountTable.usage_limit == 0,
            DiscountTable.usage_count < DiscountTable.usage_limit,
        ),
    )


def _filters(f: DiscountFilters) -> list[Any]:
    conditions: list[Any] = [DiscountTable.store_id == f.store_id]
    if f.is_active is not None:
        conditions.append(DiscountTable.is_active.is_(f.is_active))
    if f.type is not None:
        conditions.append(DiscountTable.type == f.type.value)
    if f.search:
        pattern = f"%{f.search}%"
        conditions.append(
            or_(DiscountTable.name.ilike(pattern), DiscountTable.code.ilike(pattern))
        )
    if f.starts_after is not None:
        conditions.append(DiscountTable.starts_at >= f.starts_after)
    if f.ends_before is not None:
        conditions.append(DiscountTable.ends_at <= f.ends_before)
    return conditions


# ═══════════════════════════════════════════════════════════════════════════════
# SQLAlchemy Store
# ═══════════════════════════════════════════════════════════════════════════════


class SQLAlchemyStore:
    """
    DiscountStore over an async session factory.

    Each call opens its own session and commits before returning.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, discount_id: DiscountId) -> Result[Discount | None, StoreError]:
        try:
            async with self._session_factory() as session:
                row = await session.get(DiscountTable, discount_id)
                return Ok(_to_domain(row) if row is not None else None)
        except Exception as e:
            return Error(_failed("get discount", e))

    async def find_by_code(
        self,
        store_id: StoreId,
        code: str,
        *,
        active_only: bool = True,
    ) -> Result[Discount | None, StoreError]:
        stmt = select(DiscountTable).where(
            DiscountTable.store_id == store_id,
            DiscountTable.code == code.strip().upper(),
        )
        if active_only:
            stmt = stmt.where(DiscountTable.is_active.is_(True))
        try:
            async with self._session_factory() as session:
                row = (await session.execute(stmt)).scalar_one_or_none()
                return Ok(_to_domain(row) if row is not None else None)
        except Exception as e:
            return Error(_failed("find discount by code", e))

    async def list_automatic(
        self, store_id: StoreId, now: datetime
    ) -> Result[list[Discount], StoreError]:
        stmt = (
            select(DiscountTable)
            .where(
                DiscountTable.store_id == store_id,
                DiscountTable.is_automatic.is_(True),
                *_live(now),
            )
            .order_by(DiscountTable.priority.asc())
        )
        return await self._list(stmt, "list automatic discounts")

    async def list_public(
        self, store_id: StoreId, now: datetime
    ) -> Result[list[Discount], StoreError]:
        stmt = (
            select(DiscountTable)
            .where(
                DiscountTable.store_id == store_id,
                DiscountTable.is_public.is_(True),
                DiscountTable.is_automatic.is_(False),
                *_live(now),
            )
            .order_by(DiscountTable.priority.asc())
        )
        return await self._list(stmt, "list public discounts")

    async def query(self, filters: DiscountFilters) -> Result[Page[Discount], StoreError]:
        base = select(DiscountTable).where(*_filters(filters))
        try:
            async with self._session_factory() as session:
                total = await session.scalar(
                    select(func.count()).select_from(base.subquery())
                )
                rows = await session.scalars(
                    base.order_by(DiscountTable.created_at.desc(), DiscountTable.id.desc())
                    .offset(filters.offset)
                    .limit(filters.limit)
                )
                return Ok(Page(
                    items=tuple(_to_domain(r) for r in rows),
                    total=total or 0,
                    page=filters.page,
                    limit=filters.limit,
                ))
        except Exception as e:
            return Error(_failed("query discounts", e))

    async def add(self, discount: Discount) -> Result[Discount, StoreError]:
        try:
            async with self._session_factory() as session:
                session.add(DiscountTable(**_row_values(discount)))
                await session.commit()
                return Ok(discount)
        except IntegrityError as e:
            return Error(StoreError(f"Duplicate code: {discount.code}", e))
        except Exception as e:
            return Error(_failed("add discount", e))

    async def save(self, discount: Discount) -> Result[Discount, StoreError]:
        try:
            async with self._session_factory() as session:
                row = await session.get(DiscountTable, discount.id)
                if row is None:
                    return Error(StoreError(f"Discount not found: {discount.id}"))
                for name, value in _row_values(discount).items():
                    setattr(row, name, value)
                await session.commit()
                return Ok(discount)
        except IntegrityError as e:
            return Error(StoreError(f"Duplicate code: {discount.code}", e))
        except Exception as e:
            return Error(_failed("save discount", e))

    async def delete(self, discount_id: DiscountId) -> Result[bool, StoreError]:
        try:
            async with self._session_factory() as session:
                row = await session.get(DiscountTable, discount_id)
                if row is None:
                    return Ok(False)
                await session.delete(row)
                await session.commit()
                return Ok(True)
        except Exception as e:
            return Error(_failed("delete discount", e))

    async def customer_usage_count(
        self, discount_id: DiscountId, customer_id: CustomerId
    ) -> Result[int, StoreError]:
        stmt = select(func.count(OrderTable.id)).where(
            OrderTable.customer_id == customer_id,
            OrderTable.discount_id == discount_id,
            OrderTable.status != OrderStatus.CANCELLED.value,
        )
        try:
            async with self._session_factory() as session:
                return Ok(await session.scalar(stmt) or 0)
        except Exception as e:
            return Error(_failed("count customer usage", e))

    async def customer_has_orders(self, customer_id: CustomerId) -> Result[bool, StoreError]:
        stmt = (
            select(OrderTable.id)
            .where(
                OrderTable.customer_id == customer_id,
                OrderTable.status != OrderStatus.CANCELLED.value,
            )
            .limit(1)
        )
        try:
            async with self._session_factory() as session:
                return Ok(await session.scalar(stmt) is not None)
        except Exception as e:
            return Error(_failed("check customer orders", e))

    async def get_order(self, order_id: str) -> Result[Order | None, StoreError]:
        try:
            async with self._session_factory() as session:
                row = await session.get(OrderTable, order_id)
                return Ok(_order_to_domain(row) if row is not None else None)
        except Exception as e:
            return Error(_failed("get order", e))

    async def add_order(self, order: Order) -> Result[bool, StoreError]:
        try:
            async with self._session_factory() as session:
                if await session.get(OrderTable, order.id) is not None:
                    return Ok(False)
                session.add(_order_row(order))
                await session.commit()
                return Ok(True)
        except IntegrityError:
            # Lost the race to a concurrent insert of the same order.
            return Ok(False)
        except Exception as e:
            return Error(_failed("add order", e))

    async def redeem_order(self, order: Order) -> Result[Redemption, StoreError]:
        try:
            async with self._session_factory() as session:
                existing = await session.get(OrderTable, order.id)
                if existing is not None:
                    return Ok(Redemption(_order_to_domain(existing), recorded=False))
                session.add(_order_row(order))
                discount_id = order.discount_id
                counted = discount_id is not None and await self._count_usage(
                    session, discount_id, order,
                )
                await session.commit()
                if discount_id is None or not counted:
                    return Ok(Redemption(order, recorded=True))
                row = await session.get(DiscountTable, discount_id, populate_existing=True)
                return Ok(Redemption(
                    order,
                    recorded=True,
                    discount=_to_domain(row) if row is not None else None,
                ))
        except IntegrityError:
            # Lost the race to a concurrent redeem of the same order.
            match await self.get_order(order.id):
                case Ok(existing):
                    return Ok(Redemption(existing or order, recorded=False))
                case Error(e):
                    return Error(e)
        except Exception as e:
            return Error(_failed("redeem order", e))

    async def _count_usage(
        self, session: AsyncSession, discount_id: DiscountId, order: Order
    ) -> bool:
        """Count inside the caller's transaction. False if the discount is not in the order's store."""
        result = await session.execute(
            _usage_update(discount_id, order.total)
            .where(DiscountTable.store_id == order.store_id)
        )
        return result.rowcount > 0

    async def set_order_status(
        self, order_id: str, status: OrderStatus
    ) -> Result[bool, StoreError]:
        try:
            async with self._session_factory() as session:
                row = await session.get(OrderTable, order_id)
                if row is None:
                    return Ok(False)
                row.status = status.value
                await session.commit()
                return Ok(True)
        except Exception as e:
            return Error(_failed("set order status", e))

    async def increment_usage(
        self, discount_id: DiscountId, order_total: Money | None = None
    ) -> Result[Discount | None, StoreError]:
        try:
            async with self._session_factory() as session:
                await session.execute(_usage_update(discount_id, order_total))
                await session.commit()
                row = await session.get(DiscountTable, discount_id, populate_existing=True)
                return Ok(_to_domain(row) if row is not None else None)
        except Exception as e:
            return Error(_failed("increment usage", e))

    async def _list(self, stmt: Any, action: str) -> Result[list[Discount], StoreError]:
        try:
            async with self._session_factory() as session:
                rows = await session.scalars(stmt)
                return Ok([_to_domain(r) for r in rows])
        except Exception as e:
            return Error(_failed(action, e))


def _failed(action: str, e: Exception) -> StoreError:
    logger.warning("Failed to %s: %s", action, e)
    return StoreError(f"Failed to {action}: {e}", e)


# ═══════════════════════════════════════════════════════════════════════════════
# Database Setup
# ═══════════════════════════════════════════════════════════════════════════════


async def create_database(
    url: str = "sqlite+aiosqlite:///:memory:",
) -> tuple[async_sessionmaker[AsyncSession], AsyncEngine]:
    """Create schema and return (session_factory, engine)."""
    engine = create_async_engine(url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    return async_sessionmaker(engine, expire_on_commit=False), engine


__all__ = (
    "Base",
    "DiscountTable",
    "OrderTable",
    "SQLAlchemyStore",
    "create_database",
)
