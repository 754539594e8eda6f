"""
Wire models — pydantic request/response bodies and their domain codecs.

Inbound models expose to_domain(), outbound ones from_domain().
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from discounts import money as M
from discounts.engine import AutoApplyResult
from discounts.redemption import Redemption
from discounts.rules import (
    AppliedDiscount,
    AppliesTo,
    BudgetType,
    CartDiscountResult,
    Discount,
    DiscountContext,
    DiscountItem,
    DiscountResult,
    DiscountType,
)
from discounts.store import Order, OrderStatus, Page

Amount = Annotated[Decimal, Field(ge=0)]

# ═══════════════════════════════════════════════════════════════════════════════
# Inbound
# ═══════════════════════════════════════════════════════════════════════════════


class ItemIn(BaseModel):
    id: str
    product_id: str
    variant_id: str | None = None
    category_ids: list[str] = []
    collection_ids: list[str] = []
    quantity: Annotated[int, Field(ge=1)]
    unit_price: Amount
    total_price: Amount | None = None

    def to_domain(self) -> DiscountItem:
        unit_price = M.to_money(self.unit_price)
        total_price = (
            M.to_money(self.total_price)
            if self.total_price is not None
            else M.round_money(unit_price * self.quantity)
        )
        return DiscountItem(
            id=self.id,
            product_id=self.product_id,
            variant_id=self.variant_id,
            category_ids=tuple(self.category_ids),
            collection_ids=tuple(self.collection_ids),
            quantity=self.quantity,
            unit_price=unit_price,
            total_price=total_price,
        )


class CartIn(BaseModel):
    """Cart snapshot. subtotal defaults to the sum of item totals."""

    customer_id: str | None = None
    customer_email: str | None = None
    customer_group_ids: list[str] = []
    region_id: str | None = None
    items: list[ItemIn] = []
    subtotal: Amount | None = None
    shipping_amount: Amount | None = None

    def to_domain(self, store_id: str) -> DiscountContext:
        items = tuple(i.to_domain() for i in self.items)
        subtotal = (
            M.to_money(self.subtotal)
            if self.subtotal is not None
            else M.total(i.total_price for i in items)
        )
        return DiscountContext(
            store_id=store_id,
            items=items,
            subtotal=subtotal,
            customer_id=self.customer_id,
            customer_email=self.customer_email,
            customer_group_ids=tuple(self.customer_group_ids),
            region_id=self.region_id,
            shipping_amount=(
                M.to_money(self.shipping_amount) if self.shipping_amount is not None else None
            ),
        )


class ValidateIn(BaseModel):
    code: Annotated[str, Field(min_length=1, max_length=50)]
    cart: CartIn


class PriceIn(BaseModel):
    cart: CartIn
    coupon_code: str | None = None


class BestIn(BaseModel):
    codes: list[str]
    cart: CartIn


class OrderIn(BaseModel):
    id: Annotated[str, Field(min_length=1, max_length=50)]
    total: Amount
    customer_id: str | None = None
    discount_id: str | None = None
    discount_code: str | None = None
    discount_amount: Amount | None = None
    status: OrderStatus = OrderStatus.PENDING

    def to_domain(self, store_id: str) -> Order:
        return Order(
            id=self.id,
            store_id=store_id,
            total=M.to_money(self.total),
            customer_id=self.customer_id,
            discount_id=self.discount_id,
            discount_code=self.discount_code,
            discount_amount=(
                M.to_money(self.discount_amount) if self.discount_amount is not None else None
            ),
            status=self.status,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Outbound
# ═══════════════════════════════════════════════════════════════════════════════


class AppliedOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    code: str
    name: str
    type: DiscountType
    value: Decimal
    discount_amount: Decimal

    @classmethod
    def from_domain(cls, applied: AppliedDiscount) -> AppliedOut:
        return cls.model_validate(applied)


class DiscountResultOut(BaseModel):
    is_valid: bool
    discount_amount: Decimal
    free_shipping: bool
    applied_discount: AppliedOut | None
    item_discounts: dict[str, Decimal]
    errors: list[str]

    @classmethod
    def from_domain(cls, result: DiscountResult) -> DiscountResultOut:
        return cls(
            is_valid=result.is_valid,
            discount_amount=result.discount_amount,
            free_shipping=result.free_shipping,
            applied_discount=(
                AppliedOut.from_domain(result.applied_discount)
                if result.applied_discount is not None
                else None
            ),
            item_discounts=dict(result.item_discounts),
            errors=list(result.errors),
        )


class CartDiscountOut(BaseModel):
    total_discount: Decimal
    free_shipping: bool
    applied_discounts: list[AppliedOut]
    item_discounts: dict[str, Decimal]

    @classmethod
    def from_domain(cls, cart: CartDiscountResult) -> CartDiscountOut:
        return cls(
            total_discount=cart.total_discount,
            free_shipping=cart.free_shipping,
            applied_discounts=[AppliedOut.from_domain(a) for a in cart.applied_discounts],
            item_discounts=dict(cart.item_discounts),
        )


class AutoApplyOut(BaseModel):
    code: str | None
    cart: CartDiscountOut

    @classmethod
    def from_domain(cls, result: AutoApplyResult) -> AutoApplyOut:
        return cls(code=result.code, cart=CartDiscountOut.from_domain(result.cart))


class DiscountOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    store_id: str
    name: str
    code: str
    type: DiscountType
    value: Decimal
    applies_to: AppliesTo
    product_ids: list[str] | None
    category_ids: list[str] | None
    customer_ids: list[str] | None
    minimum_order_amount: Decimal | None
    maximum_order_amount: Decimal | None
    minimum_quantity: int | None
    maximum_discount_amount: Decimal | None
    usage_limit: int | None
    usage_limit_per_customer: int | None
    usage_count: int
    is_active: bool
    is_public: bool
    first_order_only: bool
    starts_at: datetime | None
    ends_at: datetime | None
    buy_quantity: int | None
    get_quantity: int | None
    get_discount_percentage: Decimal | None
    is_automatic: bool
    priority: int
    is_combinable: bool
    campaign_name: str | None
    budget_type: BudgetType | None
    budget_limit: Decimal | None
    budget_used: Decimal
    customer_group_ids: list[str] | None
    region_ids: list[str] | None
    created_at: datetime | None
    updated_at: datetime | None

    @classmethod
    def from_domain(cls, discount: Discount) -> DiscountOut:
        return cls.model_validate(discount)


class PublicDiscountOut(BaseModel):
    """What a shopper may see about an available code."""

    model_config = ConfigDict(from_attributes=True)

    code: str
    name: str
    type: DiscountType
    value: Decimal
    minimum_order_amount: Decimal | None
    maximum_discount_amount: Decimal | None
    ends_at: datetime | None

    @classmethod
    def from_domain(cls, discount: Discount) -> PublicDiscountOut:
        return cls.model_validate(discount)


class DiscountPageOut(BaseModel):
    items: list[DiscountOut]
    total: int
    page: int
    limit: int
    last_page: int

    @classmethod
    def from_domain(cls, page: Page[Discount]) -> DiscountPageOut:
        return cls(
            items=[DiscountOut.from_domain(d) for d in page.items],
            total=page.total,
            page=page.page,
            limit=page.limit,
            last_page=page.last_page,
        )


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    store_id: str
    total: Decimal
    customer_id: str | None
    discount_id: str | None
    discount_code: str | None
    discount_amount: Decimal | None
    status: OrderStatus
    created_at: datetime | None

    @classmethod
    def from_domain(cls, order: Order) -> OrderOut:
        return cls.model_validate(order)


class RedemptionOut(BaseModel):
    order: OrderOut
    recorded: bool
    usage_count: int | None = None

    @classmethod
    def from_domain(cls, redemption: Redemption) -> RedemptionOut:
        return cls(
            order=OrderOut.from_domain(redemption.order),
            recorded=redemption.recorded,
            usage_count=(
                redemption.discount.usage_count if redemption.discount is not None else None
            ),
        )


__all__ = (
    "ItemIn",
    "CartIn",
    "ValidateIn",
    "PriceIn",
    "BestIn",
    "OrderIn",
    "AppliedOut",
    "DiscountResultOut",
    "CartDiscountOut",
    "AutoApplyOut",
    "DiscountOut",
    "PublicDiscountOut",
    "DiscountPageOut",
    "OrderOut",
    "RedemptionOut",
)
