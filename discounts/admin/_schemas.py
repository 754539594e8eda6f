"""
Admin schemas — validated input for creating and editing discounts.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator, model_validator

from discounts import money as M
from discounts._types import DiscountId, StoreId
from discounts.rules import AppliesTo, BudgetType, Discount, DiscountType

Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
Code = Annotated[
    str,
    StringConstraints(strip_whitespace=True, min_length=1, max_length=50, pattern=r"^[A-Za-z0-9_-]+$"),
]
Amount = Annotated[Decimal, Field(ge=0, max_digits=12, decimal_places=2)]
Count = Annotated[int, Field(ge=0)]
Ids = list[str]

# Fields that hold id lists; stored as tuples on the domain side.
_ID_FIELDS = frozenset({
    "product_ids",
    "category_ids",
    "customer_ids",
    "customer_group_ids",
    "region_ids",
})
_MONEY_FIELDS = frozenset({
    "value",
    "minimum_order_amount",
    "maximum_order_amount",
    "maximum_discount_amount",
    "budget_limit",
})


def _domain_value(name: str, value: Any) -> Any:
    if value is None:
        return None
    if name in _ID_FIELDS:
        return tuple(value)
    if name in _MONEY_FIELDS:
        return M.to_money(value)
    return value


def naive_local(value: datetime | None) -> datetime | None:
    """Aware datetimes become naive local time, matching the engine clock."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def check_window(starts_at: datetime | None, ends_at: datetime | None) -> None:
    if starts_at is not None and ends_at is not None and ends_at <= starts_at:
        raise ValueError("ends_at must be after starts_at")


def check_buy_x_get_y(type_: DiscountType, buy: int | None, get: int | None) -> None:
    if type_ is DiscountType.BUY_X_GET_Y and (not buy or not get):
        raise ValueError("buy_x_get_y discounts need buy_quantity and get_quantity")


def check_percentage(type_: DiscountType, value: Decimal) -> None:
    if type_ is DiscountType.PERCENTAGE and value > 100:
        raise ValueError("percentage value cannot exceed 100")


class DiscountCreate(BaseModel):
    """New discount. Codes are case-insensitive and stored upper-case."""

    model_config = ConfigDict(extra="forbid")

    name: Name
    code: Code
    type: DiscountType
    value: Amount = Decimal(0)
    applies_to: AppliesTo = AppliesTo.ALL
    product_ids: Ids | None = None
    category_ids: Ids | None = None
    customer_ids: Ids | None = None
    minimum_order_amount: Amount | None = None
    maximum_order_amount: Amount | None = None
    minimum_quantity: Count | None = None
    maximum_discount_amount: Amount | None = None
    usage_limit: Count | None = None
    usage_limit_per_customer: Count | None = None
    is_active: bool = True
    is_public: bool = False
    first_order_only: bool = False
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    buy_quantity: Annotated[int, Field(ge=1)] | None = None
    get_quantity: Annotated[int, Field(ge=1)] | None = None
    get_discount_percentage: Annotated[Decimal, Field(gt=0, le=100)] | None = None
    is_automatic: bool = False
    priority: int = 0
    is_combinable: bool = False
    campaign_name: Annotated[str, StringConstraints(max_length=255)] | None = None
    budget_type: BudgetType | None = None
    budget_limit: Amount | None = None
    customer_group_ids: Ids | None = None
    region_ids: Ids | None = None

    @field_validator("code")
    @classmethod
    def _upper(cls, code: str) -> str:
        return code.upper()

    @field_validator("starts_at", "ends_at")
    @classmethod
    def _naive(cls, value: datetime | None) -> datetime | None:
        return naive_local(value)

    @model_validator(mode="after")
    def _consistent(self) -> DiscountCreate:
        check_window(self.starts_at, self.ends_at)
        check_buy_x_get_y(self.type, self.buy_quantity, self.get_quantity)
        check_percentage(self.type, self.value)
        return self

    def to_domain(self, discount_id: DiscountId, store_id: StoreId, now: datetime) -> Discount:
        fields = {name: _domain_value(name, value) for name, value in self.model_dump().items()}
        return Discount(
            id=discount_id,
            store_id=store_id,
            usage_count=0,
            budget_used=M.ZERO,
            created_at=now,
            updated_at=now,
            **fields,
        )


class DiscountUpdate(BaseModel):
    """Partial edit. Only fields present in the payload change."""

    model_config = ConfigDict(extra="forbid")

    name: Name | None = None
    code: Code | None = None
    type: DiscountType | None = None
    value: Amount | None = None
    applies_to: AppliesTo | None = None
    product_ids: Ids | None = None
    category_ids: Ids | None = None
    customer_ids: Ids | None = None
    minimum_order_amount: Amount | None = None
    maximum_order_amount: Amount | None = None
    minimum_quantity: Count | None = None
    maximum_discount_amount: Amount | None = None
    usage_limit: Count | None = None
    usage_limit_per_customer: Count | None = None
    is_active: bool | None = None
    is_public: bool | None = None
    first_order_only: bool | None = None
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    buy_quantity: Annotated[int, Field(ge=1)] | None = None
    get_quantity: Annotated[int, Field(ge=1)] | None = None
    get_discount_percentage: Annotated[Decimal, Field(gt=0, le=100)] | None = None
    is_automatic: bool | None = None
    priority: int | None = None
    is_combinable: bool | None = None
    campaign_name: Annotated[str, StringConstraints(max_length=255)] | None = None
    budget_type: BudgetType | None = None
    budget_limit: Amount | None = None
    customer_group_ids: Ids | None = None
    region_ids: Ids | None = None

    @field_validator("code")
    @classmethod
    def _upper(cls, code: str | None) -> str | None:
        return code.upper() if code is not None else None

    @field_validator("starts_at", "ends_at")
    @classmethod
    def _naive(cls, value: datetime | None) -> datetime | None:
        return naive_local(value)

    @field_validator("name", "type", "value", "applies_to", "is_active", "is_public",
                     "first_order_only", "is_automatic", "priority", "is_combinable")
    @classmethod
    def _not_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("field cannot be null")
        return value

    def apply(self, discount: Discount, now: datetime) -> Discount:
        """
        Merge into an existing discount.

        Raises ValueError if the merged discount is inconsistent.
        """
        changes = {
            name: _domain_value(name, value)
            for name, value in self.model_dump(exclude_unset=True).items()
        }
        merged = replace(discount, **changes, updated_at=now)
        check_window(merged.starts_at, merged.ends_at)
        check_buy_x_get_y(merged.type, merged.buy_quantity, merged.get_quantity)
        check_percentage(merged.type, merged.value)
        return merged


__all__ = ("DiscountCreate", "DiscountUpdate")
