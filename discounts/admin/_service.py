"""
DiscountService — discount management for the admin side.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum, auto

from kungfu import Result, Ok, Error

from discounts import rules as R
from discounts._types import Clock, DiscountId, StoreId
from discounts.admin._schemas import DiscountCreate, DiscountUpdate
from discounts.config import Settings
from discounts.rules import Discount
from discounts.store import DiscountFilters, DiscountStore, Page, StoreError

logger = logging.getLogger(__name__)

DUPLICATE_CODE = "Discount code already exists"

# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════


class AdminErrorKind(Enum):
    NOT_FOUND = auto()
    DUPLICATE_CODE = auto()
    INVALID = auto()
    STORE = auto()


@dataclass(frozen=True, slots=True)
class AdminError:
    kind: AdminErrorKind
    message: str
    cause: Exception | None = None

    @classmethod
    def not_found(cls, discount_id: DiscountId) -> AdminError:
        return cls(AdminErrorKind.NOT_FOUND, f"Discount not found: {discount_id}")

    @classmethod
    def from_store(cls, e: StoreError) -> AdminError:
        return cls(AdminErrorKind.STORE, e.message, e.cause)


type OnChange = Callable[[StoreId], Awaitable[None]]

# ═══════════════════════════════════════════════════════════════════════════════
# Service
# ═══════════════════════════════════════════════════════════════════════════════


class DiscountService:
    """
    Create, edit and list discounts.

    on_change is awaited after every write with the affected store id,
    e.g. to drop cached automatic discounts.
    """

    def __init__(
        self,
        store: DiscountStore,
        settings: Settings | None = None,
        clock: Clock = datetime.now,
        on_change: OnChange | None = None,
        new_id: Callable[[], str] = lambda: str(uuid.uuid4()),
    ) -> None:
        self.store = store
        self.settings = settings or Settings()
        self._clock = clock
        self._on_change = on_change
        self._new_id = new_id

    async def _changed(self, store_id: StoreId) -> None:
        if self._on_change is not None:
            await self._on_change(store_id)

    async def _code_taken(
        self, store_id: StoreId, code: str, exclude: DiscountId | None = None
    ) -> Result[bool, AdminError]:
        match await self.store.find_by_code(store_id, code, active_only=False):
            case Ok(None):
                return Ok(False)
            case Ok(existing):
                return Ok(existing.id != exclude)
            case Error(e):
                return Error(AdminError.from_store(e))

    async def create(self, store_id: StoreId, data: DiscountCreate) -> Result[Discount, AdminError]:
        match await self._code_taken(store_id, data.code):
            case Error(e):
                return Error(e)
            case Ok(True):
                return Error(AdminError(AdminErrorKind.DUPLICATE_CODE, DUPLICATE_CODE))

        discount = data.to_domain(self._new_id(), store_id, self._clock())
        match await self.store.add(discount):
            case Ok(created):
                logger.info("Created discount %s (%s) in store %s", created.code, created.id, store_id)
                await self._changed(store_id)
                return Ok(created)
            case Error(e):
                return Error(AdminError.from_store(e))

    async def update(
        self, discount_id: DiscountId, data: DiscountUpdate
    ) -> Result[Discount, AdminError]:
        match await self.get(discount_id):
            case Error(e):
                return Error(e)
            case Ok(current):
                pass

        if data.code is not None and data.code != current.code:
            match await self._code_taken(current.store_id, data.code, exclude=discount_id):
                case Error(e):
                    return Error(e)
                case Ok(True):
                    return Error(AdminError(AdminErrorKind.DUPLICATE_CODE, DUPLICATE_CODE))

        try:
            updated = data.apply(current, self._clock())
        except ValueError as e:
            return Error(AdminError(AdminErrorKind.INVALID, str(e)))

        match await self.store.save(updated):
            case Ok(saved):
                logger.info("Updated discount %s (%s)", saved.code, saved.id)
                await self._changed(saved.store_id)
                return Ok(saved)
            case Error(e):
                return Error(AdminError.from_store(e))

    async def toggle(self, discount_id: DiscountId) -> Result[Discount, AdminError]:
        """Flip is_active."""
        match await self.get(discount_id):
            case Error(e):
                return Error(e)
            case Ok(current):
                pass

        flipped = replace(current, is_active=not current.is_active, updated_at=self._clock())
        match await self.store.save(flipped):
            case Ok(saved):
                logger.info(
                    "Discount %s %s", saved.code, "activated" if saved.is_active else "deactivated",
                )
                await self._changed(saved.store_id)
                return Ok(saved)
            case Error(e):
                return Error(AdminError.from_store(e))

    async def delete(self, discount_id: DiscountId) -> Result[None, AdminError]:
        match await self.get(discount_id):
            case Error(e):
                return Error(e)
            case Ok(current):
                pass

        match await self.store.delete(discount_id):
            case Ok(True):
                logger.info("Deleted discount %s (%s)", current.code, discount_id)
                await self._changed(current.store_id)
                return Ok(None)
            case Ok(False):
                return Error(AdminError.not_found(discount_id))
            case Error(e):
                return Error(AdminError.from_store(e))

    async def get(self, discount_id: DiscountId) -> Result[Discount, AdminError]:
        match await self.store.get(discount_id):
            case Ok(None):
                return Error(AdminError.not_found(discount_id))
            case Ok(discount):
                return Ok(discount)
            case Error(e):
                return Error(AdminError.from_store(e))

    async def find_by_code(
        self, store_id: StoreId, code: str
    ) -> Result[Discount | None, AdminError]:
        """Any discount with the code, active or not."""
        match await self.store.find_by_code(store_id, code, active_only=False):
            case Ok(found):
                return Ok(found)
            case Error(e):
                return Error(AdminError.from_store(e))

    async def list(self, filters: DiscountFilters) -> Result[Page[Discount], AdminError]:
        """Filtered listing, newest first. limit is clamped to max_page_size."""
        limit = min(max(filters.limit, 1), self.settings.max_page_size)
        page = max(filters.page, 1)
        match await self.store.query(replace(filters, limit=limit, page=page)):
            case Ok(found):
                return Ok(found)
            case Error(e):
                return Error(AdminError.from_store(e))

    async def active(self, store_id: StoreId) -> Result[list[Discount], AdminError]:
        """Live discounts of the store (active, in window, under limit), newest first."""
        now = self._clock()
        live: list[Discount] = []
        filters = DiscountFilters(
            store_id=store_id,
            is_active=True,
            limit=self.settings.max_page_size,
        )
        while True:
            match await self.store.query(filters):
                case Error(e):
                    return Error(AdminError.from_store(e))
                case Ok(page):
                    pass
            live.extend(d for d in page.items if R.is_live(d, now))
            if page.page >= page.last_page:
                return Ok(live)
            filters = replace(filters, page=filters.page + 1)


__all__ = (
    "DUPLICATE_CODE",
    "AdminErrorKind",
    "AdminError",
    "DiscountService",
)
