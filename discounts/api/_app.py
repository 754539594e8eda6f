"""
HTTP surface — storefront and admin routes on FastAPI.

    app = create_app(engine, service, redemptions)      # ready services
    app = app_from_settings(Settings.from_env())        # builds them on startup
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Annotated

from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.responses import JSONResponse, Response
from kungfu import Ok, Error

from discounts.admin import AdminError, AdminErrorKind, DiscountCreate, DiscountService, DiscountUpdate
from discounts.api._codecs import (
    AutoApplyOut,
    BestIn,
    CartDiscountOut,
    CartIn,
    DiscountOut,
    DiscountPageOut,
    DiscountResultOut,
    OrderIn,
    OrderOut,
    PriceIn,
    PublicDiscountOut,
    RedemptionOut,
    ValidateIn,
)
from discounts.config import Settings
from discounts.engine import INVALID_CODE, DiscountEngine, EngineError
from discounts.redemption import RedemptionError, RedemptionErrorKind, RedemptionService
from discounts.rules import DiscountResult, DiscountType
from discounts.store import DiscountFilters, SQLAlchemyStore, create_database

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════


class ApiError(Exception):
    """Rendered as {"error": message} with the given status."""

    def __init__(self, status_code: int, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.errors = errors


def _engine_failure(e: EngineError) -> ApiError:
    logger.error("Discount engine unavailable: %s", e.message)
    return ApiError(status.HTTP_503_SERVICE_UNAVAILABLE, "Discounts are temporarily unavailable")


_ADMIN_STATUS = {
    AdminErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    AdminErrorKind.DUPLICATE_CODE: status.HTTP_409_CONFLICT,
    AdminErrorKind.INVALID: status.HTTP_422_UNPROCESSABLE_ENTITY,
    AdminErrorKind.STORE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _admin_failure(e: AdminError) -> ApiError:
    return ApiError(_ADMIN_STATUS[e.kind], e.message)


def _redemption_failure(e: RedemptionError) -> ApiError:
    match e.kind:
        case RedemptionErrorKind.NOT_FOUND:
            return ApiError(status.HTTP_404_NOT_FOUND, e.message)
        case RedemptionErrorKind.STORE:
            return ApiError(status.HTTP_503_SERVICE_UNAVAILABLE, e.message)


def _rejected(result: DiscountResult) -> ApiError:
    errors = list(result.errors) or [INVALID_CODE]
    return ApiError(status.HTTP_400_BAD_REQUEST, errors[0], errors)


# ═══════════════════════════════════════════════════════════════════════════════
# Dependencies
# ═══════════════════════════════════════════════════════════════════════════════


def _engine(request: Request) -> DiscountEngine:
    return request.app.state.engine


def _service(request: Request) -> DiscountService:
    return request.app.state.service


def _redemptions(request: Request) -> RedemptionService:
    return request.app.state.redemptions


EngineDep = Annotated[DiscountEngine, Depends(_engine)]
ServiceDep = Annotated[DiscountService, Depends(_service)]
RedemptionsDep = Annotated[RedemptionService, Depends(_redemptions)]

# ═══════════════════════════════════════════════════════════════════════════════
# Routes
# ═══════════════════════════════════════════════════════════════════════════════


def _mount_storefront(app: FastAPI) -> None:
    @app.post("/stores/{store_id}/discounts/validate", response_model=DiscountResultOut)
    async def validate_code(store_id: str, body: ValidateIn, engine: EngineDep) -> DiscountResultOut:
        match await engine.apply_code(body.code, body.cart.to_domain(store_id)):
            case Ok(result) if result.is_valid:
                return DiscountResultOut.from_domain(result)
            case Ok(result):
                raise _rejected(result)
            case Error(e):
                raise _engine_failure(e)

    @app.post("/stores/{store_id}/cart/discounts", response_model=CartDiscountOut)
    async def price_cart(store_id: str, body: PriceIn, engine: EngineDep) -> CartDiscountOut:
        match await engine.apply_to_cart(body.cart.to_domain(store_id), body.coupon_code):
            case Ok(cart):
                return CartDiscountOut.from_domain(cart)
            case Error(e):
                raise _engine_failure(e)

    @app.post("/stores/{store_id}/discounts/best", response_model=DiscountResultOut)
    async def best_code(store_id: str, body: BestIn, engine: EngineDep) -> DiscountResultOut:
        match await engine.find_best(body.codes, body.cart.to_domain(store_id)):
            case Ok(result) if result.is_valid:
                return DiscountResultOut.from_domain(result)
            case Ok(result):
                raise _rejected(result)
            case Error(e):
                raise _engine_failure(e)

    @app.post("/stores/{store_id}/discounts/auto-apply", response_model=AutoApplyOut)
    async def auto_apply(store_id: str, body: CartIn, engine: EngineDep) -> AutoApplyOut:
        match await engine.auto_apply(body.to_domain(store_id)):
            case Ok(result):
                return AutoApplyOut.from_domain(result)
            case Error(e):
                raise _engine_failure(e)

    @app.get("/stores/{store_id}/discounts/available", response_model=list[PublicDiscountOut])
    async def available(
        store_id: str,
        engine: EngineDep,
        customer_id: str | None = None,
    ) -> list[PublicDiscountOut]:
        match await engine.available_discounts(store_id, customer_id):
            case Ok(discounts):
                return [PublicDiscountOut.from_domain(d) for d in discounts]
            case Error(e):
                raise _engine_failure(e)

    @app.post("/stores/{store_id}/orders", response_model=RedemptionOut)
    async def redeem(
        store_id: str,
        body: OrderIn,
        redemptions: RedemptionsDep,
        response: Response,
    ) -> RedemptionOut:
        match await redemptions.redeem(body.to_domain(store_id)):
            case Ok(redemption):
                response.status_code = (
                    status.HTTP_201_CREATED if redemption.recorded else status.HTTP_200_OK
                )
                return RedemptionOut.from_domain(redemption)
            case Error(e):
                raise _redemption_failure(e)

    @app.post("/stores/{store_id}/orders/{order_id}/cancel", response_model=OrderOut)
    async def cancel(store_id: str, order_id: str, redemptions: RedemptionsDep) -> OrderOut:
        match await redemptions.cancel(store_id, order_id):
            case Ok(order):
                return OrderOut.from_domain(order)
            case Error(e):
                raise _redemption_failure(e)


def _mount_admin(app: FastAPI) -> None:
    @app.get("/admin/stores/{store_id}/discounts", response_model=DiscountPageOut)
    async def list_discounts(
        store_id: str,
        service: ServiceDep,
        is_active: bool | None = None,
        type: DiscountType | None = None,
        search: str | None = None,
        starts_after: datetime | None = None,
        ends_before: datetime | None = None,
        page: Annotated[int, Query(ge=1)] = 1,
        limit: Annotated[int | None, Query(ge=1)] = None,
    ) -> DiscountPageOut:
        filters = DiscountFilters(
            store_id=store_id,
            is_active=is_active,
            type=type,
            search=search,
            starts_after=starts_after,
            ends_before=ends_before,
            page=page,
            limit=limit or service.settings.page_size,
        )
        match await service.list(filters):
            case Ok(found):
                return DiscountPageOut.from_domain(found)
            case Error(e):
                raise _admin_failure(e)

    @app.get("/admin/stores/{store_id}/discounts/active", response_model=list[DiscountOut])
    async def active_discounts(store_id: str, service: ServiceDep) -> list[DiscountOut]:
        match await service.active(store_id):
            case Ok(discounts):
                return [DiscountOut.from_domain(d) for d in discounts]
            case Error(e):
                raise _admin_failure(e)

    @app.post(
        "/admin/stores/{store_id}/discounts",
        response_model=DiscountOut,
        status_code=status.HTTP_201_CREATED,
    )
    async def create_discount(store_id: str, body: DiscountCreate, service: ServiceDep) -> DiscountOut:
        match await service.create(store_id, body):
            case Ok(created):
                return DiscountOut.from_domain(created)
            case Error(e):
                raise _admin_failure(e)

    @app.get("/admin/discounts/{discount_id}", response_model=DiscountOut)
    async def get_discount(discount_id: str, service: ServiceDep) -> DiscountOut:
        match await service.get(discount_id):
            case Ok(discount):
                return DiscountOut.from_domain(discount)
            case Error(e):
                raise _admin_failure(e)

    @app.patch("/admin/discounts/{discount_id}", response_model=DiscountOut)
    async def update_discount(
        discount_id: str, body: DiscountUpdate, service: ServiceDep
    ) -> DiscountOut:
        match await service.update(discount_id, body):
            case Ok(updated):
                return DiscountOut.from_domain(updated)
            case Error(e):
                raise _admin_failure(e)

    @app.post("/admin/discounts/{discount_id}/toggle", response_model=DiscountOut)
    async def toggle_discount(discount_id: str, service: ServiceDep) -> DiscountOut:
        match await service.toggle(discount_id):
            case Ok(updated):
                return DiscountOut.from_domain(updated)
            case Error(e):
                raise _admin_failure(e)

    @app.delete("/admin/discounts/{discount_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_discount(discount_id: str, service: ServiceDep) -> Response:
        match await service.delete(discount_id):
            case Ok(_):
                return Response(status_code=status.HTTP_204_NO_CONTENT)
            case Error(e):
                raise _admin_failure(e)


# ═══════════════════════════════════════════════════════════════════════════════
# Application
# ═══════════════════════════════════════════════════════════════════════════════


def _build(lifespan: object = None) -> FastAPI:
    app = FastAPI(title="Storefront discounts", lifespan=lifespan)  # type: ignore[arg-type]

    @app.exception_handler(ApiError)
    async def _api_error(request: Request, exc: ApiError) -> JSONResponse:
        body: dict[str, object] = {"error": exc.message}
        if exc.errors and len(exc.errors) > 1:
            body["errors"] = exc.errors
        return JSONResponse(body, status_code=exc.status_code)

    _mount_storefront(app)
    _mount_admin(app)
    return app


def create_app(
    engine: DiscountEngine,
    service: DiscountService,
    redemptions: RedemptionService,
) -> FastAPI:
    """App over ready-made services."""
    app = _build()
    app.state.engine = engine
    app.state.service = service
    app.state.redemptions = redemptions
    return app


def app_from_settings(settings: Settings) -> FastAPI:
    """App that opens the database on startup and disposes it on shutdown."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        session_factory, db = await create_database(settings.database_url)
        store = SQLAlchemyStore(session_factory)
        engine = DiscountEngine(store, settings)
        app.state.engine = engine
        app.state.service = DiscountService(store, settings, on_change=engine.invalidate)
        app.state.redemptions = RedemptionService(engine)
        logger.info("Discounts API ready on %s", settings.database_url)
        try:
            yield
        finally:
            await db.dispose()

    return _build(lifespan)


__all__ = ("ApiError", "create_app", "app_from_settings")
