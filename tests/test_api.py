from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from discounts.admin import DiscountService
from discounts.api import create_app
from discounts.engine import INVALID_CODE, DiscountEngine
from discounts.redemption import RedemptionService
from discounts.store import MemoryStore
from tests.conftest import fixed_clock
from tests.factories import DownStore

CART = {"items": [{"id": "a", "product_id": "p-a", "quantity": 2, "unit_price": "50"}]}


def build_client(store):
    engine = DiscountEngine(store, clock=fixed_clock)
    service = DiscountService(store, clock=fixed_clock, on_change=engine.invalidate)
    return TestClient(create_app(engine, service, RedemptionService(engine, clock=fixed_clock)))


@pytest.fixture
def client():
    with build_client(MemoryStore()) as client:
        yield client


def create(client, code, **fields):
    body = {"name": code.title(), "code": code, "type": "percentage", "value": "10"}
    body.update(fields)
    response = client.post("/admin/stores/shop-1/discounts", json=body)
    assert response.status_code == 201, response.text
    return response.json()


# ═══════════════════════════════════════════════════════════════════════════════
# Admin
# ═══════════════════════════════════════════════════════════════════════════════


def test_create_and_get(client):
    created = create(client, "save10")

    assert created["code"] == "SAVE10"
    assert Decimal(created["value"]) == Decimal("10")

    response = client.get(f"/admin/discounts/{created['id']}")
    assert response.status_code == 200
    assert response.json() == created


def test_create_duplicate(client):
    create(client, "SAVE10")

    response = client.post(
        "/admin/stores/shop-1/discounts",
        json={"name": "Again", "code": "save10", "type": "fixed_amount", "value": "5"},
    )
    assert response.status_code == 409
    assert response.json() == {"error": "Discount code already exists"}


def test_create_invalid_body(client):
    response = client.post(
        "/admin/stores/shop-1/discounts",
        json={"name": "Too much", "code": "BIG", "type": "percentage", "value": "150"},
    )
    assert response.status_code == 422


def test_update_toggle_delete(client):
    created = create(client, "SAVE10")
    path = f"/admin/discounts/{created['id']}"

    patched = client.patch(path, json={"value": "15", "is_public": True})
    assert patched.status_code == 200
    assert Decimal(patched.json()["value"]) == Decimal("15")
    assert patched.json()["is_public"] is True

    toggled = client.post(f"{path}/toggle")
    assert toggled.json()["is_active"] is False

    assert client.delete(path).status_code == 204
    assert client.get(path).status_code == 404


def test_update_that_breaks_rules(client):
    created = create(client, "SAVE10")

    response = client.patch(f"/admin/discounts/{created['id']}", json={"value": "120"})
    assert response.status_code == 422
    assert response.json() == {"error": "percentage value cannot exceed 100"}


def test_list_pages(client):
    for code in ("A1", "A2", "A3"):
        create(client, code)
    create(client, "OFF", is_active=False)

    response = client.get("/admin/stores/shop-1/discounts", params={"is_active": True, "limit": 2})
    body = response.json()

    assert response.status_code == 200
    assert body["total"] == 3
    assert body["last_page"] == 2
    assert len(body["items"]) == 2

    active = client.get("/admin/stores/shop-1/discounts/active").json()
    assert sorted(d["code"] for d in active) == ["A1", "A2", "A3"]


# ═══════════════════════════════════════════════════════════════════════════════
# Storefront
# ═══════════════════════════════════════════════════════════════════════════════


def test_validate_code(client):
    create(client, "SAVE10")

    response = client.post("/stores/shop-1/discounts/validate", json={"code": "save10", "cart": CART})
    body = response.json()

    assert response.status_code == 200
    assert body["is_valid"] is True
    assert Decimal(body["discount_amount"]) == Decimal("10")
    assert body["applied_discount"]["code"] == "SAVE10"


def test_validate_unknown_code(client):
    response = client.post("/stores/shop-1/discounts/validate", json={"code": "NOPE", "cart": CART})

    assert response.status_code == 400
    assert response.json() == {"error": INVALID_CODE}


def test_validate_lists_every_violation(client):
    create(client, "BIG", minimum_order_amount="500", minimum_quantity=5)

    response = client.post("/stores/shop-1/discounts/validate", json={"code": "BIG", "cart": CART})
    body = response.json()

    assert response.status_code == 400
    assert body["error"] == "Minimum order amount of $500.00 required"
    assert body["errors"] == [
        "Minimum order amount of $500.00 required",
        "Minimum 5 items required",
    ]


def test_price_cart(client):
    create(client, "AUTO5", value="5", is_automatic=True, is_combinable=True)
    create(client, "SAVE10", is_combinable=True)

    response = client.post("/stores/shop-1/cart/discounts", json={"cart": CART, "coupon_code": "SAVE10"})
    body = response.json()

    assert response.status_code == 200
    assert Decimal(body["total_discount"]) == Decimal("15")
    assert [a["code"] for a in body["applied_discounts"]] == ["SAVE10", "AUTO5"]
    assert Decimal(body["item_discounts"]["a"]) == Decimal("15")


def test_best_code(client):
    create(client, "SAVE10")
    create(client, "FLAT20", type="fixed_amount", value="20")

    response = client.post("/stores/shop-1/discounts/best", json={"codes": ["save10", "flat20"], "cart": CART})

    assert response.status_code == 200
    assert response.json()["applied_discount"]["code"] == "FLAT20"

    none = client.post("/stores/shop-1/discounts/best", json={"codes": [], "cart": CART})
    assert none.status_code == 400


def test_available_and_auto_apply(client):
    create(client, "PUBLIC", is_public=True)
    create(client, "VIP", is_public=True, customer_ids=["c-9"], value="30")

    available = client.get("/stores/shop-1/discounts/available", params={"customer_id": "c-1"})
    assert [d["code"] for d in available.json()] == ["PUBLIC"]

    applied = client.post("/stores/shop-1/discounts/auto-apply", json={**CART, "customer_id": "c-1"})
    body = applied.json()
    assert body["code"] == "PUBLIC"
    assert Decimal(body["cart"]["total_discount"]) == Decimal("10")


def test_redeem_and_cancel(client):
    created = create(client, "SAVE10")
    placed = {"id": "o-1", "total": "90", "customer_id": "c-1", "discount_id": created["id"]}

    first = client.post("/stores/shop-1/orders", json=placed)
    retry = client.post("/stores/shop-1/orders", json=placed)

    assert first.status_code == 201
    assert first.json()["usage_count"] == 1
    assert retry.status_code == 200
    assert retry.json()["recorded"] is False

    assert client.post("/stores/shop-2/orders/o-1/cancel").status_code == 404

    cancelled = client.post("/stores/shop-1/orders/o-1/cancel")
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"

    assert client.post("/stores/shop-1/orders/missing/cancel").status_code == 404


def test_redeem_discount_of_another_store(client):
    created = create(client, "SAVE10")
    placed = {"id": "o-1", "total": "90", "discount_id": created["id"]}

    response = client.post("/stores/shop-2/orders", json=placed)

    assert response.status_code == 404
    assert response.json()["error"] == f"Discount not found: {created['id']}"
    assert client.get(f"/admin/discounts/{created['id']}").json()["usage_count"] == 0


def test_store_outage():
    with build_client(DownStore()) as client:
        response = client.post("/stores/shop-1/cart/discounts", json={"cart": CART, "coupon_code": "X"})

    assert response.status_code == 503
    assert response.json() == {"error": "Discounts are temporarily unavailable"}
