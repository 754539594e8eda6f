from datetime import timedelta
from decimal import Decimal

import pytest
from kungfu import Error

from discounts.rules import BudgetType, DiscountType
from discounts.store import DiscountFilters, MemoryStore, OrderStatus, SQLAlchemyStore, create_database
from tests.factories import NOW, STORE, discount, order, unwrap


@pytest.fixture(params=["memory", "sqlalchemy"])
async def store(request, database_url):
    if request.param == "memory":
        yield MemoryStore()
        return
    session_factory, engine = await create_database(database_url)
    yield SQLAlchemyStore(session_factory)
    await engine.dispose()


async def test_roundtrip(store):
    d = discount(
        "SPRING",
        type=DiscountType.BUY_X_GET_Y,
        buy_quantity=2,
        get_quantity=1,
        get_discount_percentage=Decimal("50"),
        product_ids=("p-1", "p-2"),
        minimum_order_amount=Decimal("25.00"),
        budget_type=BudgetType.SPEND,
        budget_limit=Decimal("1000.00"),
        starts_at=NOW,
        created_at=NOW,
    )
    unwrap(await store.add(d))

    assert unwrap(await store.get(d.id)) == d
    assert unwrap(await store.get("missing")) is None


async def test_find_by_code_is_case_insensitive(store):
    unwrap(await store.add(discount("SAVE10")))
    unwrap(await store.add(discount("OLD", is_active=False)))

    assert unwrap(await store.find_by_code(STORE, " save10 ")).code == "SAVE10"
    assert unwrap(await store.find_by_code(STORE, "old")) is None
    assert unwrap(await store.find_by_code(STORE, "old", active_only=False)).code == "OLD"
    assert unwrap(await store.find_by_code("other-shop", "SAVE10")) is None


async def test_duplicate_code_in_store_is_rejected(store):
    unwrap(await store.add(discount("SAVE10")))
    assert isinstance(await store.add(discount("SAVE10", id="d-other")), Error)
    unwrap(await store.add(discount("SAVE10", id="d-elsewhere", store_id="shop-2")))


async def test_list_automatic_returns_live_by_priority(store):
    for d in (
        discount("LATER", is_automatic=True, priority=5),
        discount("FIRST", is_automatic=True, priority=1),
        discount("CODE", is_automatic=False),
        discount("EXPIRED", is_automatic=True, ends_at=NOW - timedelta(days=1)),
        discount("SOON", is_automatic=True, starts_at=NOW + timedelta(days=1)),
        discount("USED", is_automatic=True, usage_limit=3, usage_count=3),
        discount("OFF", is_automatic=True, is_active=False),
    ):
        unwrap(await store.add(d))

    found = unwrap(await store.list_automatic(STORE, NOW))
    assert [d.code for d in found] == ["FIRST", "LATER"]


async def test_list_public_excludes_automatic(store):
    unwrap(await store.add(discount("PUB", is_public=True)))
    unwrap(await store.add(discount("AUTO", is_public=True, is_automatic=True)))
    unwrap(await store.add(discount("HIDDEN")))

    found = unwrap(await store.list_public(STORE, NOW))
    assert [d.code for d in found] == ["PUB"]


async def test_query_filters_and_pages_newest_first(store):
    for n in range(5):
        unwrap(await store.add(discount(f"CODE{n}", created_at=NOW + timedelta(minutes=n))))
    unwrap(await store.add(discount("FLAT", type=DiscountType.FIXED_AMOUNT, name="Flat five")))

    page = unwrap(await store.query(DiscountFilters(STORE, search="code", page=2, limit=2)))
    assert [d.code for d in page.items] == ["CODE2", "CODE1"]
    assert page.total == 5
    assert page.last_page == 3

    flat = unwrap(await store.query(DiscountFilters(STORE, type=DiscountType.FIXED_AMOUNT)))
    assert [d.code for d in flat.items] == ["FLAT"]

    by_name = unwrap(await store.query(DiscountFilters(STORE, search="five")))
    assert [d.code for d in by_name.items] == ["FLAT"]


async def test_save_and_delete(store):
    d = discount("SAVE10")
    unwrap(await store.add(d))

    saved = unwrap(await store.save(discount("SAVE10", value="15")))
    assert unwrap(await store.get(d.id)).value == saved.value == Decimal("15.00")

    assert unwrap(await store.delete(d.id)) is True
    assert unwrap(await store.delete(d.id)) is False
    assert isinstance(await store.save(d), Error)


async def test_increment_usage_grows_budgets(store):
    unwrap(await store.add(discount("COUNTED", budget_type=BudgetType.USAGE, budget_limit=Decimal("10"))))
    unwrap(await store.add(discount("SPENT", budget_type=BudgetType.SPEND, budget_limit=Decimal("500"))))

    counted = unwrap(await store.increment_usage("d-counted", Decimal("80.00")))
    spent = unwrap(await store.increment_usage("d-spent", Decimal("80.00")))

    assert counted.usage_count == 1
    assert counted.budget_used == Decimal("1.00")
    assert spent.usage_count == 1
    assert spent.budget_used == Decimal("80.00")
    assert unwrap(await store.increment_usage("missing")) is None


async def test_orders_count_until_cancelled(store):
    assert unwrap(await store.add_order(order("o-1", customer_id="c-1", discount_id="d-save10")))
    assert not unwrap(await store.add_order(order("o-1", customer_id="c-1", discount_id="d-save10")))

    assert unwrap(await store.customer_usage_count("d-save10", "c-1")) == 1
    assert unwrap(await store.customer_has_orders("c-1"))

    assert unwrap(await store.set_order_status("o-1", OrderStatus.CANCELLED))
    assert unwrap(await store.get_order("o-1")).status is OrderStatus.CANCELLED
    assert unwrap(await store.customer_usage_count("d-save10", "c-1")) == 0
    assert not unwrap(await store.customer_has_orders("c-1"))

    assert not unwrap(await store.set_order_status("missing", OrderStatus.PAID))


async def test_redeem_order_records_and_counts_together(store):
    unwrap(await store.add(discount(
        "CAMPAIGN", budget_type=BudgetType.SPEND, budget_limit=Decimal("500.00"),
    )))
    placed = order("o-1", "80", customer_id="c-1", discount_id="d-campaign")

    first = unwrap(await store.redeem_order(placed))
    retry = unwrap(await store.redeem_order(placed))

    assert first.recorded
    assert first.discount.usage_count == 1
    assert first.discount.budget_used == Decimal("80.00")
    assert not retry.recorded
    assert retry.discount is None
    assert retry.order.id == "o-1"
    assert unwrap(await store.get("d-campaign")).usage_count == 1
    assert unwrap(await store.customer_usage_count("d-campaign", "c-1")) == 1


async def test_redeem_order_skips_discount_of_another_store(store):
    unwrap(await store.add(discount("ELSEWHERE", store_id="shop-2")))

    redemption = unwrap(await store.redeem_order(order("o-1", discount_id="d-elsewhere")))

    assert redemption.recorded
    assert redemption.discount is None
    assert unwrap(await store.get("d-elsewhere")).usage_count == 0
