from collections.abc import AsyncIterator
from pathlib import Path

import pytest

from discounts.config import Settings
from discounts.engine import DiscountEngine
from discounts.store import MemoryStore, SQLAlchemyStore, create_database
from tests.factories import NOW


def fixed_clock():
    return NOW


@pytest.fixture
def clock():
    return fixed_clock


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'discounts.db'}"


@pytest.fixture
async def sql_store(database_url: str) -> AsyncIterator[SQLAlchemyStore]:
    session_factory, engine = await create_database(database_url)
    yield SQLAlchemyStore(session_factory)
    await engine.dispose()


@pytest.fixture
def engine(memory_store: MemoryStore) -> DiscountEngine:
    return DiscountEngine(memory_store, Settings(), clock=fixed_clock)
