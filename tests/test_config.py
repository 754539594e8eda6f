from datetime import timedelta

import pytest

from discounts.config import Settings


def test_defaults():
    settings = Settings()
    assert settings.currency == "USD"
    assert settings.auto_cache_ttl == timedelta(seconds=60)
    assert settings.page_size == 20
    assert settings.max_page_size == 100


def test_fluent_methods_return_new_settings():
    base = Settings()
    changed = base.with_currency("eur").with_paging(page_size=5).with_log_level("debug")

    assert base.currency == "USD"
    assert changed.currency == "EUR"
    assert changed.page_size == 5
    assert changed.max_page_size == 100
    assert changed.log_level == "DEBUG"


def test_zero_seconds_disables_auto_cache():
    settings = Settings().with_auto_cache(seconds=0, max_size=10)
    assert settings.auto_cache_ttl is None
    assert settings.auto_cache_size == 10


def test_from_env():
    settings = Settings.from_env({
        "DISCOUNTS_DATABASE_URL": "sqlite+aiosqlite:///shop.db",
        "DISCOUNTS_CURRENCY": "gbp",
        "DISCOUNTS_AUTO_CACHE_TTL": "30",
        "DISCOUNTS_PAGE_SIZE": "50",
        "DISCOUNTS_PORT": "9000",
        "DISCOUNTS_LOG_LEVEL": " ",
    })

    assert settings.database_url == "sqlite+aiosqlite:///shop.db"
    assert settings.currency == "GBP"
    assert settings.auto_cache_ttl == timedelta(seconds=30)
    assert settings.page_size == 50
    assert settings.port == 9000
    assert settings.host == "127.0.0.1"
    assert settings.log_level == "INFO"


def test_from_env_rejects_malformed_numbers():
    with pytest.raises(ValueError):
        Settings.from_env({"DISCOUNTS_PAGE_SIZE": "many"})
