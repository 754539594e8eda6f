"""
Settings — runtime configuration.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import timedelta

ENV_PREFIX = "DISCOUNTS_"


@dataclass(frozen=True, slots=True)
class Settings:
    """
    Engine and service configuration.

    Each with_* method returns an updated copy.

    Example:
        settings = (
            Settings()
            .with_database("sqlite+aiosqlite:///shop.db")
            .with_auto_cache(seconds=30, max_size=500)
            .with_currency("EUR")
        )
    """

    database_url: str = "sqlite+aiosqlite:///:memory:"
    currency: str = "USD"
    # None disables caching of automatic discounts.
    auto_cache_ttl: timedelta | None = timedelta(seconds=60)
    auto_cache_size: int = 1000
    page_size: int = 20
    max_page_size: int = 100
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000

    def with_database(self, url: str) -> Settings:
        return replace(self, database_url=url)

    def with_currency(self, currency: str) -> Settings:
        return replace(self, currency=currency.upper())

    def with_auto_cache(
        self,
        *,
        seconds: float | None = None,
        max_size: int | None = None,
    ) -> Settings:
        """
        Configure the automatic-discount cache.

        seconds=0 disables caching.
        """
        ttl = self.auto_cache_ttl
        if seconds is not None:
            ttl = timedelta(seconds=seconds) if seconds > 0 else None
        return replace(
            self,
            auto_cache_ttl=ttl,
            auto_cache_size=max_size if max_size is not None else self.auto_cache_size,
        )

    def with_paging(self, *, page_size: int, max_page_size: int | None = None) -> Settings:
        return replace(
            self,
            page_size=page_size,
            max_page_size=max_page_size if max_page_size is not None else self.max_page_size,
        )

    def with_log_level(self, level: str) -> Settings:
        return replace(self, log_level=level.upper())

    def with_server(self, host: str, port: int) -> Settings:
        return replace(self, host=host, port=port)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """
        Read DISCOUNTS_* variables, falling back to defaults.

        Raises ValueError on malformed numbers.
        """
        env = os.environ if environ is None else environ
        base = cls()

        def get(name: str) -> str | None:
            value = env.get(ENV_PREFIX + name)
            return value.strip() if value is not None and value.strip() else None

        settings = base
        if (url := get("DATABASE_URL")) is not None:
            settings = settings.with_database(url)
        if (currency := get("CURRENCY")) is not None:
            settings = settings.with_currency(currency)

        ttl = get("AUTO_CACHE_TTL")
        size = get("AUTO_CACHE_SIZE")
        if ttl is not None or size is not None:
            settings = settings.with_auto_cache(
                seconds=float(ttl) if ttl is not None else None,
                max_size=int(size) if size is not None else None,
            )

        page = get("PAGE_SIZE")
        max_page = get("MAX_PAGE_SIZE")
        if page is not None or max_page is not None:
            settings = settings.with_paging(
                page_size=int(page) if page is not None else settings.page_size,
                max_page_size=int(max_page) if max_page is not None else None,
            )

        if (level := get("LOG_LEVEL")) is not None:
            settings = settings.with_log_level(level)

        host = get("HOST")
        port = get("PORT")
        if host is not None or port is not None:
            settings = settings.with_server(
                host or settings.host,
                int(port) if port is not None else settings.port,
            )

        return settings


__all__ = ("ENV_PREFIX", "Settings")
