"""
Cache — tiered caching for hot discount lookups.

    from discounts import cache as C

    automatic = C.cache(key_fn, fetch_fn).tier(C.LocalTier(max_size=100)).build()
    result = await automatic.get(store_id)
"""

from discounts.cache._types import (
    Tier,
    LocalTier,
    CacheResult,
    CacheError,
    CacheErrorKind,
)
from discounts.cache._builder import cache, CacheBuilder, CacheExecutor

__all__ = (
    "Tier",
    "LocalTier",
    "CacheResult",
    "CacheError",
    "CacheErrorKind",
    "cache",
    "CacheBuilder",
    "CacheExecutor",
)
