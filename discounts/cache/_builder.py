"""
Cache builder — read-through caching of LazyCoroResult fetches.

    automatic = cache(key_fn, fetch).tier(LocalTier(ttl=...)).build()
    match await automatic.get(store_id):
        case Ok(found):
            found.value, found.hit
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace

from kungfu import LazyCoroResult, Result, Ok, Error

from discounts.cache._types import CacheError, CacheErrorKind, CacheResult, Tier

logger = logging.getLogger(__name__)

type KeyFn[K] = Callable[[K], str]
type Fetch[K, T, E] = Callable[[K], LazyCoroResult[T, E]]

# ═══════════════════════════════════════════════════════════════════════════════
# Builder
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CacheBuilder[K, T, E]:
    """Collects tiers; build() freezes them into an executor."""

    key_fn: KeyFn[K]
    fetch: Fetch[K, T, E]
    tiers: tuple[Tier[T], ...] = ()

    def tier(self, t: Tier[T]) -> CacheBuilder[K, T, E]:
        """Append a tier. Reads go through tiers in the order they were added."""
        return replace(self, tiers=(*self.tiers, t))

    def build(self) -> CacheExecutor[K, T, E]:
        return CacheExecutor(self.key_fn, self.fetch, self.tiers)


class _Generations:
    """
    Invalidation counters for keys with a fetch in flight.

    A fetch takes a token before it starts; its result is stored only if
    no invalidation touched the key in the meantime.
    """

    __slots__ = ("_epoch", "_bumps", "_inflight")

    def __init__(self) -> None:
        self._epoch = 0
        self._bumps: dict[str, int] = {}
        self._inflight: dict[str, int] = {}

    def _current(self, cache_key: str) -> tuple[int, int]:
        return self._epoch, self._bumps.get(cache_key, 0)

    def begin(self, cache_key: str) -> tuple[int, int]:
        self._inflight[cache_key] = self._inflight.get(cache_key, 0) + 1
        return self._current(cache_key)

    def end(self, cache_key: str, token: tuple[int, int]) -> bool:
        """Release the token. True if the fetched value is still current."""
        current = self._current(cache_key) == token
        left = self._inflight[cache_key] - 1
        if left:
            self._inflight[cache_key] = left
        else:
            del self._inflight[cache_key]
            self._bumps.pop(cache_key, None)
        return current

    def bump(self, cache_key: str) -> None:
        if cache_key in self._inflight:
            self._bumps[cache_key] = self._bumps.get(cache_key, 0) + 1

    def bump_all(self) -> None:
        self._epoch += 1


# ═══════════════════════════════════════════════════════════════════════════════
# Executor
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CacheExecutor[K, T, E]:
    """
    Read-through cache over a fetch.

    A tier that raises is logged and skipped on reads and writes, so a
    broken tier degrades to a miss. Only successful fetches are stored,
    and only when the key was not invalidated while the fetch ran.
    """

    key_fn: KeyFn[K]
    fetch: Fetch[K, T, E]
    tiers: tuple[Tier[T], ...]
    _generations: _Generations = field(
        default_factory=_Generations, init=False, repr=False, compare=False,
    )

    async def _read(self, cache_key: str) -> CacheResult[T] | None:
        for t in self.tiers:
            try:
                value = await t.get(cache_key)
            except Exception as e:
                logger.warning("Cache tier %s read failed for %s: %s", t.name, cache_key, e)
                continue
            if value is None:
                continue
            remaining = getattr(t, "remaining", None)
            return CacheResult(
                value=value,
                hit=True,
                tier=t.name,
                ttl_remaining=remaining(cache_key) if remaining is not None else None,
            )
        return None

    async def _fill(self, cache_key: str, value: T) -> None:
        for t in self.tiers:
            try:
                await t.set(cache_key, value)
            except Exception as e:
                logger.warning("Cache tier %s write failed for %s: %s", t.name, cache_key, e)

    def get(self, key: K) -> LazyCoroResult[CacheResult[T], E]:
        """Cached value for key, fetched and stored on a miss."""
        cache_key = self.key_fn(key)

        async def run() -> Result[CacheResult[T], E]:
            cached = await self._read(cache_key)
            if cached is not None:
                return Ok(cached)
            token = self._generations.begin(cache_key)
            try:
                fetched = await self.fetch(key)
            finally:
                current = self._generations.end(cache_key, token)
            match fetched:
                case Ok(value):
                    if current:
                        await self._fill(cache_key, value)
                    else:
                        logger.debug("Not caching %s, invalidated during fetch", cache_key)
                    return Ok(CacheResult(value=value, hit=False, tier=None, ttl_remaining=None))
                case Error(e):
                    return Error(e)

        return LazyCoroResult(run)

    async def _sweep(self, drop: Callable[[Tier[T]], Awaitable[int]]) -> Result[int, CacheError]:
        removed = 0
        for t in self.tiers:
            try:
                removed += await drop(t)
            except Exception as e:
                return Error(CacheError(CacheErrorKind.CONNECTION, f"{t.name}: {e}"))
        return Ok(removed)

    async def invalidate(self, key: K) -> Result[bool, CacheError]:
        """Drop key from every tier. Ok(True) if any tier held it."""
        cache_key = self.key_fn(key)
        self._generations.bump(cache_key)

        async def drop(t: Tier[T]) -> int:
            return int(await t.delete(cache_key))

        match await self._sweep(drop):
            case Ok(removed):
                return Ok(removed > 0)
            case Error(e):
                return Error(e)

    async def invalidate_pattern(self, pattern: str) -> Result[int, CacheError]:
        """Drop every key matching a glob pattern, e.g. "automatic:*"."""
        self._generations.bump_all()

        async def drop(t: Tier[T]) -> int:
            return await t.delete_pattern(pattern)

        return await self._sweep(drop)


def cache[K, T, E](key: KeyFn[K], fetch: Fetch[K, T, E]) -> CacheBuilder[K, T, E]:
    """Start a cache over fetch, keyed by key(input)."""
    return CacheBuilder(key, fetch)


__all__ = ("CacheBuilder", "CacheExecutor", "cache")
