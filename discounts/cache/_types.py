"""
Cache types — tiers, results, errors.
"""

from __future__ import annotations

import fnmatch
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum, auto
from typing import Protocol

# ═══════════════════════════════════════════════════════════════════════════════
# Tier Protocol
# ═══════════════════════════════════════════════════════════════════════════════


class Tier[T](Protocol):
    """
    Storage behind a cache, keyed by the string from key_fn.

    Implement this for shared backends when several workers price carts
    against the same database.
    """

    @property
    def name(self) -> str:
        """Tier name for logs."""
        ...

    async def get(self, key: str) -> T | None:
        """None means absent or expired."""
        ...

    async def set(self, key: str, value: T) -> None:
        ...

    async def delete(self, key: str) -> bool:
        """True if the key was present."""
        ...

    async def delete_pattern(self, pattern: str) -> int:
        """Delete keys matching a glob pattern. Returns count."""
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# Local Tier — In-Memory LRU with TTL
# ═══════════════════════════════════════════════════════════════════════════════


class LocalTier[T]:
    """
    In-memory LRU tier. Entries older than ttl read as misses.

    Example:
        tier = LocalTier[list[Discount]](max_size=500, ttl=timedelta(seconds=30))
    """

    def __init__(
        self,
        max_size: int = 1000,
        ttl: timedelta | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_size = max_size
        self._ttl = ttl.total_seconds() if ttl is not None else None
        self._clock = clock
        self._entries: OrderedDict[str, tuple[T, float | None]] = OrderedDict()

    @property
    def name(self) -> str:
        return "local"

    def __len__(self) -> int:
        return len(self._entries)

    def remaining(self, key: str) -> timedelta | None:
        entry = self._entries.get(key)
        if entry is None or entry[1] is None:
            return None
        return timedelta(seconds=max(entry[1] - self._clock(), 0.0))

    async def get(self, key: str) -> T | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return value

    async def set(self, key: str, value: T) -> None:
        if key in self._entries:
            self._entries.move_to_end(key)
        elif len(self._entries) >= self._max_size:
            self._entries.popitem(last=False)
        expires_at = self._clock() + self._ttl if self._ttl is not None else None
        self._entries[key] = (value, expires_at)

    async def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def delete_pattern(self, pattern: str) -> int:
        doomed = [k for k in self._entries if fnmatch.fnmatch(k, pattern)]
        for key in doomed:
            del self._entries[key]
        return len(doomed)


# ═══════════════════════════════════════════════════════════════════════════════
# Cache Result
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CacheResult[T]:
    """Cached value with where it came from."""
    value: T
    hit: bool
    tier: str | None
    ttl_remaining: timedelta | None


class CacheErrorKind(Enum):
    CONNECTION = auto()


@dataclass(frozen=True, slots=True)
class CacheError:
    kind: CacheErrorKind
    message: str


__all__ = (
    "Tier",
    "LocalTier",
    "CacheResult",
    "CacheError",
    "CacheErrorKind",
)
