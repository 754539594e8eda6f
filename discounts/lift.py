"""
Lift — helpers for lifting store calls into lazy computations.

Re-exports from combinators.lift with discount-specific additions.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from functools import partial

from kungfu import LazyCoroResult, Result

from combinators.lift import pure


def deferred[T, E](
    fn: Callable[..., Awaitable[Result[T, E]]],
    *args: object,
) -> LazyCoroResult[T, E]:
    """
    Defer a Result-returning coroutine call until the computation is awaited.

    Example:
        count = deferred(store.customer_usage_count, discount_id, customer_id)
        result = await count
    """
    return LazyCoroResult(partial(fn, *args))


__all__ = (
    # From combinators.lift
    "pure",
    # Discount additions
    "deferred",
)
