"""
Shared aliases and the kungfu Result types every fallible call returns.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from decimal import Decimal

# Re-export from kungfu
from kungfu import Result, Ok, Error, LazyCoroResult

# ═══════════════════════════════════════════════════════════════════════════════
# Aliases
# ═══════════════════════════════════════════════════════════════════════════════

type Money = Decimal
"""Monetary amount, always quantized to cents."""

type DiscountId = str
type StoreId = str
type CustomerId = str
type ItemId = str

type Clock = Callable[[], datetime]
"""Source of "now" for date windows and timestamps."""


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    # Re-exports from kungfu
    "Result",
    "Ok",
    "Error",
    "LazyCoroResult",
    # Aliases
    "Money",
    "DiscountId",
    "StoreId",
    "CustomerId",
    "ItemId",
    "Clock",
)
