"""
Resolution — ranking candidates and deciding which ones stack.
"""

from __future__ import annotations

from collections.abc import Iterable

from discounts import money as M
from discounts._types import ItemId, Money
from discounts.rules._types import (
    AppliedDiscount,
    Candidate,
    CartDiscountResult,
    EMPTY_CART_RESULT,
)


def rank(candidates: Iterable[Candidate]) -> list[Candidate]:
    """Priority ascending, then larger discount first."""
    return sorted(
        candidates,
        key=lambda c: (c.discount.priority, -c.result.discount_amount),
    )


def _applied(candidate: Candidate) -> AppliedDiscount:
    applied = candidate.result.applied_discount
    if applied is None:
        raise ValueError(f"Candidate {candidate.discount.code} has no applied discount")
    return applied


def _alone(candidate: Candidate) -> CartDiscountResult:
    result = candidate.result
    return CartDiscountResult(
        total_discount=M.round_money(result.discount_amount),
        free_shipping=result.free_shipping,
        applied_discounts=(_applied(candidate),),
        item_discounts=dict(result.item_discounts),
    )


def _stacked(candidates: list[Candidate]) -> CartDiscountResult:
    total = M.ZERO
    free_shipping = False
    applied = []
    per_item: dict[ItemId, Money] = {}
    for c in candidates:
        applied.append(_applied(c))
        total = M.add(total, c.result.discount_amount)
        free_shipping = free_shipping or c.result.free_shipping
        for item_id, amount in c.result.item_discounts.items():
            per_item[item_id] = M.add(per_item.get(item_id, M.ZERO), amount)
    return CartDiscountResult(
        total_discount=total,
        free_shipping=free_shipping,
        applied_discounts=tuple(applied),
        item_discounts=per_item,
    )


def resolve(candidates: Iterable[Candidate]) -> CartDiscountResult:
    """
    Combine ranked candidates into one cart result.

    The first non-combinable discount is used alone when it saves at least
    as much as every combinable discount together. Otherwise the combinable
    ones stack.
    """
    ranked = list(candidates)
    if not ranked:
        return EMPTY_CART_RESULT

    combinable = [c for c in ranked if c.discount.is_combinable]
    exclusive = next((c for c in ranked if not c.discount.is_combinable), None)
    combinable_total = M.total(c.result.discount_amount for c in combinable)

    if exclusive is not None and exclusive.result.discount_amount >= combinable_total:
        return _alone(exclusive)
    if combinable:
        return _stacked(combinable)
    return EMPTY_CART_RESULT


def pick_best(candidates: Iterable[Candidate]) -> Candidate | None:
    """
    Best single discount for the customer.

    Largest amount wins; ties go to free shipping, then lower priority
    value, then code alphabetically.
    """
    valid = [c for c in candidates if c.result.is_valid]
    if not valid:
        return None
    return min(
        valid,
        key=lambda c: (
            -c.result.discount_amount,
            not c.result.free_shipping,
            c.discount.priority,
            c.discount.code,
        ),
    )


__all__ = ("rank", "resolve", "pick_best")
