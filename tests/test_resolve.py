from decimal import Decimal

import pytest

from discounts.rules import EMPTY_CART_RESULT, Candidate, DiscountResult, pick_best, rank, resolve
from tests.factories import candidate


def codes(result):
    return [a.code for a in result.applied_discounts]


def test_rank_by_priority_then_amount():
    ranked = rank([
        candidate("LATE", "50", priority=2),
        candidate("SMALL", "5", priority=1),
        candidate("BIG", "15", priority=1),
    ])
    assert [c.discount.code for c in ranked] == ["BIG", "SMALL", "LATE"]


def test_resolve_nothing():
    assert resolve([]) == EMPTY_CART_RESULT


def test_exclusive_wins_when_it_saves_more():
    result = resolve(rank([
        candidate("EXCL", "10"),
        candidate("STACK1", "4", combinable=True),
        candidate("STACK2", "5", combinable=True),
    ]))
    assert codes(result) == ["EXCL"]
    assert result.total_discount == Decimal("10.00")


def test_exclusive_wins_ties():
    result = resolve(rank([
        candidate("EXCL", "9"),
        candidate("STACK1", "4", combinable=True),
        candidate("STACK2", "5", combinable=True),
    ]))
    assert codes(result) == ["EXCL"]


def test_combinables_stack_when_they_save_more():
    result = resolve(rank([
        candidate("EXCL", "8"),
        candidate("STACK1", "4", combinable=True, items={"a": Decimal("4.00")}),
        candidate("STACK2", "5", combinable=True, free_shipping=True, items={"a": Decimal("2.00"), "b": Decimal("3.00")}),
    ]))

    assert codes(result) == ["STACK2", "STACK1"]
    assert result.total_discount == Decimal("9.00")
    assert result.free_shipping
    assert result.item_discounts == {"a": Decimal("6.00"), "b": Decimal("3.00")}


def test_first_ranked_exclusive_is_the_one_considered():
    result = resolve(rank([
        candidate("FIRST", "5", priority=0),
        candidate("SECOND", "50", priority=1),
    ]))
    assert codes(result) == ["FIRST"]


def test_pick_best_largest_amount():
    best = pick_best([candidate("A", "5"), candidate("B", "12"), candidate("C", "7")])
    assert best is not None
    assert best.discount.code == "B"


def test_pick_best_tie_breaks():
    shipping = candidate("ZSHIP", "10", free_shipping=True)
    assert pick_best([candidate("AFLAT", "10"), shipping]) is shipping

    urgent = candidate("ZZZ", "10", priority=-1)
    assert pick_best([candidate("AAA", "10"), urgent]) is urgent

    assert pick_best([candidate("BETA", "10"), candidate("ALPHA", "10")]).discount.code == "ALPHA"


def test_pick_best_ignores_invalid():
    expired = candidate("BAD", "99").discount
    invalid = Candidate(expired, DiscountResult.invalid("This discount has expired"))

    assert pick_best([invalid]) is None
    assert pick_best([invalid, candidate("OK", "1")]).discount.code == "OK"


def test_resolve_rejects_candidates_without_applied_discount():
    exclusive = Candidate(candidate("BAD", "0").discount, DiscountResult.invalid("x"))
    combinable = Candidate(
        candidate("ALSO", "0", combinable=True).discount, DiscountResult.invalid("x"),
    )

    with pytest.raises(ValueError, match="BAD"):
        resolve([exclusive])
    with pytest.raises(ValueError, match="ALSO"):
        resolve([combinable, candidate("OK", "5", combinable=True)])
