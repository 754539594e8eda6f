"""
Cart pricing graph.

    RequestNode ──┬── AutomaticNode ──┬── HistoryNode ──┐
                  └── CouponNode ─────┴─────────────────┴── CandidatesNode ── CartDiscountNode

Automatic discounts and the coupon lookup are independent, so nodnod runs
them concurrently. Store failures travel through the graph as Error values.
"""

from kungfu import Result, Ok, Error

from discounts import rules as R
from discounts.engine._graph import node
from discounts.engine._history import load_history
from discounts.engine._types import CartRequest, EngineError
from discounts.rules import Candidate, CartDiscountResult, CustomerHistory, Discount

# ═══════════════════════════════════════════════════════════════════════════════
# Entry Node
# ═══════════════════════════════════════════════════════════════════════════════


@node
class RequestNode:
    """Wraps CartRequest for the graph."""

    def __init__(self, data: CartRequest) -> None:
        self.data = data

    @classmethod
    def __compose__(cls, request: CartRequest) -> "RequestNode":
        return cls(request)


# ═══════════════════════════════════════════════════════════════════════════════
# Lookups
# ═══════════════════════════════════════════════════════════════════════════════


@node
class AutomaticNode:
    """Live automatic discounts of the store, possibly from cache."""

    def __init__(self, result: Result[list[Discount], EngineError]) -> None:
        self.result = result

    @classmethod
    async def __compose__(cls, request: RequestNode) -> "AutomaticNode":
        match await request.data.automatic(request.data.context.store_id):
            case Ok(discounts):
                return cls(Ok(discounts))
            case Error(e):
                return cls(Error(EngineError.from_store(e)))


@node
class CouponNode:
    """The active discount behind the coupon code, if one was entered."""

    def __init__(self, result: Result[Discount | None, EngineError]) -> None:
        self.result = result

    @classmethod
    async def __compose__(cls, request: RequestNode) -> "CouponNode":
        code = request.data.coupon_code
        if not code:
            return cls(Ok(None))
        found = await request.data.store.find_by_code(request.data.context.store_id, code)
        match found:
            case Ok(discount):
                return cls(Ok(discount))
            case Error(e):
                return cls(Error(EngineError.from_store(e)))


def _discounts(automatic: AutomaticNode, coupon: CouponNode) -> Result[list[Discount], EngineError]:
    match automatic.result, coupon.result:
        case Error(e), _:
            return Error(e)
        case _, Error(e):
            return Error(e)
        case Ok(auto), Ok(None):
            return Ok(list(auto))
        case Ok(auto), Ok(entered):
            # An automatic discount entered as a code counts once.
            if any(d.id == entered.id for d in auto):
                return Ok(list(auto))
            return Ok([*auto, entered])


@node
class HistoryNode:
    """Customer history covering every candidate discount."""

    def __init__(self, result: Result[CustomerHistory, EngineError]) -> None:
        self.result = result

    @classmethod
    async def __compose__(
        cls,
        request: RequestNode,
        automatic: AutomaticNode,
        coupon: CouponNode,
    ) -> "HistoryNode":
        match _discounts(automatic, coupon):
            case Error(e):
                return cls(Error(e))
            case Ok(discounts):
                loaded = await load_history(
                    request.data.store,
                    request.data.context.customer_id,
                    discounts,
                )
                match loaded:
                    case Ok(history):
                        return cls(Ok(history))
                    case Error(e):
                        return cls(Error(EngineError.from_store(e)))


# ═══════════════════════════════════════════════════════════════════════════════
# Evaluation
# ═══════════════════════════════════════════════════════════════════════════════


@node
class CandidatesNode:
    """Valid discounts that take something off (or ship free), ranked."""

    def __init__(self, result: Result[list[Candidate], EngineError]) -> None:
        self.result = result

    @classmethod
    def __compose__(
        cls,
        request: RequestNode,
        automatic: AutomaticNode,
        coupon: CouponNode,
        history: HistoryNode,
    ) -> "CandidatesNode":
        match _discounts(automatic, coupon), history.result:
            case Error(e), _:
                return cls(Error(e))
            case _, Error(e):
                return cls(Error(e))
            case Ok(discounts), Ok(loaded):
                req = request.data
                candidates = []
                for discount in discounts:
                    result = R.evaluate(discount, req.context, loaded, req.now, req.currency)
                    if result.is_valid and (result.discount_amount > 0 or result.free_shipping):
                        candidates.append(Candidate(discount, result))
                return cls(Ok(R.rank(candidates)))


@node
class CartDiscountNode:
    """Final cart result after combinability is resolved."""

    def __init__(self, result: Result[CartDiscountResult, EngineError]) -> None:
        self.result = result

    @classmethod
    def __compose__(cls, candidates: CandidatesNode) -> "CartDiscountNode":
        match candidates.result:
            case Ok(ranked):
                return cls(Ok(R.resolve(ranked)))
            case Error(e):
                return cls(Error(e))


__all__ = (
    "RequestNode",
    "AutomaticNode",
    "CouponNode",
    "HistoryNode",
    "CandidatesNode",
    "CartDiscountNode",
)
