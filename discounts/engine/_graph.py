"""
Pipeline — a nodnod graph compiled once and run per request.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, cast

from nodnod import EventLoopAgent, Node, Scope, scalar_node as node


@dataclass(frozen=True, slots=True)
class Pipeline[T]:
    """
    Everything the target node depends on, discovered from its
    __compose__ signature. Independent nodes run concurrently.

    Example:
        pricing = Pipeline.build(CartDiscountNode)
        cart = await pricing.run(request)
    """

    target: type[T]
    agent: EventLoopAgent

    @classmethod
    def build(cls, target: type[T]) -> Pipeline[T]:
        return cls(target, EventLoopAgent.build({cast(type[Node[Any, Any]], target)}))

    async def run(self, *inputs: object) -> T:
        """Resolve the target with inputs injected by their runtime type."""
        async with Scope(detail=f"pipeline:{self.target.__name__}") as scope:
            for value in inputs:
                scope.inject(type(value), value)
            await self.agent.run(scope, {})
            resolved = scope.get(self.target)
            if resolved is None:
                raise LookupError(f"{self.target.__name__} was not resolved")
            return cast(T, resolved.value)


__all__ = ("node", "Pipeline")
