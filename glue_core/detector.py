# glue_core/detector.py
"""
@file detector.py
@brief Mutually-exclusive condition predicates evaluated against the resource.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from .exceptions import InvariantViolation

log = logging.getLogger(__name__)


async def gather_checks(*checks: Awaitable[Any]) -> List[Any]:
    """
    Await ``checks`` concurrently and return their results in order.

    If one check raises, the others are cancelled and awaited before the
    error propagates, so none of them outlives the task that started it.
    """
    tasks = [asyncio.ensure_future(c) for c in checks]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for t in tasks:
            t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


@dataclass(frozen=True)
class Condition:
    """
    A named observable state of the resource.

    ``predicate`` must not interfere with the other predicates, since all of
    them are evaluated concurrently. ``handler`` builds the event payload and
    may interact with the resource.
    """
    name: str
    predicate: Callable[[Any], Awaitable[bool]]
    handler: Callable[[Any], Awaitable[Any]]


@dataclass(frozen=True)
class Detection:
    condition: Condition
    payload: Any

    @property
    def kind(self) -> str:
        return self.condition.name


class ConditionDetector:
    def __init__(
        self,
        conditions: Sequence[Condition],
        prepare: Optional[Callable[[Any], Awaitable[None]]] = None,
    ):
        names = [c.name for c in conditions]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate condition names: {names}")
        self._conditions = list(conditions)
        self._prepare = prepare

    @property
    def conditions(self) -> Sequence[Condition]:
        return tuple(self._conditions)

    async def detect(self, resource: Any) -> Optional[Condition]:
        """
        Return the single active condition, or None.

        @throws InvariantViolation if more than one predicate holds
        """
        if self._prepare is not None:
            await self._prepare(resource)

        # All checks run together to save round trips.
        results = await gather_checks(*(c.predicate(resource) for c in self._conditions))

        active = [c for c, hit in zip(self._conditions, results) if hit]
        if len(active) > 1:
            raise InvariantViolation(
                "bug: multiple event emitters triggered: "
                + ", ".join(c.name for c in active)
            )
        if not active:
            return None
        log.debug("condition %s active", active[0].name)
        return active[0]

    async def evaluate(self, resource: Any) -> Optional[Detection]:
        condition = await self.detect(resource)
        if condition is None:
            return None
        payload = await condition.handler(resource)
        return Detection(condition=condition, payload=payload)
