# glue_core/correlator.py
"""
@file correlator.py
@brief Pending event bookkeeping and correlation id validation.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Callable, Optional

from .exceptions import InvariantViolation

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingEvent:
    correlation_id: str
    kind: Optional[str] = None


class EventCorrelator:
    """
    Owns the at-most-one pending event of a session.

    The pending event is recorded by a positive detection and cleared only
    by a resolving command carrying the same correlation id. All mutations
    happen inside a task holding the exclusive queue.
    """

    def __init__(self, id_factory: Optional[Callable[[], str]] = None):
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))
        self._pending: Optional[PendingEvent] = None

    @property
    def pending(self) -> Optional[PendingEvent]:
        return self._pending

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def mint(self) -> str:
        return self._id_factory()

    def record(self, event: PendingEvent) -> None:
        if self._pending is not None:
            raise InvariantViolation(
                f"bug: event {event.correlation_id} raised while "
                f"{self._pending.correlation_id} is still pending"
            )
        log.debug("pending event %s (%s)", event.correlation_id, event.kind)
        self._pending = event

    def resolve(self, correlation_id: str) -> PendingEvent:
        pending = self._pending
        if pending is None or pending.correlation_id != correlation_id:
            raise InvariantViolation(
                "bug: pending event doesn't match executed event "
                f"(pending={pending.correlation_id if pending else None!r}, "
                f"executed={correlation_id!r})"
            )
        log.debug("resolved event %s", correlation_id)
        self._pending = None
        return pending

    def clear(self) -> None:
        self._pending = None
