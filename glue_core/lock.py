# glue_core/lock.py
"""
@file lock.py
@brief Exclusive FIFO task queue guarding the single automation resource.

Every operation that touches the resource is submitted here as an
``async def task(resource)`` callable. Tasks run one at a time, strictly in
submission order, and each caller gets its own result or exception back.

A task that never settles starves the queue; there is no timeout and no
cancellation of queued work. Bounded waits belong to the interaction
primitives inside each task (see ``glue_core.waits``).
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Awaitable, Callable, Deque, Generic, Optional, TypeVar

from .exceptions import InvariantViolation

log = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

Task = Callable[[T], Awaitable[R]]


class ExclusiveTaskQueue(Generic[T]):
    """
    Serializes asynchronous tasks against one shared resource.

    The queue holds a ``locked`` flag and a FIFO of deferred closures. An
    unlocked queue runs the submitted task immediately; a locked one parks a
    closure that is later run by a single drainer task. When the FIFO runs
    dry the queue unlocks.
    """

    def __init__(self, resource: T):
        self._resource = resource
        self._waiters: Deque[Callable[[], Awaitable[None]]] = deque()
        self._locked = False
        self._drainer: Optional[asyncio.Task] = None

    @property
    def locked(self) -> bool:
        return self._locked

    def __len__(self) -> int:
        return len(self._waiters)

    def unsafe(self) -> T:
        """
        Return the resource without acquiring the queue.

        Only for read-only operations that tolerate interleaving with an
        in-flight task, such as coarse foreground probes.
        """
        return self._resource

    async def submit(self, task: Task) -> R:
        if self._locked:
            log.debug("Queuing")
            future = asyncio.get_running_loop().create_future()
            self._waiters.append(self._deferred(task, future))
            return await future

        log.debug("Locking")
        self._locked = True
        try:
            return await task(self._resource)
        finally:
            self._after()

    lock = submit

    def _deferred(self, task: Task, future: asyncio.Future) -> Callable[[], Awaitable[None]]:
        async def run() -> None:
            try:
                result = await task(self._resource)
            except asyncio.CancelledError:
                # Settles this caller only; the drainer moves on to the next task.
                future.cancel()
            except Exception as exc:
                if not future.done():
                    future.set_exception(exc)
            else:
                if not future.done():
                    future.set_result(result)

        return run

    def _after(self) -> None:
        if not self._waiters:
            log.debug("Unlocking")
            self._locked = False
            return
        self._drainer = asyncio.get_running_loop().create_task(self._drain())

    def _dequeue(self) -> Callable[[], Awaitable[None]]:
        try:
            return self._waiters.popleft()
        except IndexError:
            raise InvariantViolation("lock queue empty") from None

    async def _drain(self) -> None:
        while True:
            item = self._dequeue()
            log.debug("Running task %r", item)
            await item()
            if not self._waiters:
                break
        log.debug("Unlocking")
        self._locked = False
