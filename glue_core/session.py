# glue_core/session.py
"""
@file session.py
@brief Session facade composing the task queue, correlator and watcher.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional

from .config import GlueConfig
from .correlator import EventCorrelator, PendingEvent
from .detector import ConditionDetector
from .events import EventSink, GlueEvent
from .exceptions import FatalError, InvariantViolation, SessionClosedError
from .interfaces import IResource
from .lock import ExclusiveTaskQueue
from .watcher import LivenessWatcher

log = logging.getLogger(__name__)

Supervisor = Callable[[FatalError], None]

# Events kept for next_event; the oldest is dropped once full.
EVENT_BACKLOG = 16


class GlueSession:
    """
    One automation session: the public surface of the engine.

    Commands are submitted with ``submit``; a command tagged with a
    correlation id resolves the pending event with that id when it settles.
    Events are published to ``sink`` and can be awaited with ``next_event``.

    Fatal failures (a crashed watcher, a correlation mismatch) are handed to
    ``supervisor`` as ``FatalError`` values; the session never exits the
    process on its own.
    """

    def __init__(
        self,
        resource: IResource,
        detector: ConditionDetector,
        *,
        config: Optional[GlueConfig] = None,
        sink: Optional[EventSink] = None,
        supervisor: Optional[Supervisor] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self.config = config or GlueConfig()
        self._queue: ExclusiveTaskQueue[IResource] = ExclusiveTaskQueue(resource)
        self._correlator = EventCorrelator(id_factory)
        self._sink = sink
        self._supervisor = supervisor
        self._events: asyncio.Queue = asyncio.Queue(EVENT_BACKLOG)
        self._failed = asyncio.Event()
        self._failure: Optional[FatalError] = None
        self._closed = False
        self._watcher = LivenessWatcher(
            self._queue,
            detector,
            self._correlator,
            self._publish,
            interval=self.config.watch_interval,
            threshold=self.config.inactivity_threshold,
            clock=clock,
            sleep=sleep,
            on_fatal=self._fatal,
        )

    # --- State ---

    @property
    def queue(self) -> ExclusiveTaskQueue:
        return self._queue

    @property
    def watcher(self) -> LivenessWatcher:
        return self._watcher

    @property
    def pending(self) -> Optional[PendingEvent]:
        return self._correlator.pending

    @property
    def failure(self) -> Optional[FatalError]:
        return self._failure

    @property
    def closed(self) -> bool:
        return self._closed

    # --- Lifecycle ---

    def start(self) -> GlueSession:
        if self._closed:
            raise SessionClosedError("session already stopped")
        log.info("starting session (interval=%ss threshold=%ss)",
                 self.config.watch_interval, self.config.inactivity_threshold)
        self._watcher.start()
        return self

    async def stop(self) -> None:
        """
        Stop watching, then release the resource inside a final queued task.
        """
        if self._closed:
            return
        self._closed = True
        await self._watcher.stop()
        await self._queue.submit(self._release)
        log.info("session stopped")

    async def _release(self, resource: IResource) -> None:
        self._correlator.clear()
        await resource.close()

    async def __aenter__(self) -> GlueSession:
        return self.start()

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()

    # --- Commands ---

    async def submit(
        self,
        task: Callable[[IResource], Awaitable[Any]],
        correlation_id: Optional[str] = None,
    ) -> Any:
        """
        Run ``task`` with exclusive access to the resource.

        @param correlation_id id of the event this command resolves; checked
               against the pending event once the task settles
        @throws InvariantViolation if the id does not match the pending event
        """
        if self._closed:
            raise SessionClosedError("session already stopped")
        if correlation_id is None:
            return await self._queue.submit(task)

        async def resolving(resource: IResource) -> Any:
            try:
                return await task(resource)
            finally:
                self._settle(correlation_id)

        return await self._queue.submit(resolving)

    lock = submit

    def _settle(self, correlation_id: str) -> None:
        try:
            self._correlator.resolve(correlation_id)
        except InvariantViolation as e:
            self._fatal(FatalError(e, origin="resolve"))
            raise

    # --- Events ---

    def _publish(self, event: GlueEvent) -> None:
        log.info("event %s id=%s", event.kind, event.correlation_id)
        if self._events.full():
            dropped = self._events.get_nowait()
            log.debug("event backlog full, dropping %s id=%s", dropped.kind, dropped.correlation_id)
        self._events.put_nowait(event)
        if self._sink is not None:
            self._sink.emit(event)

    async def next_event(self, timeout: Optional[float] = None) -> GlueEvent:
        return await asyncio.wait_for(self._events.get(), timeout)

    # --- Failures ---

    def _fatal(self, error: FatalError) -> None:
        log.error("%s", error)
        if self._failure is None:
            self._failure = error
            self._failed.set()
        if self._supervisor is not None:
            self._supervisor(error)

    async def wait_failure(self) -> FatalError:
        await self._failed.wait()
        assert self._failure is not None
        return self._failure
