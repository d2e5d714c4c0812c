# glue_core/watcher.py
"""
@file watcher.py
@brief Background liveness watcher and condition polling loop.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional

from .correlator import EventCorrelator, PendingEvent
from .detector import ConditionDetector
from .events import GlueEvent
from .exceptions import FatalError
from .lock import ExclusiveTaskQueue

log = logging.getLogger(__name__)


class LivenessWatcher:
    """
    Keeps the application observable and polls it for conditions.

    Each cycle: skip entirely while an event is pending; otherwise probe the
    foreground state. A background app is re-activated once it has been
    unobservable for longer than ``threshold`` seconds. A foreground app
    refreshes ``last_active`` and runs the detector inside one queued task.

    ``last_active`` is reset when re-activation is issued, not when it
    completes, so a slow activation cannot trigger a burst of duplicates.
    """

    def __init__(
        self,
        queue: ExclusiveTaskQueue,
        detector: ConditionDetector,
        correlator: EventCorrelator,
        publish: Callable[[GlueEvent], None],
        *,
        interval: float = 0.5,
        threshold: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        on_fatal: Optional[Callable[[FatalError], None]] = None,
    ):
        self._queue = queue
        self._detector = detector
        self._correlator = correlator
        self._publish = publish
        self.interval = interval
        self.threshold = threshold
        self._clock = clock
        self._sleep = sleep
        self._on_fatal = on_fatal
        self.running = False
        self.last_active = clock()
        self.activations = 0
        self.failure: Optional[FatalError] = None
        self._task: Optional[asyncio.Task] = None

    def start(self) -> None:
        if self._task is not None:
            return
        self.running = True
        self._task = asyncio.get_running_loop().create_task(self._watch())

    async def stop(self) -> None:
        self.running = False
        if self._task is not None:
            await self._task

    async def _watch(self) -> None:
        try:
            while self.running:
                await self._sleep(self.interval)
                if not self.running:
                    break
                await self.cycle()
        except Exception as e:
            log.error("watcher failed: %s: %s", type(e).__name__, e, exc_info=True)
            self.running = False
            self.failure = FatalError(e, origin="watcher")
            if self._on_fatal is not None:
                self._on_fatal(self.failure)

    async def cycle(self) -> None:
        """Run one polling cycle."""
        if self._correlator.has_pending:
            return

        foreground = await self._queue.unsafe().probe_foreground()
        now = self._clock()

        if not foreground:
            inactive = now - self.last_active
            if inactive > self.threshold:
                # Flip back to the app every so often to check for events.
                self.last_active = now
                self.activations += 1
                log.info("app inactive for %.1fs, re-activating", inactive)
                await self._queue.submit(self._reactivate)
            return

        self.last_active = now
        await self._queue.submit(self._detect)

    async def _reactivate(self, resource: Any) -> None:
        await resource.activate()

    async def _detect(self, resource: Any) -> None:
        if self._correlator.has_pending:
            return
        detection = await self._detector.evaluate(resource)
        if detection is None:
            return
        correlation_id = self._correlator.mint()
        self._correlator.record(PendingEvent(correlation_id, detection.kind))
        self._publish(GlueEvent(detection.kind, correlation_id, detection.payload))
