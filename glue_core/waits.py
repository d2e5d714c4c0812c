# glue_core/waits.py
"""
@file waits.py
@brief Async wait and retry utilities for resource interactions.

These are the bounded waits that interaction primitives use to absorb
transient failures (an element vanishing between an existence check and a
click). The exclusive queue itself never times out.

Every helper accepts plain or coroutine callables.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from typing import Any, Callable, Optional, Tuple, TypeVar

from .exceptions import TimeoutError

log = logging.getLogger(__name__)

T = TypeVar("T")


async def _call(func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result


class _Deadline:
    """Monotonic deadline shared by one wait."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        self.started = time.monotonic()
        self.attempts = 0

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started

    @property
    def remaining(self) -> float:
        return self.timeout - self.elapsed

    async def pause(self, interval: float) -> bool:
        """Sleep until the next attempt; False once the deadline passed."""
        left = self.remaining
        if left <= 0:
            return False
        await asyncio.sleep(min(interval, left))
        return True

    def expired(
        self,
        message: str,
        description: str,
        stage: Optional[str],
        cause: Optional[BaseException] = None,
        timeout: Optional[float] = None,
    ) -> TimeoutError:
        error = TimeoutError(message)
        error.original_exception = cause
        error.description = description
        error.timeout = self.timeout if timeout is None else timeout
        error.attempt_count = self.attempts
        error.elapsed_time = self.elapsed
        error.stage = stage
        log.debug("wait expired: %s (attempts=%d elapsed=%.3fs)", description, self.attempts, self.elapsed)
        return error


async def wait_until(
    predicate: Callable[[], Any],
    timeout: float,
    interval: float = 0.2,
    description: str = "condition",
    stage: Optional[str] = None,
) -> Any:
    """
    Poll ``predicate`` until it returns something truthy and return that.

    Exceptions from the predicate count as a falsy result; the last one is
    attached to the TimeoutError.
    """
    deadline = _Deadline(timeout)
    last_error: Optional[Exception] = None

    while True:
        deadline.attempts += 1
        try:
            result = await _call(predicate)
        except Exception as e:
            last_error = e
        else:
            if result:
                return result
        if not await deadline.pause(interval):
            break

    reason = (
        f"{type(last_error).__name__}: {last_error}" if last_error is not None
        else "condition kept returning falsy"
    )
    raise deadline.expired(
        f"Timed out waiting for {description} after {timeout}s ({reason})",
        description, stage, cause=last_error,
    )


async def wait_until_not(
    predicate: Callable[[], Any],
    timeout: float,
    interval: float = 0.2,
    description: str = "condition to become false",
    stage: Optional[str] = None,
) -> None:
    """Poll ``predicate`` until it returns something falsy."""
    deadline = _Deadline(timeout)

    while True:
        deadline.attempts += 1
        if not await _call(predicate):
            return
        if not await deadline.pause(interval):
            break

    raise deadline.expired(
        f"Timed out waiting for {description} after {timeout}s (condition kept returning truthy)",
        description, stage,
    )


async def wait_until_passes(
    func: Callable[..., T],
    timeout: float,
    interval: float = 0.2,
    exceptions: Tuple[type, ...] = (Exception,),
    description: str = "operation",
    *args: Any,
    stage: Optional[str] = None,
    **kwargs: Any,
) -> T:
    """
    Call ``func(*args, **kwargs)`` until it stops raising ``exceptions``.

    Other exception types propagate immediately.
    """
    deadline = _Deadline(timeout)

    while True:
        deadline.attempts += 1
        try:
            return await _call(func, *args, **kwargs)
        except exceptions as e:
            if deadline.remaining <= 0:
                raise deadline.expired(
                    f"Timed out waiting for {description} after {timeout}s "
                    f"({deadline.attempts} attempts, last error {type(e).__name__}: {e})",
                    description, stage, cause=e,
                ) from e
            log.debug("%s failed with %s, retrying", description, type(e).__name__)
            await deadline.pause(interval)


async def retry(
    func: Callable[..., T],
    max_attempts: int = 3,
    interval: float = 0.5,
    exceptions: Tuple[type, ...] = (Exception,),
    description: str = "operation",
    *args: Any,
    stage: Optional[str] = None,
    **kwargs: Any,
) -> T:
    """
    Call ``func`` up to ``max_attempts`` times, sleeping ``interval`` between tries.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    deadline = _Deadline(0.0)
    last_error: Optional[BaseException] = None

    while deadline.attempts < max_attempts:
        deadline.attempts += 1
        try:
            return await _call(func, *args, **kwargs)
        except exceptions as e:
            last_error = e
            if deadline.attempts < max_attempts:
                log.debug("%s attempt %d failed, retrying", description, deadline.attempts)
                await asyncio.sleep(interval)

    raise deadline.expired(
        f"Failed {description} after {max_attempts} attempts "
        f"(last error {type(last_error).__name__}: {last_error})",
        description, stage, cause=last_error, timeout=deadline.elapsed,
    ) from last_error
