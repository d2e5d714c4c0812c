# tests/test_session.py
"""
Tests for the session facade: correlation, events, lifecycle.
"""

import asyncio

import pytest

from glue_core.config import GlueConfig
from glue_core.detector import Condition, ConditionDetector
from glue_core.events import EventEmitter, GlueEvent
from glue_core.exceptions import InvariantViolation, SessionClosedError
from glue_core.session import EVENT_BACKLOG, GlueSession

from fakes import fast_sleep


def _sign_detector(state):
    """Detector for one 'signmessage' screen that is hidden once answered."""
    async def predicate(resource):
        return state["shown"]

    async def handler(resource):
        return {"message": "hello"}

    return ConditionDetector([Condition("signmessage", predicate, handler)])


def _session(resource, state, failures, sink=None, ids=("u1",)):
    ids = iter(ids)
    return GlueSession(
        resource,
        _sign_detector(state),
        config=GlueConfig(),
        sink=sink,
        supervisor=failures.append,
        sleep=fast_sleep,
        id_factory=lambda: next(ids),
    )


class TestCorrelation:
    """Events and the commands that resolve them."""

    def test_detect_resolve_then_duplicate_resolve(self, resource):
        """u1 is raised, resolved once, and a second resolve is a fatal bug."""
        state = {"shown": True}
        failures = []

        async def answer(r):
            state["shown"] = False
            return "clicked"

        async def main():
            session = _session(resource, state, failures).start()
            event = await session.next_event(timeout=2)
            assert event.kind == "signmessage"
            assert event.correlation_id == "u1"
            assert session.pending.correlation_id == "u1"

            assert await session.submit(answer, "u1") == "clicked"
            assert session.pending is None

            with pytest.raises(InvariantViolation):
                await session.submit(answer, "u1")
            await session.stop()

        asyncio.run(main())
        assert len(failures) == 1
        assert failures[0].origin == "resolve"

    def test_mismatched_id_keeps_pending(self, resource):
        state = {"shown": True}
        failures = []

        async def answer(r):
            return None

        async def main():
            session = _session(resource, state, failures).start()
            await session.next_event(timeout=2)
            with pytest.raises(InvariantViolation):
                await session.submit(answer, "other")
            pending = session.pending
            await session.stop()
            return pending

        pending = asyncio.run(main())
        assert pending.correlation_id == "u1"
        assert failures and isinstance(failures[0].cause, InvariantViolation)

    def test_failed_command_still_settles(self, resource):
        """A resolving command that raises still clears its event."""
        state = {"shown": True}
        failures = []

        async def broken(r):
            state["shown"] = False
            raise RuntimeError("click failed")

        async def main():
            session = _session(resource, state, failures).start()
            await session.next_event(timeout=2)
            with pytest.raises(RuntimeError):
                await session.submit(broken, "u1")
            pending = session.pending
            await session.stop()
            return pending

        assert asyncio.run(main()) is None
        assert failures == []

    def test_events_reach_sink(self, resource):
        """Published events are also emitted on the sink."""
        state = {"shown": True}
        emitter = EventEmitter()
        received = []
        emitter.on("signmessage", received.append)

        async def main():
            session = _session(resource, state, [], sink=emitter).start()
            await session.next_event(timeout=2)
            await session.stop()

        asyncio.run(main())
        assert [e.correlation_id for e in received] == ["u1"]

    def test_unread_events_are_bounded(self, resource):
        """Nobody calling next_event only keeps the newest events around."""
        session = _session(resource, {"shown": False}, [])
        total = EVENT_BACKLOG + 4

        async def main():
            for i in range(total):
                session._publish(GlueEvent("signmessage", f"e{i}"))
            return session._events.qsize(), await session.next_event(timeout=1)

        size, oldest = asyncio.run(main())
        assert size == EVENT_BACKLOG
        assert oldest.correlation_id == "e4"


class TestLifecycle:
    """Start, stop and fatal reporting."""

    def test_stop_releases_resource(self, resource):
        state = {"shown": False}

        async def main():
            async with _session(resource, state, []) as session:
                await asyncio.sleep(0.01)
            return session

        session = asyncio.run(main())
        assert resource.closed
        assert session.closed
        assert not session.watcher.running

    def test_stop_is_idempotent(self, resource):
        async def main():
            session = _session(resource, {"shown": False}, []).start()
            await session.stop()
            await session.stop()

        asyncio.run(main())
        assert resource.closed

    def test_closed_session_refuses_work(self, resource):
        async def noop(r):
            return None

        async def main():
            session = _session(resource, {"shown": False}, []).start()
            await session.stop()
            with pytest.raises(SessionClosedError):
                await session.submit(noop)
            with pytest.raises(SessionClosedError):
                session.start()

        asyncio.run(main())

    def test_watcher_failure_is_reported(self, resource):
        """A crashing detector surfaces through wait_failure."""
        async def predicate(r):
            raise RuntimeError("driver gone")

        async def handler(r):
            return None

        failures = []

        async def main():
            session = GlueSession(
                resource,
                ConditionDetector([Condition("x", predicate, handler)]),
                supervisor=failures.append,
                sleep=fast_sleep,
            ).start()
            error = await asyncio.wait_for(session.wait_failure(), 2)
            await session.stop()
            return session, error

        session, error = asyncio.run(main())
        assert error.origin == "watcher"
        assert isinstance(error.cause, RuntimeError)
        assert session.failure is error
        assert failures == [error]

    def test_next_event_times_out(self, resource):
        async def main():
            session = _session(resource, {"shown": False}, []).start()
            try:
                with pytest.raises(asyncio.TimeoutError):
                    await session.next_event(timeout=0.05)
            finally:
                await session.stop()

        asyncio.run(main())
