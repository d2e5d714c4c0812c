# tests/test_detector.py
"""
Tests for the condition detector.
"""

import asyncio

import pytest

from glue_core.detector import Condition, ConditionDetector, gather_checks
from glue_core.exceptions import InvariantViolation
from glue_core.lock import ExclusiveTaskQueue


def _const(value):
    async def predicate(resource):
        return value
    return predicate


def _payload(value):
    async def handler(resource):
        return value
    return handler


class TestDetect:
    """Zero, one or more than one active condition."""

    def test_none_active(self):
        detector = ConditionDetector([
            Condition("a", _const(False), _payload(1)),
            Condition("b", _const(False), _payload(2)),
        ])
        assert asyncio.run(detector.evaluate(None)) is None

    def test_one_active(self):
        """The single active condition yields its payload."""
        detector = ConditionDetector([
            Condition("a", _const(False), _payload(1)),
            Condition("b", _const(True), _payload({"message": "hi"})),
        ])

        detection = asyncio.run(detector.evaluate(None))
        assert detection.kind == "b"
        assert detection.payload == {"message": "hi"}

    def test_multiple_active_is_a_bug(self):
        """Two true predicates raise and no handler runs."""
        called = []

        async def handler(resource):
            called.append(True)

        detector = ConditionDetector([
            Condition("a", _const(True), handler),
            Condition("b", _const(True), handler),
        ])

        with pytest.raises(InvariantViolation, match="multiple event emitters triggered: a, b"):
            asyncio.run(detector.evaluate(None))
        assert called == []

    def test_predicates_run_concurrently(self):
        """Predicates are awaited together rather than one after another."""
        started = []

        def slow(name):
            async def predicate(resource):
                started.append(name)
                await asyncio.sleep(0.05)
                return False
            return predicate

        detector = ConditionDetector([
            Condition("a", slow("a"), _payload(None)),
            Condition("b", slow("b"), _payload(None)),
        ])

        async def main():
            task = asyncio.ensure_future(detector.detect(None))
            await asyncio.sleep(0.01)
            snapshot = list(started)
            await task
            return snapshot

        assert asyncio.run(main()) == ["a", "b"]

    def test_failing_predicate_cancels_the_others(self):
        """No predicate keeps touching the resource after the queued task failed."""
        touched = []

        async def bad(resource):
            raise RuntimeError("lost the session")

        async def slow(resource):
            await asyncio.sleep(0.05)
            touched.append(queue.locked)
            return False

        detector = ConditionDetector([
            Condition("bad", bad, _payload(None)),
            Condition("slow", slow, _payload(None)),
        ])
        queue = ExclusiveTaskQueue(None)

        async def main():
            with pytest.raises(RuntimeError):
                await queue.submit(detector.detect)
            await asyncio.sleep(0.1)

        asyncio.run(main())
        assert touched == []
        assert not queue.locked

    def test_gather_checks_keeps_order(self):
        async def value(v, delay):
            await asyncio.sleep(delay)
            return v

        async def main():
            return await gather_checks(value("a", 0.02), value("b", 0))

        assert asyncio.run(main()) == ["a", "b"]

    def test_prepare_runs_first(self):
        """prepare() runs before any predicate."""
        order = []

        async def prepare(resource):
            order.append("prepare")

        async def predicate(resource):
            order.append("predicate")
            return False

        detector = ConditionDetector([Condition("a", predicate, _payload(None))], prepare=prepare)
        asyncio.run(detector.detect("r"))
        assert order == ["prepare", "predicate"]

    def test_duplicate_names_rejected(self):
        with pytest.raises(ValueError):
            ConditionDetector([
                Condition("a", _const(False), _payload(None)),
                Condition("a", _const(False), _payload(None)),
            ])
