# tests/test_lock.py
"""
Tests for the exclusive FIFO task queue.
"""

import asyncio

import pytest

from glue_core.exceptions import InvariantViolation
from glue_core.lock import ExclusiveTaskQueue


class TestOrdering:
    """Tasks run one at a time in submission order."""

    def test_slow_first_task_still_completes_first(self):
        """A (100 ms), B and C submitted together complete as A, B, C."""
        completed = []

        def make(name, delay):
            async def task(resource):
                await asyncio.sleep(delay)
                completed.append(name)
                return name
            return task

        async def main():
            queue = ExclusiveTaskQueue("resource")
            return await asyncio.gather(
                queue.submit(make("A", 0.1)),
                queue.submit(make("B", 0)),
                queue.submit(make("C", 0)),
            )

        results = asyncio.run(main())
        assert completed == ["A", "B", "C"]
        assert results == ["A", "B", "C"]

    def test_no_overlap(self):
        """At most one task touches the resource at any instant."""
        state = {"active": 0, "max": 0}
        order = []

        def make(i):
            async def task(resource):
                state["active"] += 1
                state["max"] = max(state["max"], state["active"])
                await asyncio.sleep(0.001 * (10 - i))
                order.append(i)
                state["active"] -= 1
            return task

        async def main():
            queue = ExclusiveTaskQueue(object())
            await asyncio.gather(*(queue.submit(make(i)) for i in range(10)))

        asyncio.run(main())
        assert state["max"] == 1
        assert order == list(range(10))

    def test_tasks_receive_the_resource(self):
        """Every task is called with the guarded resource."""
        resource = object()

        async def main():
            queue = ExclusiveTaskQueue(resource)

            async def task(r):
                return r

            return await queue.submit(task)

        assert asyncio.run(main()) is resource


class TestFailures:
    """A failing task does not poison the queue."""

    def test_failure_is_delivered_to_its_submitter_only(self):
        """The failing submitter gets the error; later tasks still run."""
        async def boom(resource):
            await asyncio.sleep(0.01)
            raise ValueError("boom")

        async def queued_boom(resource):
            raise KeyError("queued")

        async def ok(resource):
            return "ok"

        async def main():
            queue = ExclusiveTaskQueue(None)
            return await asyncio.gather(
                queue.submit(boom),
                queue.submit(queued_boom),
                queue.submit(ok),
                return_exceptions=True,
            )

        first, second, third = asyncio.run(main())
        assert isinstance(first, ValueError)
        assert isinstance(second, KeyError)
        assert third == "ok"

    def test_cancelled_queued_task_keeps_draining(self):
        """A queued task raising CancelledError cancels only its own caller."""
        async def main():
            queue = ExclusiveTaskQueue(None)
            gate = asyncio.Event()

            async def blocker(resource):
                await gate.wait()

            async def cancelled(resource):
                raise asyncio.CancelledError()

            async def ok(resource):
                return "ok"

            first = asyncio.ensure_future(queue.submit(blocker))
            await asyncio.sleep(0)
            second = asyncio.ensure_future(queue.submit(cancelled))
            third = asyncio.ensure_future(queue.submit(ok))
            await asyncio.sleep(0)
            gate.set()
            result = await asyncio.wait_for(third, 1)
            await first
            await asyncio.sleep(0)
            return second, result, queue.locked

        second, result, locked = asyncio.run(main())
        assert second.cancelled()
        assert result == "ok"
        assert not locked


class TestLockState:
    """Tests for the locked flag and bypass access."""

    def test_unlocks_after_drain(self):
        """The queue is unlocked once every task settled."""
        async def main():
            queue = ExclusiveTaskQueue(None)
            seen = []

            async def task(resource):
                seen.append(queue.locked)
                await asyncio.sleep(0)

            await asyncio.gather(queue.submit(task), queue.submit(task))
            await asyncio.sleep(0)
            return queue, seen

        queue, seen = asyncio.run(main())
        assert seen == [True, True]
        assert not queue.locked
        assert len(queue) == 0

    def test_waiters_are_counted(self):
        """Tasks submitted while locked wait in the FIFO."""
        async def main():
            queue = ExclusiveTaskQueue(None)
            gate = asyncio.Event()

            async def blocker(resource):
                await gate.wait()

            async def noop(resource):
                return None

            first = asyncio.ensure_future(queue.submit(blocker))
            await asyncio.sleep(0)
            rest = [asyncio.ensure_future(queue.submit(noop)) for _ in range(2)]
            await asyncio.sleep(0)
            waiting = len(queue)
            gate.set()
            await asyncio.gather(first, *rest)
            return waiting

        assert asyncio.run(main()) == 2

    def test_unsafe_bypasses_lock(self):
        """unsafe() hands out the resource even while a task runs."""
        resource = object()

        async def main():
            queue = ExclusiveTaskQueue(resource)
            gate = asyncio.Event()

            async def blocker(r):
                await gate.wait()

            task = asyncio.ensure_future(queue.submit(blocker))
            await asyncio.sleep(0)
            assert queue.locked
            bypass = queue.unsafe()
            gate.set()
            await task
            return bypass

        assert asyncio.run(main()) is resource

    def test_lock_is_submit(self):
        """lock() is the same operation as submit()."""
        assert ExclusiveTaskQueue.lock is ExclusiveTaskQueue.submit

    def test_dequeue_from_empty_queue_is_a_bug(self):
        """Draining an empty FIFO raises InvariantViolation."""
        queue = ExclusiveTaskQueue(None)
        with pytest.raises(InvariantViolation, match="lock queue empty"):
            queue._dequeue()
