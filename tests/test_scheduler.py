"""
Tests for the asyncio task scheduler.

Tests cover:
- One-shot and repeating timers
- Replacing and cancelling named timers
- Coroutine callbacks spawned as tasks
- Shutdown cancelling timers and in-flight tasks
"""
import asyncio

import pytest

from core.scheduler import TaskScheduler


@pytest.mark.unit
class TestTaskScheduler:
    """Tests for TaskScheduler on a real event loop."""

    def test_call_later_fires_once(self):
        calls = []

        async def scenario():
            scheduler = TaskScheduler()
            scheduler.call_later("once", 0.01, calls.append, "fired")
            assert scheduler.is_scheduled("once")
            assert scheduler.delay_of("once") == 0.01
            await asyncio.sleep(0.05)
            return scheduler.pending()

        pending = asyncio.run(scenario())

        assert calls == ["fired"]
        assert pending == []

    def test_rearming_replaces_previous_timer(self):
        calls = []

        async def scenario():
            scheduler = TaskScheduler()
            scheduler.call_later("slide", 0.01, calls.append, "old")
            scheduler.call_later("slide", 0.02, calls.append, "new")
            await asyncio.sleep(0.06)

        asyncio.run(scenario())

        assert calls == ["new"]

    def test_cancel(self):
        calls = []

        async def scenario():
            scheduler = TaskScheduler()
            scheduler.call_later("retry", 0.01, calls.append, "retry")
            assert scheduler.cancel("retry") is True
            assert scheduler.cancel("retry") is False
            await asyncio.sleep(0.03)

        asyncio.run(scenario())

        assert calls == []

    def test_every_repeats(self):
        calls = []

        async def scenario():
            scheduler = TaskScheduler()
            scheduler.every("poll", 0.01, lambda: calls.append(1))
            await asyncio.sleep(0.08)
            still_armed = scheduler.is_scheduled("poll")
            await scheduler.shutdown()
            return still_armed

        assert asyncio.run(scenario()) is True
        assert len(calls) >= 3

    def test_coroutine_callback_is_spawned(self):
        results = []

        async def work():
            results.append("done")

        async def scenario():
            scheduler = TaskScheduler()
            scheduler.call_later("fetch", 0.01, work)
            await asyncio.sleep(0.05)

        asyncio.run(scenario())

        assert results == ["done"]

    def test_callback_errors_do_not_stop_interval(self):
        calls = []

        def flaky():
            calls.append(1)
            raise RuntimeError("boom")

        async def scenario():
            scheduler = TaskScheduler()
            scheduler.every("heartbeat", 0.01, flaky)
            await asyncio.sleep(0.06)
            await scheduler.shutdown()

        asyncio.run(scenario())

        assert len(calls) >= 2

    def test_shutdown_cancels_timers_and_tasks(self):
        calls = []
        started = []

        async def slow():
            started.append(1)
            await asyncio.sleep(10)
            calls.append("finished")

        async def scenario():
            scheduler = TaskScheduler()
            scheduler.call_later("slide", 0.02, calls.append, "slide")
            task = scheduler.spawn(slow())
            await asyncio.sleep(0)
            await scheduler.shutdown()
            scheduler.call_later("late", 0.0, calls.append, "late")
            assert scheduler.spawn(slow()) is None
            await asyncio.sleep(0.05)
            return task, scheduler.pending()

        task, pending = asyncio.run(scenario())

        assert started == [1]
        assert calls == []
        assert task.cancelled()
        assert pending == []
