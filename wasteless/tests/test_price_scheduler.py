"""
Background price update scheduler tests
"""
import asyncio
from unittest.mock import AsyncMock

import pytest

from wasteless.exceptions import StoreError, ValidationError
from wasteless.services.price_scheduler import PriceUpdateScheduler


def make_scheduler(recompute=None, display_sync=None, interval_minutes=5):
    return PriceUpdateScheduler(
        recompute or AsyncMock(return_value=[]),
        display_sync or AsyncMock(return_value={"success": True, "message": "ok"}),
        interval_minutes,
    )


async def wait_for_calls(mock, count, timeout=2.0):
    async def _poll():
        while mock.await_count < count:
            await asyncio.sleep(0.01)
    await asyncio.wait_for(_poll(), timeout)


class TestRunOnce:

    async def test_recompute_then_display_sync(self):
        order = []
        recompute = AsyncMock(side_effect=lambda: order.append("recompute") or ["p1"])
        display_sync = AsyncMock(side_effect=lambda: order.append("sync") or {"success": True})
        scheduler = make_scheduler(recompute, display_sync)

        result = await scheduler.run_once()

        assert order == ["recompute", "sync"]
        assert result == {"updated_products": ["p1"], "signage_result": {"success": True}}
        assert scheduler.last_result is result

    async def test_display_sync_runs_even_with_no_changes(self):
        scheduler = make_scheduler()
        await scheduler.run_once()
        scheduler.display_sync.assert_awaited_once()

    async def test_recompute_error_propagates_and_skips_sync(self):
        scheduler = make_scheduler(recompute=AsyncMock(side_effect=StoreError("db down")))
        with pytest.raises(StoreError):
            await scheduler.run_once()
        scheduler.display_sync.assert_not_awaited()

    async def test_display_sync_failure_is_a_result(self):
        scheduler = make_scheduler(
            recompute=AsyncMock(return_value=["p1"]),
            display_sync=AsyncMock(side_effect=RuntimeError("socket closed")),
        )
        result = await scheduler.run_once()
        assert result["updated_products"] == ["p1"]
        assert result["signage_result"] == {"success": False, "message": "socket closed"}


class TestSchedule:

    async def test_runs_immediately_on_start(self):
        scheduler = make_scheduler()
        scheduler.start()
        try:
            await wait_for_calls(scheduler.recompute, 1)
            assert scheduler.is_running
        finally:
            await scheduler.stop()
        assert not scheduler.is_running

    async def test_repeats_every_interval(self):
        scheduler = make_scheduler()
        scheduler.interval_seconds = 0.01
        scheduler.start()
        try:
            await wait_for_calls(scheduler.recompute, 3)
        finally:
            await scheduler.stop()
        assert scheduler.display_sync.await_count >= 2

    async def test_failed_tick_does_not_stop_the_schedule(self):
        recompute = AsyncMock(side_effect=[StoreError("locked"), ["p1"], [], [], [], []])
        scheduler = make_scheduler(recompute=recompute)
        scheduler.interval_seconds = 0.01
        scheduler.start()
        try:
            await wait_for_calls(recompute, 2)
            await wait_for_calls(scheduler.display_sync, 1)
        finally:
            await scheduler.stop()
        assert scheduler.last_result["updated_products"] in (["p1"], [])

    async def test_start_twice_keeps_one_loop(self):
        scheduler = make_scheduler()
        scheduler.start()
        task = scheduler._task
        scheduler.start()
        try:
            assert scheduler._task is task
        finally:
            await scheduler.stop()

    async def test_stop_is_idempotent(self):
        scheduler = make_scheduler()
        await scheduler.stop()
        scheduler.start()
        await scheduler.stop()
        await scheduler.stop()
        assert not scheduler.is_running

    async def test_stop_does_not_wait_out_the_interval(self):
        scheduler = make_scheduler(interval_minutes=60)
        scheduler.start()
        await wait_for_calls(scheduler.recompute, 1)
        await asyncio.wait_for(scheduler.stop(), timeout=1.0)
        assert scheduler.recompute.await_count == 1

    async def test_can_restart_after_stop(self):
        scheduler = make_scheduler()
        scheduler.start()
        await wait_for_calls(scheduler.recompute, 1)
        await scheduler.stop()
        scheduler.start()
        try:
            await wait_for_calls(scheduler.recompute, 2)
        finally:
            await scheduler.stop()

    async def test_stop_lets_the_running_tick_finish(self):
        gate = asyncio.Event()
        finished = []

        async def slow_recompute():
            await gate.wait()
            finished.append(True)
            return ["p1"]

        scheduler = make_scheduler(recompute=AsyncMock(side_effect=slow_recompute))
        scheduler.start()
        await wait_for_calls(scheduler.recompute, 1)

        stopping = asyncio.create_task(scheduler.stop())
        await asyncio.sleep(0.05)
        assert not stopping.done()
        assert scheduler.is_running

        gate.set()
        await asyncio.wait_for(stopping, timeout=1.0)

        assert finished == [True]
        scheduler.display_sync.assert_awaited_once()
        assert scheduler.last_result["updated_products"] == ["p1"]
        assert not scheduler.is_running

    async def test_start_during_stop_leaves_no_loop_behind(self):
        gate = asyncio.Event()
        calls = []

        async def recompute():
            calls.append(True)
            if len(calls) == 1:
                await gate.wait()
            return []

        scheduler = make_scheduler(recompute=AsyncMock(side_effect=recompute))
        scheduler.interval_seconds = 0.01
        scheduler.start()
        await wait_for_calls(scheduler.recompute, 1)
        first_task = scheduler._task

        stopping = asyncio.create_task(scheduler.stop())
        await asyncio.sleep(0)
        scheduler.start()
        assert scheduler._task is first_task

        gate.set()
        await asyncio.wait_for(stopping, timeout=1.0)

        assert first_task.done()
        assert not scheduler.is_running
        await asyncio.sleep(0.05)
        assert len(calls) == 1

        scheduler.start()
        try:
            await wait_for_calls(scheduler.recompute, 2)
        finally:
            await asyncio.wait_for(scheduler.stop(), timeout=1.0)


class TestConfiguration:

    @pytest.mark.parametrize("minutes", [0, 0.5, -3])
    def test_interval_below_one_minute_rejected(self, minutes):
        with pytest.raises(ValidationError):
            make_scheduler(interval_minutes=minutes)

    def test_interval_in_seconds(self):
        assert make_scheduler(interval_minutes=5).interval_seconds == 300
