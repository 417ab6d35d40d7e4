"""
Tests for the step tracker lifecycle.

These tests verify:
1. Fallback to simulated steps when permission is refused or no sensor exists
2. Device samples flow through detection into the running total
3. Stop deregisters the sensor listener and saves the final total
4. Automatic saves every N steps and hydration from today's record
5. Day rollover and recovery from failing samples

They run on a fake in-memory sensor and a temporary SQLite store.

Usage:
    pytest tests/test_tracker.py -v
"""
import random
import pytest
from datetime import timedelta
from unittest.mock import patch

from conftest import FakeMotionSensor, TODAY, drain, wait_for
from step_tracking.motion_sampler import AccelerationSample
from step_tracking.tracker import StepTracker


def accel(magnitude: float, t: float) -> AccelerationSample:
    return AccelerationSample(x=0.0, y=0.0, z=magnitude, timestamp=t)


def make_tracker(sensor, store, settings) -> StepTracker:
    return StepTracker(
        "user-1",
        sensor,
        store,
        settings=settings,
        today=lambda: TODAY,
        rng=random.Random(7),
    )


def walk(sensor, steps: int, start: float = 0.0):
    """Emit rest/peak pairs half a second apart."""
    for i in range(steps):
        t = start + i * 0.5
        sensor.emit(accel(9.8, t))
        sensor.emit(accel(14.0, t + 0.1))


class TestSimulationFallback:

    @pytest.mark.asyncio
    async def test_permission_denied_falls_back_to_simulation(self, store, settings):
        sensor = FakeMotionSensor(granted=False)
        tracker = make_tracker(sensor, store, settings)
        totals = []
        tracker.on_step_update(totals.append)

        on_device = await tracker.start_tracking()
        assert on_device is False
        assert tracker.is_tracking
        assert tracker.session.source == "simulation"
        assert sensor.listeners == []

        await wait_for(lambda: len(totals) >= 3)
        await tracker.stop_tracking()

        # One notification per tick, each tick adding 1-5 steps
        deltas = [b - a for a, b in zip([0] + totals, totals)]
        assert all(1 <= d <= 5 for d in deltas)

        stored = await store.fetch_daily_record("user-1", TODAY)
        assert stored.step_count == tracker.step_count

    @pytest.mark.asyncio
    async def test_missing_sensor_falls_back(self, store, settings):
        tracker = make_tracker(None, store, settings)

        assert await tracker.start_tracking() is False
        assert tracker.session.source == "simulation"

        await tracker.stop_tracking()
        assert not tracker.is_tracking

    @pytest.mark.asyncio
    async def test_unavailable_sensor_without_fallback(self, store, settings):
        sensor = FakeMotionSensor(available=False)
        tracker = make_tracker(sensor, store, settings.model_copy(update={"fallback_to_simulation": False}))

        assert await tracker.start_tracking() is False
        assert not tracker.is_tracking
        assert sensor.permission_requests == 0


class TestDeviceTracking:

    @pytest.mark.asyncio
    async def test_samples_become_steps(self, sensor, store, settings):
        tracker = make_tracker(sensor, store, settings)

        assert await tracker.start_tracking() is True
        assert len(sensor.listeners) == 1

        walk(sensor, 3)
        await wait_for(lambda: tracker.step_count == 3)

        assert tracker.session.last_event_timestamp == pytest.approx(1.1)
        assert tracker.session.steps_since_start(tracker.step_count) == 3
        await tracker.stop_tracking()

    @pytest.mark.asyncio
    async def test_stop_deregisters_and_saves(self, sensor, store, settings):
        tracker = make_tracker(sensor, store, settings)
        await tracker.start_tracking()
        walk(sensor, 2)
        await wait_for(lambda: tracker.step_count == 2)

        await tracker.stop_tracking()

        assert sensor.listeners == []
        walk(sensor, 2, start=10.0)
        await drain()
        assert tracker.step_count == 2

        stored = await store.fetch_daily_record("user-1", TODAY)
        assert stored.step_count == 2
        assert stored.calories == 0

    @pytest.mark.asyncio
    async def test_double_start_registers_once(self, sensor, store, settings):
        tracker = make_tracker(sensor, store, settings)

        await tracker.start_tracking()
        await tracker.start_tracking()

        assert len(sensor.listeners) == 1
        await tracker.stop_tracking()

    @pytest.mark.asyncio
    async def test_restart_does_not_duplicate_deliveries(self, sensor, store, settings):
        tracker = make_tracker(sensor, store, settings)
        await tracker.start_tracking()
        await tracker.stop_tracking()
        await tracker.start_tracking()

        assert len(sensor.listeners) == 1

        walk(sensor, 1, start=20.0)
        await wait_for(lambda: tracker.step_count == 1)
        await drain()
        assert tracker.step_count == 1
        await tracker.stop_tracking()

    @pytest.mark.asyncio
    async def test_stop_when_idle_is_noop(self, sensor, store, settings):
        tracker = make_tracker(sensor, store, settings)
        await tracker.stop_tracking()
        assert await store.fetch_daily_record("user-1", TODAY) is None


class TestSaving:

    @pytest.mark.asyncio
    async def test_autosave_every_ten_steps(self, sensor, store, settings):
        tracker = make_tracker(sensor, store, settings)
        await tracker.start_tracking()

        tracker.accumulator.record_steps(9)
        await tracker.wait_for_saves()
        assert await store.fetch_daily_record("user-1", TODAY) is None

        tracker.accumulator.record_steps(1)
        await tracker.wait_for_saves()
        assert (await store.fetch_daily_record("user-1", TODAY)).step_count == 10

        tracker.accumulator.record_steps(5)
        await tracker.wait_for_saves()
        assert (await store.fetch_daily_record("user-1", TODAY)).step_count == 10

        await tracker.stop_tracking()
        assert (await store.fetch_daily_record("user-1", TODAY)).step_count == 15

    @pytest.mark.asyncio
    async def test_no_autosave_while_idle(self, sensor, store, settings):
        tracker = make_tracker(sensor, store, settings)

        tracker.set_step_count(25)
        await tracker.wait_for_saves()

        assert await store.fetch_daily_record("user-1", TODAY) is None

    @pytest.mark.asyncio
    async def test_load_today_steps(self, sensor, store, settings):
        await store.upsert_daily_record("user-1", TODAY, {"step_count": 42})
        tracker = make_tracker(sensor, store, settings)
        seen = []
        tracker.on_step_update(seen.append)

        assert await tracker.load_today_steps() == 42
        assert tracker.step_count == 42
        assert seen == [42]

        await tracker.start_tracking()
        tracker.accumulator.record_steps(7)
        await tracker.wait_for_saves()
        assert (await store.fetch_daily_record("user-1", TODAY)).step_count == 42

        tracker.accumulator.record_steps(1)
        await tracker.wait_for_saves()
        assert (await store.fetch_daily_record("user-1", TODAY)).step_count == 50
        await tracker.stop_tracking()

    @pytest.mark.asyncio
    async def test_load_without_record(self, sensor, store, settings):
        tracker = make_tracker(sensor, store, settings)
        assert await tracker.load_today_steps() == 0
        assert tracker.step_count == 0

    @pytest.mark.asyncio
    async def test_failed_save_is_queued_and_flushed(self, sensor, flaky_store, settings):
        tracker = make_tracker(sensor, flaky_store, settings)
        tracker.set_step_count(30)
        flaky_store.fail_all = True

        assert await tracker.save_steps() is False
        assert len(tracker.reconciler.queue) == 1

        flaky_store.fail_all = False
        result = await tracker.flush_offline_queue()

        assert result.all_succeeded
        assert (await flaky_store.fetch_daily_record("user-1", TODAY)).step_count == 30

    @pytest.mark.asyncio
    async def test_failed_final_save_does_not_raise(self, sensor, flaky_store, settings):
        tracker = make_tracker(sensor, flaky_store, settings)
        await tracker.start_tracking()
        walk(sensor, 1)
        await wait_for(lambda: tracker.step_count == 1)
        flaky_store.fail_all = True

        await tracker.stop_tracking()

        assert sensor.listeners == []
        assert tracker.reconciler.queue.pending()[0].payload.step_count == 1

    @pytest.mark.asyncio
    async def test_callbacks_can_be_removed(self, sensor, store, settings):
        tracker = make_tracker(sensor, store, settings)
        seen = []
        callback = tracker.on_step_update(seen.append)

        tracker.set_step_count(3)
        assert tracker.remove_callback(callback) is True
        tracker.reset_step_count()

        assert seen == [3]
        assert tracker.step_count == 0


class TestDayRollover:

    @pytest.mark.asyncio
    async def test_midnight_closes_previous_day(self, sensor, store, settings):
        days = [TODAY]
        tracker = StepTracker("user-1", sensor, store, settings=settings, today=lambda: days[0])
        await tracker.start_tracking()

        tracker.set_step_count(8000)
        await tracker.wait_for_saves()

        days[0] = TODAY + timedelta(days=1)
        walk(sensor, 10, start=10.0)
        await wait_for(lambda: tracker.step_count == 10)
        await tracker.stop_tracking()

        assert (await store.fetch_daily_record("user-1", TODAY)).step_count == 8000
        assert (await store.fetch_daily_record("user-1", days[0])).step_count == 10

    @pytest.mark.asyncio
    async def test_idle_tracker_rolls_over_on_start(self, sensor, store, settings):
        days = [TODAY]
        tracker = StepTracker("user-1", sensor, store, settings=settings, today=lambda: days[0])
        tracker.set_step_count(300)

        days[0] = TODAY + timedelta(days=1)
        await tracker.start_tracking()
        await tracker.stop_tracking()

        assert (await store.fetch_daily_record("user-1", TODAY)).step_count == 300
        assert (await store.fetch_daily_record("user-1", days[0])).step_count == 0


class TestSampleErrors:

    @pytest.mark.asyncio
    async def test_subscriber_error_does_not_stop_counting(self, sensor, store, settings):
        tracker = make_tracker(sensor, store, settings)

        def meddle(total):
            if total == 1:
                tracker.set_step_count(100)

        tracker.on_step_update(meddle)
        await tracker.start_tracking()

        walk(sensor, 3)
        await wait_for(lambda: tracker.step_count == 3)
        assert tracker.is_tracking

        await tracker.stop_tracking()

        assert sensor.listeners == []
        assert (await store.fetch_daily_record("user-1", TODAY)).step_count == 3

    @pytest.mark.asyncio
    async def test_stop_after_consumer_crash_still_saves(self, sensor, store, settings):
        tracker = make_tracker(sensor, store, settings)

        async def crash(self, sampler):
            raise RuntimeError("sampler crashed")

        with patch.object(StepTracker, "_consume", crash):
            await tracker.start_tracking()
            await drain()

        tracker.set_step_count(4)
        await tracker.stop_tracking()

        assert sensor.listeners == []
        assert (await store.fetch_daily_record("user-1", TODAY)).step_count == 4
