"""
Unit tests for the sync reconciler and offline queue.

These tests verify:
1. Upsert-by-day semantics and derived field defaults
2. Failed saves are queued and newer totals replace queued ones
3. Flushes process entries independently

Usage:
    pytest tests/test_sync_reconciler.py -v
"""
import pytest
from datetime import date, datetime, timedelta, timezone
from unittest.mock import AsyncMock

from step_tracking.exceptions import SyncFailure
from step_tracking.models import ActivitySession, DailyStepRecord
from step_tracking.sync_reconciler import OfflineQueue, SyncQueueEntry, SyncReconciler

DAY = date(2026, 10, 19)


def record(day: date, steps: int, user_id: str = "user-1") -> DailyStepRecord:
    return DailyStepRecord(user_id=user_id, date=day, step_count=steps)


class TestSaveDaily:

    @pytest.mark.asyncio
    async def test_derived_fields_filled(self, store):
        reconciler = SyncReconciler(store)

        saved = await reconciler.save_daily("user-1", DAY, 8547)

        assert saved.step_count == 8547
        assert saved.calories == 342
        assert saved.distance == 6.84
        assert saved.active_minutes == 85
        assert saved.floors_climbed == 0

    @pytest.mark.asyncio
    async def test_explicit_fields_kept(self, store):
        reconciler = SyncReconciler(store)

        saved = await reconciler.save_daily("user-1", DAY, 1000, distance=1.1, calories=55, floors_climbed=3)

        assert saved.distance == 1.1
        assert saved.calories == 55
        assert saved.active_minutes == 10
        assert saved.floors_climbed == 3

    @pytest.mark.asyncio
    async def test_upsert_is_idempotent(self, store):
        """Repeated saves for one day leave exactly one row with the last total."""
        reconciler = SyncReconciler(store)

        await reconciler.save_daily("user-1", DAY, 100)
        await reconciler.save_daily("user-1", DAY, 100)
        await reconciler.save_daily("user-1", DAY, 250)

        rows = await store.fetch_range("user-1")
        assert len(rows) == 1
        assert rows[0].step_count == 250

    @pytest.mark.asyncio
    async def test_achievement_check_runs_after_save(self, store):
        checker = AsyncMock()
        reconciler = SyncReconciler(store, achievements=checker)

        await reconciler.save_daily("user-1", DAY, 500)

        checker.check.assert_awaited_once_with("user-1", 500, DAY)


class TestFailedSaves:
    """A failed live save queues the record and re-raises."""

    @pytest.mark.asyncio
    async def test_failure_is_queued(self, flaky_store):
        flaky_store.fail_all = True
        reconciler = SyncReconciler(flaky_store)

        with pytest.raises(SyncFailure):
            await reconciler.save_daily("user-1", DAY, 120)

        assert len(reconciler.queue) == 1
        entry = reconciler.queue.get(("steps", "user-1", DAY))
        assert entry.payload.step_count == 120
        assert entry.payload.calories == 5
        assert "Store offline" in entry.last_error

    @pytest.mark.asyncio
    async def test_newer_total_replaces_queued_record(self, flaky_store):
        flaky_store.fail_all = True
        reconciler = SyncReconciler(flaky_store)

        for steps in (120, 180, 260):
            with pytest.raises(SyncFailure):
                await reconciler.save_daily("user-1", DAY, steps)

        assert len(reconciler.queue) == 1
        assert reconciler.queue.pending()[0].payload.step_count == 260

    @pytest.mark.asyncio
    async def test_success_discards_queued_day(self, flaky_store):
        flaky_store.fail_all = True
        reconciler = SyncReconciler(flaky_store)
        with pytest.raises(SyncFailure):
            await reconciler.save_daily("user-1", DAY, 120)

        flaky_store.fail_all = False
        await reconciler.save_daily("user-1", DAY, 200)

        assert len(reconciler.queue) == 0
        stored = await flaky_store.fetch_daily_record("user-1", DAY)
        assert stored.step_count == 200

    @pytest.mark.asyncio
    async def test_achievements_skipped_on_failure(self, flaky_store):
        flaky_store.fail_all = True
        checker = AsyncMock()
        reconciler = SyncReconciler(flaky_store, achievements=checker)

        with pytest.raises(SyncFailure):
            await reconciler.save_daily("user-1", DAY, 120)

        checker.check.assert_not_awaited()


class TestOfflineQueue:

    def test_replace_keeps_position_and_attempts(self):
        queue = OfflineQueue()
        first = queue.enqueue(SyncQueueEntry.for_record(record(DAY, 10)))
        queue.enqueue(SyncQueueEntry.for_record(record(DAY + timedelta(days=1), 5)))
        first.attempts = 2

        replacement = queue.enqueue(SyncQueueEntry.for_record(record(DAY, 40)))

        assert len(queue) == 2
        assert queue.pending()[0] is replacement
        assert replacement.attempts == 2

    def test_remove_only_matches_same_entry(self):
        queue = OfflineQueue()
        stale = queue.enqueue(SyncQueueEntry.for_record(record(DAY, 10)))
        queue.enqueue(SyncQueueEntry.for_record(record(DAY, 40)))

        assert queue.remove(stale) is False
        assert len(queue) == 1

    def test_entry_to_dict(self):
        entry = SyncQueueEntry.for_record(record(DAY, 10))
        data = entry.to_dict()

        assert data["kind"] == "steps"
        assert data["payload"]["date"] == "2026-10-19"
        assert data["attempts"] == 0


class TestFlush:
    """Each queued entry is attempted independently."""

    @pytest.mark.asyncio
    async def test_three_entries_one_failing(self, flaky_store):
        queue = OfflineQueue()
        days = [DAY - timedelta(days=2), DAY - timedelta(days=1), DAY]
        for i, day in enumerate(days):
            queue.enqueue(SyncQueueEntry.for_record(record(day, 1000 * (i + 1))))
        flaky_store.failing_dates = {days[1]}

        result = await SyncReconciler(flaky_store, queue=queue).flush()

        assert len(result.succeeded) == 2
        assert len(result.failed) == 1
        assert not result.all_succeeded
        assert len(queue) == 1

        remaining = queue.pending()[0]
        assert remaining.payload.date == days[1]
        assert remaining.attempts == 1
        assert remaining.last_error

        stored = await flaky_store.inner.fetch_range("user-1")
        assert sorted(r.step_count for r in stored) == [1000, 3000]

    @pytest.mark.asyncio
    async def test_retry_drains_queue(self, flaky_store):
        reconciler = SyncReconciler(flaky_store)
        flaky_store.fail_all = True
        with pytest.raises(SyncFailure):
            await reconciler.save_daily("user-1", DAY, 75)

        first = await reconciler.flush()
        assert len(first.failed) == 1
        assert reconciler.queue.pending()[0].attempts == 1

        flaky_store.fail_all = False
        second = await reconciler.flush()

        assert second.all_succeeded
        assert len(reconciler.queue) == 0
        assert (await flaky_store.fetch_daily_record("user-1", DAY)).step_count == 75

    @pytest.mark.asyncio
    async def test_session_entries(self, store):
        queue = OfflineQueue()
        session = ActivitySession(
            session_id="walk-1",
            user_id="user-1",
            start_time=datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc),
            end_time=datetime(2026, 10, 19, 8, 30, tzinfo=timezone.utc),
            steps=3200,
            distance=2.56,
            calories=128,
            route_data=[{"lat": 37.77, "lng": -122.41}],
        )
        queue.enqueue(SyncQueueEntry.for_session(session))

        result = await SyncReconciler(store, queue=queue).flush()

        assert result.all_succeeded
        stored = await store.fetch_activity_session("walk-1")
        assert stored.steps == 3200
        assert stored.route_data == [{"lat": 37.77, "lng": -122.41}]

    @pytest.mark.asyncio
    async def test_empty_flush(self, store):
        result = await SyncReconciler(store).flush()
        assert result.succeeded == [] and result.failed == []


class TestReplay:
    """A submitted batch is attempted entry by entry, without merging."""

    @pytest.mark.asyncio
    async def test_same_day_entries_each_reported(self, store):
        entries = [
            SyncQueueEntry.for_record(record(DAY, 100)),
            SyncQueueEntry.for_record(record(DAY, 250)),
            SyncQueueEntry.for_record(record(DAY - timedelta(days=1), 40)),
        ]

        result = await SyncReconciler(store).replay(entries)

        assert len(result.succeeded) == 3
        assert result.failed == []
        assert (await store.fetch_daily_record("user-1", DAY)).step_count == 250

    @pytest.mark.asyncio
    async def test_replay_leaves_reconciler_queue_alone(self, flaky_store):
        reconciler = SyncReconciler(flaky_store)
        flaky_store.fail_all = True
        with pytest.raises(SyncFailure):
            await reconciler.save_daily("user-1", DAY, 30)

        flaky_store.fail_all = False
        entry = SyncQueueEntry.for_record(record(DAY, 5))
        result = await reconciler.replay([entry])

        assert result.all_succeeded
        assert len(reconciler.queue) == 1
