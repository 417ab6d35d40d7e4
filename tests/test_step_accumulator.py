"""
Unit tests for the step accumulator.

Usage:
    pytest tests/test_step_accumulator.py -v
"""
import pytest
from datetime import date

from step_tracking.live_stats import DailyProgress
from step_tracking.step_accumulator import ReentrantUpdateError, StepAccumulator


class TestCounting:
    """Every mutation yields one ordered notification."""

    @pytest.mark.parametrize("initial,n", [(0, 1), (0, 25), (137, 10)])
    def test_n_steps_n_notifications(self, initial, n):
        acc = StepAccumulator(initial)
        seen = []
        acc.subscribe(seen.append)

        for _ in range(n):
            acc.record_step()

        assert acc.count == initial + n
        assert len(seen) == n
        assert seen == list(range(initial + 1, initial + n + 1))
        assert all(b > a for a, b in zip(seen, seen[1:]))

    def test_record_steps_is_one_notification(self):
        acc = StepAccumulator()
        seen = []
        acc.subscribe(seen.append)

        acc.record_steps(4)

        assert seen == [4]

    def test_non_positive_batch_is_ignored(self):
        acc = StepAccumulator(5)
        seen = []
        acc.subscribe(seen.append)

        assert acc.record_steps(0) == 5
        assert acc.record_steps(-3) == 5
        assert seen == []

    def test_set_count_and_reset_notify(self):
        acc = StepAccumulator()
        seen = []
        acc.subscribe(seen.append)

        acc.set_count(8547)
        acc.reset()

        assert seen == [8547, 0]
        assert acc.count == 0

    def test_negative_counts_rejected(self):
        with pytest.raises(ValueError):
            StepAccumulator(-1)
        with pytest.raises(ValueError):
            StepAccumulator().set_count(-5)


class TestSubscribers:

    def test_registration_order(self):
        acc = StepAccumulator()
        calls = []
        acc.subscribe(lambda n: calls.append(("a", n)))
        acc.subscribe(lambda n: calls.append(("b", n)))

        acc.record_step()

        assert calls == [("a", 1), ("b", 1)]

    def test_duplicate_subscription_is_ignored(self):
        acc = StepAccumulator()
        seen = []

        acc.subscribe(seen.append)
        acc.subscribe(seen.append)
        acc.record_step()

        assert acc.subscriber_count == 1
        assert seen == [1]

    def test_unsubscribe(self):
        acc = StepAccumulator()
        seen = []
        callback = acc.subscribe(seen.append)

        assert acc.unsubscribe(callback) is True
        assert acc.unsubscribe(callback) is False
        acc.record_step()
        assert seen == []

    def test_bound_method_removed_by_fresh_reference(self):
        acc = StepAccumulator()
        progress = DailyProgress(daily_goal=100, today=lambda: date(2026, 10, 19))

        acc.subscribe(progress.update)
        acc.subscribe(progress.update)
        assert acc.subscriber_count == 1

        assert acc.unsubscribe(progress.update) is True
        acc.record_step()

        assert acc.subscriber_count == 0
        assert progress.steps == 0

    def test_failing_subscriber_does_not_block_others(self):
        acc = StepAccumulator()
        seen = []

        def broken(_):
            raise RuntimeError("display gone")

        acc.subscribe(broken)
        acc.subscribe(seen.append)
        acc.record_step()

        assert seen == [1]
        assert acc.count == 1

    def test_subscriber_may_unsubscribe_itself(self):
        acc = StepAccumulator()
        seen = []

        def once(n):
            seen.append(n)
            acc.unsubscribe(once)

        acc.subscribe(once)
        acc.record_step()
        acc.record_step()

        assert seen == [1]


class TestReentrancy:
    """Mutating from inside a notification is refused."""

    def test_mutation_from_callback_raises(self):
        acc = StepAccumulator()
        acc.subscribe(lambda n: acc.record_step())

        with pytest.raises(ReentrantUpdateError):
            acc.record_step()

        assert acc.count == 1

    def test_accumulator_usable_after_reentrant_error(self):
        acc = StepAccumulator()

        def bad(n):
            if n == 1:
                acc.reset()

        acc.subscribe(bad)
        with pytest.raises(ReentrantUpdateError):
            acc.record_step()

        acc.record_step()
        assert acc.count == 2
