"""
Step Accumulator Module.

Holds the running step total for one tracking session and fans every change
out to subscribers, synchronously and in registration order.
"""

import logging
from typing import Callable, List

logger = logging.getLogger(__name__)

StepCallback = Callable[[int], None]


class ReentrantUpdateError(RuntimeError):
    """Raised when a subscriber mutates the accumulator during notification."""


class StepAccumulator:
    """
    Running step counter with ordered, synchronous subscriber notification.

    Every mutation produces exactly one notification per subscriber; nothing
    is queued or coalesced. A subscriber must not mutate the accumulator from
    inside its callback.
    """

    def __init__(self, initial: int = 0):
        if initial < 0:
            raise ValueError(f"Step count cannot be negative: {initial}")
        self._count = initial
        self._subscribers: List[StepCallback] = []
        self._notifying = False

    @property
    def count(self) -> int:
        return self._count

    def record_step(self) -> int:
        """Add one step."""
        return self.record_steps(1)

    def record_steps(self, steps: int) -> int:
        """Add several steps with a single notification."""
        if steps <= 0:
            return self._count
        self._guard()
        self._count += steps
        self._notify()
        return self._count

    def set_count(self, count: int) -> None:
        """Force the total, e.g. when hydrating from a stored daily record."""
        if count < 0:
            raise ValueError(f"Step count cannot be negative: {count}")
        self._guard()
        self._count = int(count)
        self._notify()

    def reset(self) -> None:
        self._guard()
        self._count = 0
        self._notify()

    def subscribe(self, callback: StepCallback) -> StepCallback:
        """
        Register callback; subscribing the same callable twice is a no-op.

        Callables compare by equality, so a bound method taken twice from the
        same object counts as one subscriber.
        """
        if callback not in self._subscribers:
            self._subscribers.append(callback)
        return callback

    def unsubscribe(self, callback: StepCallback) -> bool:
        for i, cb in enumerate(self._subscribers):
            if cb == callback:
                del self._subscribers[i]
                return True
        return False

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def _guard(self) -> None:
        if self._notifying:
            raise ReentrantUpdateError("Step count changed from inside a step notification")

    def _notify(self) -> None:
        count = self._count
        self._notifying = True
        try:
            for callback in list(self._subscribers):
                try:
                    callback(count)
                except ReentrantUpdateError:
                    raise
                except Exception as e:
                    logger.error(f"[ACCUMULATOR] Subscriber {callback!r} failed: {e}")
        finally:
            self._notifying = False
