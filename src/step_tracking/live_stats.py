"""
Live Daily Progress Module.

Subscribes to a step accumulator and keeps today's derived metrics and daily
goal status for display. Emits one "achieved" event per day when the goal is
reached.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Callable, List, Optional

from .metrics import active_minutes, calories, distance_km

logger = logging.getLogger(__name__)


class GoalStatus(str, Enum):
    """Status of the daily step goal."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    ACHIEVED = "achieved"


@dataclass
class GoalEvent:
    """Event generated when the daily goal status changes."""

    event_type: str  # achieved
    steps: int
    goal: int
    progress_percent: float
    message: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "event_type": self.event_type,
            "steps": self.steps,
            "goal": self.goal,
            "progress_percent": self.progress_percent,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }


class DailyProgress:
    """
    Live view of today's steps against the daily goal.

    Register `update` as an accumulator subscriber. The day rolls over on the
    first update after midnight, which re-arms the achievement event.
    """

    def __init__(
        self,
        daily_goal: int = 10000,
        on_event: Optional[Callable[[GoalEvent], None]] = None,
        today: Callable[[], date] = date.today,
        celebration_message: str = "You hit your step goal! Great job staying active today!",
    ):
        self.daily_goal = daily_goal
        self.on_event = on_event
        self.celebration_message = celebration_message
        self._today = today

        self.current_date: Optional[date] = None
        self.steps = 0
        self.status = GoalStatus.NOT_STARTED
        self.achieved_at: Optional[datetime] = None
        self.notified_achieved = False
        self.events: List[GoalEvent] = []

        self._ensure_current_day()

    def _ensure_current_day(self) -> bool:
        today = self._today()
        if self.current_date != today:
            if self.current_date is not None:
                logger.info(
                    f"[PROGRESS] {self.current_date} closed at {self.steps}/{self.daily_goal}"
                )
            self.current_date = today
            self.steps = 0
            self.status = GoalStatus.NOT_STARTED
            self.achieved_at = None
            self.notified_achieved = False
            return True
        return False

    @property
    def progress_percent(self) -> float:
        if self.daily_goal <= 0:
            return 100.0
        return min((self.steps / self.daily_goal) * 100, 100.0)

    @property
    def remaining(self) -> int:
        return max(self.daily_goal - self.steps, 0)

    def update(self, steps: int) -> Optional[GoalEvent]:
        """Accumulator callback: the new running total for today."""
        self._ensure_current_day()
        self.steps = steps

        if steps >= self.daily_goal:
            self.status = GoalStatus.ACHIEVED
            if not self.achieved_at:
                self.achieved_at = datetime.now(timezone.utc)
        elif steps > 0:
            self.status = GoalStatus.IN_PROGRESS
        else:
            self.status = GoalStatus.NOT_STARTED

        if self.status == GoalStatus.ACHIEVED and not self.notified_achieved:
            self.notified_achieved = True
            event = GoalEvent(
                event_type="achieved",
                steps=steps,
                goal=self.daily_goal,
                progress_percent=self.progress_percent,
                message=self.celebration_message,
            )
            self.events.append(event)
            logger.info(f"[PROGRESS] Daily goal ACHIEVED: {steps}/{self.daily_goal}")
            if self.on_event:
                self.on_event(event)
            return event

        return None

    def to_dict(self) -> dict:
        """Snapshot for display."""
        return {
            "date": self.current_date.isoformat() if self.current_date else None,
            "steps": self.steps,
            "goal": self.daily_goal,
            "remaining": self.remaining,
            "progress_percent": self.progress_percent,
            "status": self.status.value,
            "distance_km": distance_km(self.steps),
            "calories": calories(self.steps),
            "active_minutes": active_minutes(self.steps),
            "achieved_at": self.achieved_at.isoformat() if self.achieved_at else None,
        }
