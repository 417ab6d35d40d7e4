"""Remote store implementations."""
from .base import AchievementStore, LeaderboardStore, StepRecordStore
from .http import HttpStepStore
from .sqlite import SQLiteStepStore

__all__ = [
    "AchievementStore",
    "LeaderboardStore",
    "StepRecordStore",
    "HttpStepStore",
    "SQLiteStepStore",
]
