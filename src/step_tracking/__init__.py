"""
Step Tracking Package.

Turns motion samples into step counts, keeps a live per-session total, and
reconciles it with a remote per-day record store that also drives
achievements and leaderboards.
"""

from .achievements import AchievementChecker
from .config import TrackerSettings, get_tracker_settings
from .exceptions import PermissionDenied, SensorUnavailable, StepTrackingError, SyncFailure
from .leaderboard import Leaderboard, LeaderboardEntry, LeaderboardResult, period_range
from .live_stats import DailyProgress, GoalEvent, GoalStatus
from .metrics import derive_metrics
from .models import Achievement, ActivitySession, DailyStepRecord, UserProfile
from .motion_sampler import (
    AccelerationSample,
    MotionSensor,
    PositionSample,
    SensorSampler,
    SimulatedSample,
    SimulatedSampler,
)
from .step_accumulator import ReentrantUpdateError, StepAccumulator
from .step_detector import StepDetector
from .sync_reconciler import FlushResult, OfflineQueue, SyncQueueEntry, SyncReconciler
from .tracker import StepTracker, TrackingSession

__all__ = [
    "AccelerationSample",
    "Achievement",
    "AchievementChecker",
    "ActivitySession",
    "DailyProgress",
    "DailyStepRecord",
    "FlushResult",
    "GoalEvent",
    "GoalStatus",
    "Leaderboard",
    "LeaderboardEntry",
    "LeaderboardResult",
    "MotionSensor",
    "OfflineQueue",
    "PermissionDenied",
    "PositionSample",
    "ReentrantUpdateError",
    "SensorSampler",
    "SensorUnavailable",
    "SimulatedSample",
    "SimulatedSampler",
    "StepAccumulator",
    "StepDetector",
    "StepTracker",
    "StepTrackingError",
    "SyncFailure",
    "SyncQueueEntry",
    "SyncReconciler",
    "TrackerSettings",
    "TrackingSession",
    "UserProfile",
    "derive_metrics",
    "get_tracker_settings",
    "period_range",
]
