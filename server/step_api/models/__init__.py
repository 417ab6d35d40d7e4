"""Pydantic models for step API requests and responses."""
from .steps import StepsUpsertRequest, StepsUpsertResponse, StepsDayResponse, StepsRangeResponse, SessionResponse
from .sync import OfflineSyncRequest, OfflineSyncResponse, SyncResult
from .leaderboard import GlobalLeaderboard, CompetitionLeaderboard

__all__ = [
    "StepsUpsertRequest",
    "StepsUpsertResponse",
    "StepsDayResponse",
    "StepsRangeResponse",
    "SessionResponse",
    "OfflineSyncRequest",
    "OfflineSyncResponse",
    "SyncResult",
    "GlobalLeaderboard",
    "CompetitionLeaderboard",
]
