"""Leaderboard response models."""
from pydantic import BaseModel
from typing import Optional


class LeaderboardEntry(BaseModel):
    """A public user's totals over the period."""

    user_id: str
    name: str
    avatar_url: Optional[str] = None
    total_steps: int
    total_distance: float
    total_calories: int
    rank: int


class GlobalLeaderboard(BaseModel):
    leaderboard: list[LeaderboardEntry]
    period: str
    start_date: str
    end_date: str
    user_rank: Optional[int] = None
    type: str = "global"


class CompetitionStanding(BaseModel):
    competition_id: str
    user_id: str
    name: str = ""
    current_progress: int
    rank: Optional[int] = None


class CompetitionLeaderboard(BaseModel):
    leaderboard: list[CompetitionStanding]
    type: str = "competition"
