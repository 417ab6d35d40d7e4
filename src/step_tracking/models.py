"""Persisted record shapes exchanged with the remote store."""
from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class DailyStepRecord(BaseModel):
    """One user's steps for one calendar day. Unique on (user_id, date)."""

    model_config = ConfigDict(from_attributes=True)

    user_id: str
    date: date
    step_count: int = Field(ge=0)
    distance: float = 0.0
    calories: int = 0
    active_minutes: int = 0
    floors_climbed: int = 0

    @property
    def key(self) -> tuple:
        return (self.user_id, self.date)

    def fields(self) -> dict:
        """Record fields without the (user_id, date) key."""
        return self.model_dump(exclude={"user_id", "date"})


class ActivitySession(BaseModel):
    """A recorded activity (walk, run, ...) captured on the device."""

    model_config = ConfigDict(from_attributes=True)

    session_id: str
    user_id: str
    activity_type: str = "walking"
    start_time: datetime
    end_time: Optional[datetime] = None
    steps: int = Field(default=0, ge=0)
    distance: float = 0.0
    calories: int = 0
    route_data: Optional[list[dict[str, Any]]] = None


class Achievement(BaseModel):
    """Achievement definition. Read-only from the tracker's point of view."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    requirement_type: str  # total_steps, daily_goal
    requirement_value: int
    description: Optional[str] = None


class UserProfile(BaseModel):
    """The user fields the tracker needs."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str = ""
    daily_goal: int = 10000
    privacy_level: str = "public"


class CompetitionParticipant(BaseModel):
    """A user's standing in a competition, maintained by the competition service."""

    model_config = ConfigDict(from_attributes=True)

    competition_id: str
    user_id: str
    name: str = ""
    current_progress: int = 0
    rank: Optional[int] = None
