"""Step record request/response models."""
from datetime import date
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional

from step_tracking.models import Achievement, ActivitySession, DailyStepRecord


class StepsUpsertRequest(BaseModel):
    """Body of POST /api/steps. Missing derived fields are estimated from step_count."""

    user_id: str = Field(min_length=1)
    date: date
    step_count: int = Field(ge=0)
    distance: Optional[float] = None
    calories: Optional[int] = None
    active_minutes: Optional[int] = None
    floors_climbed: int = 0


class StepsUpsertResponse(BaseModel):
    """Saved record plus any achievements it unlocked."""

    steps: DailyStepRecord
    unlocked: list[Achievement] = []


class StepsDayResponse(BaseModel):
    """Single-day lookup; steps is null when nothing is recorded."""

    steps: Optional[DailyStepRecord] = None


class StepsRangeResponse(BaseModel):
    """Range lookup, newest first."""

    model_config = ConfigDict(from_attributes=True)

    steps: list[DailyStepRecord]


class SessionResponse(BaseModel):
    session: ActivitySession
