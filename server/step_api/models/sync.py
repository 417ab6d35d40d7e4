"""Offline sync batch models."""
from datetime import date, datetime
from pydantic import BaseModel, Field
from typing import Any, Optional


class OfflineSteps(BaseModel):
    """A daily total captured while the device was offline."""

    date: date
    step_count: int = Field(ge=0)
    distance: Optional[float] = None
    calories: Optional[int] = None
    active_minutes: Optional[int] = None
    floors_climbed: int = 0


class OfflineSession(BaseModel):
    """An activity session captured while offline. An id is assigned if missing."""

    session_id: Optional[str] = None
    activity_type: str = "walking"
    start_time: datetime
    end_time: Optional[datetime] = None
    steps: int = Field(default=0, ge=0)
    distance: float = 0.0
    calories: int = 0
    route_data: Optional[list[dict[str, Any]]] = None


class OfflineData(BaseModel):
    steps: list[OfflineSteps] = []
    sessions: list[OfflineSession] = []


class OfflineSyncRequest(BaseModel):
    """Body of POST /api/sync/offline."""

    user_id: str = Field(min_length=1)
    data: OfflineData


class SyncResult(BaseModel):
    """Outcome of one batch entry."""

    type: str  # steps, session
    success: bool
    data: Optional[dict[str, Any]] = None
    entry_id: Optional[str] = None
    error: Optional[str] = None


class OfflineSyncResponse(BaseModel):
    """success is true only when every entry was stored."""

    success: bool
    results: list[SyncResult]
    failed: list[SyncResult] = []
