"""Daily step record and activity session routes."""
from datetime import date, timedelta
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from step_tracking.achievements import AchievementChecker
from step_tracking.exceptions import SyncFailure
from step_tracking.metrics import fill_derived
from step_tracking.models import ActivitySession
from step_tracking.store import SQLiteStepStore

from ..database import get_store, get_today
from ..models.steps import (
    SessionResponse,
    StepsDayResponse,
    StepsRangeResponse,
    StepsUpsertRequest,
    StepsUpsertResponse,
)

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Steps"])

MAX_RANGE_DAYS = 365


def _period_start(period: str, today: date) -> date:
    """First day covered by a history period (week, month or year)."""
    if period == "month":
        return today.replace(day=1)
    if period == "year":
        return today.replace(month=1, day=1)
    return today - timedelta(days=7)


def _record_fields(body: StepsUpsertRequest) -> dict:
    return {
        "step_count": body.step_count,
        "floors_climbed": body.floors_climbed,
        **fill_derived(body.step_count, body.distance, body.calories, body.active_minutes),
    }


@router.post("/steps", response_model=StepsUpsertResponse, status_code=201)
async def save_steps(
    body: StepsUpsertRequest,
    store: SQLiteStepStore = Depends(get_store),
):
    """Upsert a user's daily total, then check step achievements."""
    try:
        record = await store.upsert_daily_record(body.user_id, body.date, _record_fields(body))
    except SyncFailure as e:
        log.error(f"[API] Failed to save steps for {body.user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to save steps")

    unlocked = await AchievementChecker(store).check(body.user_id, record.step_count, body.date)
    return StepsUpsertResponse(steps=record, unlocked=unlocked)


@router.get("/steps")
async def get_steps(
    user_id: str = Query(..., min_length=1),
    day: Optional[date] = Query(default=None, alias="date", description="Single day lookup"),
    start_date: Optional[date] = Query(default=None),
    end_date: Optional[date] = Query(default=None),
    period: Optional[str] = Query(default=None, description="week, month or year"),
    store: SQLiteStepStore = Depends(get_store),
    today: date = Depends(get_today),
):
    """
    Get step history for a user.

    With date, returns that day's record (or null). Otherwise returns the
    records between start_date and end_date, or since the start of period,
    newest first and capped at a year of rows.
    """
    try:
        if day is not None:
            record = await store.fetch_daily_record(user_id, day)
            return StepsDayResponse(steps=record)

        start, end = start_date, end_date
        if start is None and end is None and period:
            start = _period_start(period, today)
        records = await store.fetch_range(user_id, start, end)
    except SyncFailure as e:
        log.error(f"[API] Failed to fetch steps for {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch steps")

    return StepsRangeResponse(steps=records[:MAX_RANGE_DAYS])


@router.post("/sessions", response_model=SessionResponse, status_code=201)
async def save_session(
    session: ActivitySession,
    store: SQLiteStepStore = Depends(get_store),
):
    """Insert or replace an activity session by session_id."""
    try:
        saved = await store.upsert_activity_session(session)
    except SyncFailure as e:
        log.error(f"[API] Failed to save session {session.session_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to save session")
    return SessionResponse(session=saved)
