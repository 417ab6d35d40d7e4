"""Leaderboard routes."""
from datetime import date
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from step_tracking.exceptions import SyncFailure
from step_tracking.leaderboard import Leaderboard
from step_tracking.store import SQLiteStepStore

from ..config import get_settings
from ..database import get_store, get_today
from ..models.leaderboard import CompetitionLeaderboard, GlobalLeaderboard

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Leaderboard"])


@router.get("/leaderboard")
async def get_leaderboard(
    period: str = Query(default="weekly", description="daily, weekly or monthly"),
    competition_id: Optional[str] = Query(default=None),
    user_id: Optional[str] = Query(default=None, description="Report this user's rank"),
    store: SQLiteStepStore = Depends(get_store),
    today: date = Depends(get_today),
):
    """
    Get the global leaderboard for a period, or a competition's standings.

    The global board only includes users with public visibility.
    """
    leaderboard = Leaderboard(store, limit=get_settings().leaderboard_limit)

    try:
        if competition_id:
            standings = await leaderboard.competition_leaderboard(competition_id)
            return CompetitionLeaderboard(leaderboard=standings)

        result = await leaderboard.global_leaderboard(period, today=today, user_id=user_id)
    except SyncFailure as e:
        log.error(f"[API] Failed to build leaderboard: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch leaderboard")

    return GlobalLeaderboard(**result.to_dict())
