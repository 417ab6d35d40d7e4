"""
Leaderboard aggregation.

The global board sums each public user's daily rows over a date range and
ranks by total steps. Ties keep input order (the sort is stable); no
secondary key is applied. Competition boards read the progress the
competition service already maintains.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .store.base import LeaderboardStore

logger = logging.getLogger(__name__)

LEADERBOARD_LIMIT = 100
PERIODS = ("daily", "weekly", "monthly")


@dataclass
class LeaderboardEntry:
    user_id: str
    name: str
    avatar_url: Optional[str]
    total_steps: int
    total_distance: float
    total_calories: int
    rank: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class LeaderboardResult:
    entries: List[LeaderboardEntry]
    user_rank: Optional[int] = None
    period: Optional[str] = None
    start: Optional[date] = None
    end: Optional[date] = None

    def to_dict(self) -> dict:
        return {
            "leaderboard": [e.to_dict() for e in self.entries],
            "period": self.period,
            "start_date": self.start.isoformat() if self.start else None,
            "end_date": self.end.isoformat() if self.end else None,
            "user_rank": self.user_rank,
        }


def period_range(period: str, today: date) -> Tuple[date, date]:
    """
    Date range covered by a leaderboard period, inclusive.

    daily is today only, weekly the last seven days, monthly the calendar
    month so far. Unknown periods fall back to weekly.
    """
    if period == "daily":
        return today, today
    if period == "monthly":
        return today.replace(day=1), today
    return today - timedelta(days=6), today


def aggregate_leaderboard(
    rows: Iterable[Dict[str, Any]],
    limit: int = LEADERBOARD_LIMIT,
    user_id: Optional[str] = None,
) -> LeaderboardResult:
    """
    Sum daily rows per user and rank them.

    Args:
        rows: Daily rows with user_id, name, avatar_url, step_count, distance, calories
        limit: Maximum entries to keep
        user_id: User whose rank to report

    Returns:
        LeaderboardResult with 1-based ranks by position
    """
    totals: Dict[str, LeaderboardEntry] = {}
    for row in rows:
        entry = totals.get(row["user_id"])
        if entry is None:
            entry = LeaderboardEntry(
                user_id=row["user_id"],
                name=row.get("name") or "",
                avatar_url=row.get("avatar_url"),
                total_steps=0,
                total_distance=0.0,
                total_calories=0,
            )
            totals[row["user_id"]] = entry
        entry.total_steps += int(row.get("step_count") or 0)
        entry.total_distance += float(row.get("distance") or 0)
        entry.total_calories += int(row.get("calories") or 0)

    ranked = sorted(totals.values(), key=lambda e: e.total_steps, reverse=True)[:limit]
    for index, entry in enumerate(ranked):
        entry.rank = index + 1
        entry.total_distance = round(entry.total_distance, 2)

    user_rank = None
    if user_id is not None:
        user_rank = next((e.rank for e in ranked if e.user_id == user_id), None)

    return LeaderboardResult(entries=ranked, user_rank=user_rank)


class Leaderboard:
    """Leaderboard queries over a LeaderboardStore."""

    def __init__(self, store: LeaderboardStore, limit: int = LEADERBOARD_LIMIT):
        self.store = store
        self.limit = limit

    async def global_leaderboard(
        self,
        period: str = "weekly",
        today: Optional[date] = None,
        user_id: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> LeaderboardResult:
        if start is None or end is None:
            start, end = period_range(period, today or date.today())

        rows = await self.store.fetch_public_rows(start, end)
        result = aggregate_leaderboard(rows, limit=self.limit, user_id=user_id)
        result.period, result.start, result.end = period, start, end

        logger.debug(
            f"[LEADERBOARD] {period} {start}..{end}: {len(rows)} rows, "
            f"{len(result.entries)} users"
        )
        return result

    async def competition_leaderboard(self, competition_id: str) -> List[Dict[str, Any]]:
        participants = await self.store.fetch_competition_participants(competition_id)
        ranked = sorted(participants, key=lambda p: p.current_progress, reverse=True)
        return [p.model_dump() for p in ranked[: self.limit]]
