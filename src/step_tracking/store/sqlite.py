"""SQLite-backed step store."""
import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Any, Dict, Generator, List, Optional

from ..exceptions import SyncFailure
from ..models import (
    Achievement,
    ActivitySession,
    CompetitionParticipant,
    DailyStepRecord,
    UserProfile,
)
from .base import AchievementStore, LeaderboardStore, StepRecordStore

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL DEFAULT '',
    avatar_url TEXT,
    daily_goal INTEGER NOT NULL DEFAULT 10000,
    privacy_level TEXT NOT NULL DEFAULT 'public'
);

CREATE TABLE IF NOT EXISTS steps (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    date TEXT NOT NULL,
    step_count INTEGER NOT NULL DEFAULT 0 CHECK (step_count >= 0),
    distance REAL NOT NULL DEFAULT 0,
    calories INTEGER NOT NULL DEFAULT 0,
    active_minutes INTEGER NOT NULL DEFAULT 0,
    floors_climbed INTEGER NOT NULL DEFAULT 0,
    UNIQUE (user_id, date)
);

CREATE TABLE IF NOT EXISTS activity_sessions (
    session_id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    activity_type TEXT NOT NULL,
    start_time TEXT NOT NULL,
    end_time TEXT,
    steps INTEGER NOT NULL DEFAULT 0,
    distance REAL NOT NULL DEFAULT 0,
    calories INTEGER NOT NULL DEFAULT 0,
    route_data TEXT
);

CREATE TABLE IF NOT EXISTS achievements (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT,
    requirement_type TEXT NOT NULL,
    requirement_value INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS user_achievements (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    achievement_id TEXT NOT NULL,
    progress INTEGER NOT NULL DEFAULT 0,
    unlocked_at TEXT NOT NULL,
    UNIQUE (user_id, achievement_id)
);

CREATE TABLE IF NOT EXISTS notifications (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    type TEXT NOT NULL,
    title TEXT NOT NULL DEFAULT '',
    message TEXT NOT NULL DEFAULT '',
    data TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS user_competitions (
    competition_id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    current_progress INTEGER NOT NULL DEFAULT 0,
    rank INTEGER,
    PRIMARY KEY (competition_id, user_id)
);
"""


def _row_to_record(row) -> DailyStepRecord:
    return DailyStepRecord(
        user_id=row["user_id"],
        date=date.fromisoformat(row["date"]),
        step_count=int(row["step_count"]),
        distance=float(row["distance"] or 0),
        calories=int(row["calories"] or 0),
        active_minutes=int(row["active_minutes"] or 0),
        floors_climbed=int(row["floors_climbed"] or 0),
    )


class SQLiteStepStore(StepRecordStore, AchievementStore, LeaderboardStore):
    """
    Step store on a single SQLite file.

    Opens a connection per operation, so concurrent readers (the API and a
    seeding script) do not hold each other's transactions.

    The async methods run sqlite3 calls directly on the event loop. Each call
    is a short local query, which suits a single-user or demo server; a busy
    multi-user deployment needs a store backed by an async driver.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        with self._connect() as conn:
            conn.executescript(SCHEMA)
        logger.info(f"[STORE] SQLite step store ready at {db_path}")

    @contextmanager
    def _connect(self) -> Generator[sqlite3.Connection, None, None]:
        try:
            conn = sqlite3.connect(self.db_path, check_same_thread=False)
        except sqlite3.Error as e:
            raise SyncFailure(f"Cannot open step database: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error(f"[STORE] Database error: {e}")
            raise SyncFailure(f"Step database error: {e}") from e
        finally:
            conn.close()

    # Step records

    async def upsert_daily_record(
        self, user_id: str, day: date, fields: Dict[str, Any]
    ) -> DailyStepRecord:
        record = DailyStepRecord(user_id=user_id, date=day, **fields)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO steps (
                    user_id, date, step_count, distance, calories,
                    active_minutes, floors_climbed
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (user_id, date) DO UPDATE SET
                    step_count = excluded.step_count,
                    distance = excluded.distance,
                    calories = excluded.calories,
                    active_minutes = excluded.active_minutes,
                    floors_climbed = excluded.floors_climbed
                """,
                (
                    record.user_id,
                    record.date.isoformat(),
                    record.step_count,
                    record.distance,
                    record.calories,
                    record.active_minutes,
                    record.floors_climbed,
                ),
            )
        logger.debug(f"[STORE] Upserted {user_id} {day}: {record.step_count} steps")
        return record

    async def fetch_daily_record(self, user_id: str, day: date) -> Optional[DailyStepRecord]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM steps WHERE user_id = ? AND date = ?",
                (user_id, day.isoformat()),
            ).fetchone()
        return _row_to_record(row) if row else None

    async def fetch_range(
        self,
        user_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[DailyStepRecord]:
        query = "SELECT * FROM steps WHERE user_id = ?"
        params: list = [user_id]
        if start is not None:
            query += " AND date >= ?"
            params.append(start.isoformat())
        if end is not None:
            query += " AND date <= ?"
            params.append(end.isoformat())
        query += " ORDER BY date DESC"

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_row_to_record(row) for row in rows]

    async def upsert_activity_session(self, session: ActivitySession) -> ActivitySession:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO activity_sessions (
                    session_id, user_id, activity_type, start_time, end_time,
                    steps, distance, calories, route_data
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (session_id) DO UPDATE SET
                    user_id = excluded.user_id,
                    activity_type = excluded.activity_type,
                    start_time = excluded.start_time,
                    end_time = excluded.end_time,
                    steps = excluded.steps,
                    distance = excluded.distance,
                    calories = excluded.calories,
                    route_data = excluded.route_data
                """,
                (
                    session.session_id,
                    session.user_id,
                    session.activity_type,
                    session.start_time.isoformat(),
                    session.end_time.isoformat() if session.end_time else None,
                    session.steps,
                    session.distance,
                    session.calories,
                    json.dumps(session.route_data) if session.route_data is not None else None,
                ),
            )
        return session

    async def fetch_activity_session(self, session_id: str) -> Optional[ActivitySession]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM activity_sessions WHERE session_id = ?", (session_id,)
            ).fetchone()
        if not row:
            return None
        return ActivitySession(
            session_id=row["session_id"],
            user_id=row["user_id"],
            activity_type=row["activity_type"],
            start_time=datetime.fromisoformat(row["start_time"]),
            end_time=datetime.fromisoformat(row["end_time"]) if row["end_time"] else None,
            steps=row["steps"],
            distance=row["distance"],
            calories=row["calories"],
            route_data=json.loads(row["route_data"]) if row["route_data"] else None,
        )

    # Achievements

    async def fetch_user(self, user_id: str) -> Optional[UserProfile]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if not row:
            return None
        return UserProfile(
            id=row["id"],
            name=row["name"],
            daily_goal=row["daily_goal"],
            privacy_level=row["privacy_level"],
        )

    async def list_unsatisfied_achievements(
        self, requirement_type: str, threshold: int
    ) -> List[Achievement]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM achievements
                WHERE requirement_type = ? AND requirement_value <= ?
                ORDER BY requirement_value, id
                """,
                (requirement_type, threshold),
            ).fetchall()
        return [
            Achievement(
                id=row["id"],
                name=row["name"],
                description=row["description"],
                requirement_type=row["requirement_type"],
                requirement_value=row["requirement_value"],
            )
            for row in rows
        ]

    async def has_unlocked_achievement(self, user_id: str, achievement_id: str) -> bool:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT id FROM user_achievements WHERE user_id = ? AND achievement_id = ?",
                (user_id, achievement_id),
            ).fetchone()
        return row is not None

    async def unlock_achievement(self, user_id: str, achievement_id: str, progress: int) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR IGNORE INTO user_achievements
                    (user_id, achievement_id, progress, unlocked_at)
                VALUES (?, ?, ?, ?)
                """,
                (user_id, achievement_id, progress, datetime.now(timezone.utc).isoformat()),
            )

    async def create_notification(
        self, user_id: str, notification_type: str, payload: Dict[str, Any]
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO notifications (user_id, type, title, message, data, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    notification_type,
                    payload.get("title", ""),
                    payload.get("message", ""),
                    json.dumps(payload.get("data")) if payload.get("data") is not None else None,
                    datetime.now(timezone.utc).isoformat(),
                ),
            )

    # Leaderboards

    async def fetch_public_rows(self, start: date, end: date) -> List[Dict[str, Any]]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT s.user_id, u.name, u.avatar_url,
                       s.step_count, s.distance, s.calories
                FROM steps s
                JOIN users u ON u.id = s.user_id
                WHERE s.date >= ? AND s.date <= ? AND u.privacy_level = 'public'
                ORDER BY s.id
                """,
                (start.isoformat(), end.isoformat()),
            ).fetchall()
        return [dict(row) for row in rows]

    async def fetch_competition_participants(
        self, competition_id: str
    ) -> List[CompetitionParticipant]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT uc.competition_id, uc.user_id, COALESCE(u.name, '') AS name,
                       uc.current_progress, uc.rank
                FROM user_competitions uc
                LEFT JOIN users u ON u.id = uc.user_id
                WHERE uc.competition_id = ?
                ORDER BY uc.rowid
                """,
                (competition_id,),
            ).fetchall()
        return [CompetitionParticipant(**dict(row)) for row in rows]

    # Seeding helpers (scripts and tests)

    def save_user(self, user: UserProfile, avatar_url: Optional[str] = None) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO users (id, name, avatar_url, daily_goal, privacy_level)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT (id) DO UPDATE SET
                    name = excluded.name,
                    avatar_url = excluded.avatar_url,
                    daily_goal = excluded.daily_goal,
                    privacy_level = excluded.privacy_level
                """,
                (user.id, user.name, avatar_url, user.daily_goal, user.privacy_level),
            )

    def save_achievement(self, achievement: Achievement) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO achievements
                    (id, name, description, requirement_type, requirement_value)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    achievement.id,
                    achievement.name,
                    achievement.description,
                    achievement.requirement_type,
                    achievement.requirement_value,
                ),
            )

    def save_participant(self, participant: CompetitionParticipant) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO user_competitions (competition_id, user_id, current_progress, rank)
                VALUES (?, ?, ?, ?)
                ON CONFLICT (competition_id, user_id) DO UPDATE SET
                    current_progress = excluded.current_progress,
                    rank = excluded.rank
                """,
                (
                    participant.competition_id,
                    participant.user_id,
                    participant.current_progress,
                    participant.rank,
                ),
            )

    def list_unlocked(self, user_id: str) -> List[Dict[str, Any]]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM user_achievements WHERE user_id = ? ORDER BY id",
                (user_id,),
            ).fetchall()
        return [dict(row) for row in rows]

    def list_notifications(self, user_id: str) -> List[Dict[str, Any]]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM notifications WHERE user_id = ? ORDER BY id",
                (user_id,),
            ).fetchall()
        return [dict(row) for row in rows]
