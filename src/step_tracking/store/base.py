"""Remote store contracts consumed by the tracker, reconciler and aggregators."""
from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, List, Optional

from ..models import (
    Achievement,
    ActivitySession,
    CompetitionParticipant,
    DailyStepRecord,
    UserProfile,
)


class StepRecordStore(ABC):
    """Upsert-by-day record service. Implementations raise SyncFailure on errors."""

    @abstractmethod
    async def upsert_daily_record(
        self, user_id: str, day: date, fields: Dict[str, Any]
    ) -> DailyStepRecord:
        """Insert or fully overwrite the (user_id, day) record."""

    @abstractmethod
    async def fetch_daily_record(self, user_id: str, day: date) -> Optional[DailyStepRecord]:
        ...

    @abstractmethod
    async def fetch_range(
        self,
        user_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[DailyStepRecord]:
        """Records in [start, end], newest first. Open bounds mean unbounded."""

    @abstractmethod
    async def upsert_activity_session(self, session: ActivitySession) -> ActivitySession:
        ...


class AchievementStore(ABC):
    """Queries the achievement checker needs."""

    @abstractmethod
    async def fetch_range(
        self,
        user_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[DailyStepRecord]:
        ...

    @abstractmethod
    async def fetch_user(self, user_id: str) -> Optional[UserProfile]:
        ...

    @abstractmethod
    async def list_unsatisfied_achievements(
        self, requirement_type: str, threshold: int
    ) -> List[Achievement]:
        """Achievements of requirement_type whose requirement_value <= threshold."""

    @abstractmethod
    async def has_unlocked_achievement(self, user_id: str, achievement_id: str) -> bool:
        ...

    @abstractmethod
    async def unlock_achievement(self, user_id: str, achievement_id: str, progress: int) -> None:
        ...

    @abstractmethod
    async def create_notification(
        self, user_id: str, notification_type: str, payload: Dict[str, Any]
    ) -> None:
        ...


class LeaderboardStore(ABC):
    """Read paths for the leaderboards."""

    @abstractmethod
    async def fetch_public_rows(self, start: date, end: date) -> List[Dict[str, Any]]:
        """
        Daily rows of users with public visibility in [start, end].

        Each row has user_id, name, avatar_url, step_count, distance, calories.
        """

    @abstractmethod
    async def fetch_competition_participants(
        self, competition_id: str
    ) -> List[CompetitionParticipant]:
        ...
