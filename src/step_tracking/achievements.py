"""
Achievement Checking Module.

Runs after each daily step save. Two requirement types are satisfied from
step data:

- total_steps: the sum of every daily step count the user has recorded
- daily_goal: 1 when the saved day's count reaches the user's daily goal, else 0

Unlocking is idempotent: each candidate is looked up in the user's existing
unlocks first. A failed check is logged and never reaches the save caller.
"""

import logging
from datetime import date
from typing import List

from .models import Achievement
from .store.base import AchievementStore

logger = logging.getLogger(__name__)

TOTAL_STEPS = "total_steps"
DAILY_GOAL = "daily_goal"
DEFAULT_DAILY_GOAL = 10000


class AchievementChecker:
    """Unlocks step achievements and creates their notifications."""

    def __init__(self, store: AchievementStore, default_daily_goal: int = DEFAULT_DAILY_GOAL):
        self.store = store
        self.default_daily_goal = default_daily_goal

    async def check(self, user_id: str, step_count: int, day: date) -> List[Achievement]:
        """
        Check both requirement types after a save.

        Returns:
            Achievements newly unlocked by this call (empty on failure)
        """
        try:
            return await self._check(user_id, step_count, day)
        except Exception as e:
            logger.error(f"[ACHIEVEMENTS] Check failed for {user_id} on {day}: {e}")
            return []

    async def _check(self, user_id: str, step_count: int, day: date) -> List[Achievement]:
        records = await self.store.fetch_range(user_id)
        total = sum(r.step_count for r in records)

        user = await self.store.fetch_user(user_id)
        daily_goal = user.daily_goal if user and user.daily_goal else self.default_daily_goal

        checks = [
            (TOTAL_STEPS, total),
            (DAILY_GOAL, 1 if step_count >= daily_goal else 0),
        ]

        unlocked = []
        for requirement_type, value in checks:
            candidates = await self.store.list_unsatisfied_achievements(requirement_type, value)
            for achievement in candidates:
                if await self.store.has_unlocked_achievement(user_id, achievement.id):
                    continue
                await self._unlock(user_id, achievement)
                unlocked.append(achievement)

        if unlocked:
            logger.info(
                f"[ACHIEVEMENTS] {user_id} unlocked {[a.name for a in unlocked]} "
                f"(total={total}, day={day})"
            )
        else:
            logger.debug(f"[ACHIEVEMENTS] Nothing new for {user_id} (total={total})")

        return unlocked

    async def _unlock(self, user_id: str, achievement: Achievement) -> None:
        await self.store.unlock_achievement(
            user_id, achievement.id, progress=achievement.requirement_value
        )
        await self.store.create_notification(
            user_id,
            "achievement",
            {
                "title": "Achievement Unlocked!",
                "message": f'You\'ve earned the "{achievement.name}" achievement!',
                "data": {"achievement_id": achievement.id},
            },
        )
