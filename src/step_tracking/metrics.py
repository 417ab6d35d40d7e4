"""
Derived step metrics.

Fixed linear coefficients turn a step count into distance, calories and
active minutes. The coefficients are approximations and must not change:
persisted records and leaderboards compare against values computed with them.
"""

import math
from typing import Any, Dict, Optional

KM_PER_STEP = 0.0008
CALORIES_PER_STEP = 0.04
ACTIVE_MINUTES_PER_STEP = 0.01


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (0.5 -> 1)."""
    return int(math.floor(value + 0.5))


def distance_km(steps: int) -> float:
    """Estimated distance in kilometres, to two decimals."""
    return round(steps * KM_PER_STEP, 2)


def calories(steps: int) -> int:
    return round_half_up(steps * CALORIES_PER_STEP)


def active_minutes(steps: int) -> int:
    return round_half_up(steps * ACTIVE_MINUTES_PER_STEP)


def derive_metrics(steps: int) -> dict:
    """Compute every derived field for a step count."""
    return {
        "distance": distance_km(steps),
        "calories": calories(steps),
        "active_minutes": active_minutes(steps),
    }


def fill_derived(
    step_count: int,
    distance: Optional[float] = None,
    calories: Optional[int] = None,
    active_minutes: Optional[int] = None,
) -> Dict[str, Any]:
    """Derived fields for a record, keeping any value the caller supplied."""
    derived = derive_metrics(step_count)
    given = {"distance": distance, "calories": calories, "active_minutes": active_minutes}
    return {name: derived[name] if value is None else value for name, value in given.items()}
