"""Tracker configuration loaded from environment variables."""
from functools import lru_cache

from pydantic_settings import BaseSettings


class TrackerSettings(BaseSettings):
    """On-device step tracking settings."""

    # Step detection
    threshold: float = 12.0
    refractory_ms: float = 300.0
    min_delta: float = 2.0
    strict: bool = True
    steps_per_meter: float = 1.3

    # Simulation fallback
    simulation_interval: float = 2.0
    simulation_min_steps: int = 1
    simulation_max_steps: int = 5
    fallback_to_simulation: bool = True

    # Sync
    save_every: int = 10
    default_daily_goal: int = 10000
    api_url: str = "http://localhost:8083"
    api_timeout: float = 5.0

    # Motion sample topics on the event broker
    topic_prefix: str = "steps/events"

    class Config:
        env_prefix = "STEP_TRACKER_"


@lru_cache
def get_tracker_settings() -> TrackerSettings:
    return TrackerSettings()
