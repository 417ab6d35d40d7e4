"""Application configuration loaded from environment variables."""
import os
from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Database path
    db_path: str = os.path.join(
        os.getenv(
            "DATA_PATH",
            os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))),
        ),
        "steps.db",
    )

    # API configuration
    api_host: str = "127.0.0.1"
    api_port: int = 8083

    # CORS
    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # Leaderboards
    leaderboard_limit: int = 100

    class Config:
        env_prefix = "STEP_API_"


@lru_cache
def get_settings() -> Settings:
    return Settings()
