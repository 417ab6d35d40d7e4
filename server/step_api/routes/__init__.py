"""API route modules."""
from .steps import router as steps_router
from .sync import router as sync_router
from .leaderboard import router as leaderboard_router

__all__ = [
    "steps_router",
    "sync_router",
    "leaderboard_router",
]
