"""Shared route dependencies: the SQLite step store and the current date."""
from datetime import date
from functools import lru_cache
import logging

from step_tracking.store import SQLiteStepStore

from .config import get_settings

log = logging.getLogger(__name__)


@lru_cache
def get_store() -> SQLiteStepStore:
    """
    Store dependency for the routes.

    One store per process; it opens a fresh connection per operation, so
    seeding scripts can write to the same file while the API is running.
    Tests replace it through app.dependency_overrides.
    """
    settings = get_settings()
    log.info(f"[API] Using step database at {settings.db_path}")
    return SQLiteStepStore(settings.db_path)


def get_today() -> date:
    """Reference date for period queries."""
    return date.today()
