"""
Pytest fixtures for Step Tracker tests.
"""
import sys
import asyncio
import pytest
from pathlib import Path
from datetime import date
from typing import List, Optional, Set
from dotenv import load_dotenv

# Ensure src/ (step_tracking) and the project root (server) are importable.
ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
for path in (SRC, ROOT):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from step_tracking.config import TrackerSettings
from step_tracking.exceptions import SyncFailure
from step_tracking.motion_sampler import MotionSensor
from step_tracking.store.base import StepRecordStore
from step_tracking.store.sqlite import SQLiteStepStore

# Load environment variables
load_dotenv()


TODAY = date(2026, 10, 19)


# ============================================================================
# Test doubles
# ============================================================================

class FakeMotionSensor(MotionSensor):
    """In-memory motion sensor; emit() delivers a sample to every listener."""

    def __init__(self, available: bool = True, granted: bool = True):
        self._available = available
        self.granted = granted
        self.listeners: List = []
        self.permission_requests = 0

    @property
    def available(self) -> bool:
        return self._available

    async def request_permission(self) -> bool:
        self.permission_requests += 1
        return self.granted

    def add_listener(self, listener) -> None:
        self.listeners.append(listener)

    def remove_listener(self, listener) -> None:
        self.listeners = [l for l in self.listeners if l is not listener]

    def emit(self, sample) -> None:
        for listener in list(self.listeners):
            listener(sample)


class FlakyStepStore(StepRecordStore):
    """
    Wraps a real store and fails writes on demand.

    fail_all fails every write; failing_dates fails daily upserts for those
    dates only.
    """

    def __init__(self, inner: SQLiteStepStore):
        self.inner = inner
        self.fail_all = False
        self.failing_dates: Set[date] = set()
        self.upserts = 0

    def _check(self, day: Optional[date] = None):
        if self.fail_all or (day is not None and day in self.failing_dates):
            raise SyncFailure("Store offline", details={"date": str(day)})

    async def upsert_daily_record(self, user_id, day, fields):
        self._check(day)
        self.upserts += 1
        return await self.inner.upsert_daily_record(user_id, day, fields)

    async def fetch_daily_record(self, user_id, day):
        self._check()
        return await self.inner.fetch_daily_record(user_id, day)

    async def fetch_range(self, user_id, start=None, end=None):
        self._check()
        return await self.inner.fetch_range(user_id, start, end)

    async def upsert_activity_session(self, session):
        self._check()
        return await self.inner.upsert_activity_session(session)


async def drain(rounds: int = 20):
    """Let queued loop callbacks and the consumer task run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


async def wait_for(predicate, timeout: float = 2.0):
    """Poll until predicate() is true or fail after timeout."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("Condition not met before timeout")
        await asyncio.sleep(0.005)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def store(tmp_path):
    """Fresh SQLite step store in a temp directory."""
    return SQLiteStepStore(str(tmp_path / "steps.db"))


@pytest.fixture
def flaky_store(store):
    return FlakyStepStore(store)


@pytest.fixture
def sensor():
    return FakeMotionSensor()


@pytest.fixture
def settings():
    """Tracker settings with a fast simulation tick."""
    return TrackerSettings(
        simulation_interval=0.01,
        simulation_min_steps=1,
        simulation_max_steps=5,
        save_every=10,
    )
