"""
Sync Reconciler Module.

Persists the local step total to the remote store with upsert-by-day
semantics and replays entries captured while offline.

Conflict policy is last-write-wins on the whole record: a single device is the
source of truth for a user's day, so no field-level merge is attempted.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Union

from .exceptions import SyncFailure
from .metrics import fill_derived
from .models import ActivitySession, DailyStepRecord
from .store.base import StepRecordStore

if TYPE_CHECKING:
    from .achievements import AchievementChecker

logger = logging.getLogger(__name__)


@dataclass
class SyncQueueEntry:
    """A record captured while offline, waiting for remote acceptance."""

    kind: str  # steps, session
    payload: Union[DailyStepRecord, ActivitySession]
    entry_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    queued_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    attempts: int = 0
    last_error: Optional[str] = None

    @classmethod
    def for_record(cls, record: DailyStepRecord) -> "SyncQueueEntry":
        return cls(kind="steps", payload=record)

    @classmethod
    def for_session(cls, session: ActivitySession) -> "SyncQueueEntry":
        return cls(kind="session", payload=session)

    @property
    def key(self) -> tuple:
        if self.kind == "steps":
            return ("steps",) + self.payload.key
        return ("session", self.payload.session_id)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "entry_id": self.entry_id,
            "kind": self.kind,
            "payload": self.payload.model_dump(mode="json"),
            "queued_at": self.queued_at.isoformat(),
            "attempts": self.attempts,
            "last_error": self.last_error,
        }


class OfflineQueue:
    """
    Ordered queue of pending sync entries.

    Entries are keyed: a newer daily record for the same (user, date) replaces
    the queued one in place, since it carries the later total.
    """

    def __init__(self):
        self._entries: Dict[tuple, SyncQueueEntry] = {}

    def enqueue(self, entry: SyncQueueEntry) -> SyncQueueEntry:
        existing = self._entries.get(entry.key)
        if existing is not None:
            entry.attempts = existing.attempts
        self._entries[entry.key] = entry
        logger.debug(f"[SYNC] Queued {entry.kind} entry {entry.key} ({len(self)} pending)")
        return entry

    def pending(self) -> List[SyncQueueEntry]:
        return list(self._entries.values())

    def get(self, key: tuple) -> Optional[SyncQueueEntry]:
        return self._entries.get(key)

    def remove(self, entry: SyncQueueEntry) -> bool:
        current = self._entries.get(entry.key)
        if current is entry:
            del self._entries[entry.key]
            return True
        return False

    def discard_key(self, key: tuple) -> None:
        self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)


@dataclass
class FlushResult:
    """Outcome of one offline flush."""

    succeeded: List[SyncQueueEntry] = field(default_factory=list)
    failed: List[SyncQueueEntry] = field(default_factory=list)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict:
        return {
            "succeeded": [
                {"type": e.kind, "success": True, "data": e.payload.model_dump(mode="json")}
                for e in self.succeeded
            ],
            "failed": [
                {"type": e.kind, "success": False, "entry_id": e.entry_id, "error": e.last_error}
                for e in self.failed
            ],
        }


class SyncReconciler:
    """Live saves and offline flushes against a StepRecordStore."""

    def __init__(
        self,
        store: StepRecordStore,
        queue: Optional[OfflineQueue] = None,
        achievements: Optional["AchievementChecker"] = None,
    ):
        self.store = store
        self.queue = queue if queue is not None else OfflineQueue()
        self.achievements = achievements

    async def save_daily(
        self,
        user_id: str,
        day: date,
        step_count: int,
        distance: Optional[float] = None,
        calories: Optional[int] = None,
        active_minutes: Optional[int] = None,
        floors_climbed: int = 0,
    ) -> DailyStepRecord:
        """
        Upsert the (user_id, day) record with the given total.

        Derived fields default to the fixed per-step estimates. On failure the
        record is queued for a later flush and SyncFailure is raised.
        """
        record = DailyStepRecord(
            user_id=user_id,
            date=day,
            step_count=step_count,
            floors_climbed=floors_climbed or 0,
            **fill_derived(step_count, distance, calories, active_minutes),
        )

        try:
            saved = await self.store.upsert_daily_record(user_id, day, record.fields())
        except SyncFailure as e:
            logger.error(f"[SYNC] Save failed for {user_id} {day}, queued: {e}")
            entry = self.queue.enqueue(SyncQueueEntry.for_record(record))
            entry.last_error = str(e)
            raise

        # The newer total supersedes anything queued for the same day.
        self.queue.discard_key(("steps", user_id, day))
        logger.info(f"[SYNC] Saved {user_id} {day}: {record.step_count} steps")

        if self.achievements is not None:
            await self.achievements.check(user_id, record.step_count, day)

        return saved

    async def _push(self, entry: SyncQueueEntry) -> None:
        if entry.kind == "steps":
            record = entry.payload
            await self.store.upsert_daily_record(record.user_id, record.date, record.fields())
        elif entry.kind == "session":
            await self.store.upsert_activity_session(entry.payload)
        else:
            raise SyncFailure(f"Unknown sync entry kind: {entry.kind}")

    async def replay(
        self,
        entries: Iterable[SyncQueueEntry],
        queue: Optional[OfflineQueue] = None,
    ) -> FlushResult:
        """
        Attempt every entry in order and report each one.

        Entries are not merged by key, so a batch holding two totals for the
        same day stores both in turn and reports both. A failure never aborts
        the rest of the batch. When queue is given, stored entries leave it.
        """
        result = FlushResult()

        for entry in entries:
            entry.attempts += 1
            try:
                await self._push(entry)
            except SyncFailure as e:
                entry.last_error = str(e)
                result.failed.append(entry)
                logger.error(
                    f"[SYNC] Sync of {entry.kind} entry {entry.entry_id} failed "
                    f"(attempt {entry.attempts}): {e}"
                )
                continue

            if queue is not None:
                queue.remove(entry)
            result.succeeded.append(entry)
            logger.info(f"[SYNC] Synced {entry.kind} entry {entry.entry_id}")

        logger.info(
            f"[SYNC] Replay complete: {len(result.succeeded)} synced, "
            f"{len(result.failed)} failed"
        )
        return result

    async def flush(self, queue: Optional[OfflineQueue] = None) -> FlushResult:
        """Replay the offline queue; failures stay queued for the next flush."""
        queue = queue if queue is not None else self.queue
        return await self.replay(queue.pending(), queue=queue)
