"""
Step Tracker Lifecycle Module.

Wires one tracking session together:

    MotionSampler -> StepDetector -> StepAccumulator -> SyncReconciler -> store

Every piece is an owned instance, so several trackers (or tests) never share
hidden state. All work runs on one asyncio loop; only store calls suspend.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable, Optional, Set

from .config import TrackerSettings, get_tracker_settings
from .exceptions import PermissionDenied, SensorUnavailable, SyncFailure
from .motion_sampler import MotionSampler, MotionSensor, SensorSampler, SimulatedSampler
from .step_accumulator import StepAccumulator, StepCallback
from .step_detector import StepDetector
from .store.base import StepRecordStore
from .sync_reconciler import FlushResult, SyncReconciler

logger = logging.getLogger(__name__)


@dataclass
class TrackingSession:
    """State of the current tracking session."""

    is_active: bool = False
    step_count_at_start: int = 0
    last_event_timestamp: Optional[float] = None
    source: Optional[str] = None  # device, simulation
    started_at: Optional[datetime] = None

    def steps_since_start(self, current: int) -> int:
        return max(current - self.step_count_at_start, 0)

    def to_dict(self) -> dict:
        return {
            "is_active": self.is_active,
            "step_count_at_start": self.step_count_at_start,
            "last_event_timestamp": self.last_event_timestamp,
            "source": self.source,
            "started_at": self.started_at.isoformat() if self.started_at else None,
        }


class StepTracker:
    """
    Inbound surface of the step pipeline for one user on one device.

    Falls back to simulated stepping when motion permission is refused or the
    sensor is missing. Saves are scheduled every `save_every` steps and on
    stop; they run one at a time and read the total when they begin. When the
    date changes mid-session the old day is saved under its own date and the
    count restarts from zero.
    """

    def __init__(
        self,
        user_id: str,
        sensor: Optional[MotionSensor],
        store: StepRecordStore,
        accumulator: Optional[StepAccumulator] = None,
        detector: Optional[StepDetector] = None,
        reconciler: Optional[SyncReconciler] = None,
        settings: Optional[TrackerSettings] = None,
        today: Callable[[], date] = date.today,
        rng: Optional[random.Random] = None,
    ):
        self.user_id = user_id
        self.sensor = sensor
        self.store = store
        self.settings = settings or get_tracker_settings()
        self.accumulator = accumulator or StepAccumulator()
        self.detector = detector or StepDetector.from_settings(self.settings)
        self.reconciler = reconciler or SyncReconciler(store)
        self.session = TrackingSession()

        self._today = today
        self._day = today()
        self._rng = rng
        self._sampler: Optional[MotionSampler] = None
        self._consumer: Optional[asyncio.Task] = None
        self._save_lock = asyncio.Lock()
        self._save_tasks: Set[asyncio.Task] = set()
        self._save_mark = self.accumulator.count // self.settings.save_every

        self.accumulator.subscribe(self._on_total)

    @property
    def step_count(self) -> int:
        return self.accumulator.count

    @property
    def is_tracking(self) -> bool:
        return self.session.is_active

    async def start_tracking(self) -> bool:
        """
        Start detecting steps.

        Returns:
            True if the device sensor is feeding the session, False if it
            could not start (a simulated source runs instead when fallback is on)
        """
        if self.session.is_active:
            return self.session.source == "device"

        sampler: Optional[MotionSampler] = None
        on_device = False

        try:
            if self.sensor is None:
                raise SensorUnavailable("No motion sensor configured")
            sampler = SensorSampler(self.sensor)
            await sampler.start()
            on_device = True
        except (PermissionDenied, SensorUnavailable) as e:
            logger.warning(f"[TRACKER] Device motion unavailable for {self.user_id}: {e}")
            if sampler is not None:
                sampler.stop()
            sampler = None

        if sampler is None:
            if not self.settings.fallback_to_simulation:
                return False
            sampler = SimulatedSampler(
                interval=self.settings.simulation_interval,
                min_steps=self.settings.simulation_min_steps,
                max_steps=self.settings.simulation_max_steps,
                rng=self._rng,
            )
            await sampler.start()
            logger.info(f"[TRACKER] Falling back to simulated steps for {self.user_id}")

        await self._roll_day()
        self.detector.reset()
        self._sampler = sampler
        self._save_mark = self.accumulator.count // self.settings.save_every
        self.session = TrackingSession(
            is_active=True,
            step_count_at_start=self.accumulator.count,
            source=sampler.source,
            started_at=datetime.now(timezone.utc),
        )
        self._consumer = asyncio.create_task(self._consume(sampler))

        logger.info(f"[TRACKER] Tracking started for {self.user_id} ({sampler.source})")
        return on_device

    async def _consume(self, sampler: MotionSampler) -> None:
        async for sample in sampler:
            if not self.session.is_active:
                break
            try:
                await self._roll_day()
                steps = self.detector.process(sample)
                if steps > 0:
                    self.session.last_event_timestamp = sample.timestamp
                    self.accumulator.record_steps(steps)
            except Exception as e:
                # Drop the sample, keep the session counting.
                logger.error(f"[TRACKER] Discarded sample for {self.user_id}: {e!r}")

    async def _roll_day(self) -> None:
        """Close out the tracked day when the calendar date has moved on."""
        today = self._today()
        if today == self._day:
            return
        async with self._save_lock:
            if today == self._day:
                return
            previous, count = self._day, self.accumulator.count
            await self._save(self.user_id, previous, count)
            logger.info(f"[TRACKER] Day rolled over for {self.user_id}: {previous} closed at {count}")
            self._day = today
            self._save_mark = 0
            self.accumulator.reset()

    async def stop_tracking(self) -> None:
        """
        Stop detecting steps and save the final total.

        The sensor listener is removed before this returns. The final save is
        best-effort: a failure is logged and the next save carries the total.
        """
        if not self.session.is_active:
            return

        self.session.is_active = False
        sampler, self._sampler = self._sampler, None
        if sampler is not None:
            sampler.stop()

        consumer, self._consumer = self._consumer, None
        if consumer is not None:
            consumer.cancel()
            try:
                await consumer
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.error(f"[TRACKER] Sample consumer for {self.user_id} had failed: {e!r}")

        steps = self.session.steps_since_start(self.accumulator.count)
        logger.info(f"[TRACKER] Tracking stopped for {self.user_id}: {steps} steps this session")

        if not await self.save_steps():
            logger.warning(f"[TRACKER] Final save failed for {self.user_id}, left for next save")

        self.session = TrackingSession()

    async def save_steps(self, user_id: Optional[str] = None) -> bool:
        """Upsert the tracked day's record with the current total."""
        user_id = user_id or self.user_id
        async with self._save_lock:
            return await self._save(user_id, self._day, self.accumulator.count)

    async def _save(self, user_id: str, day: date, count: int) -> bool:
        try:
            await self.reconciler.save_daily(user_id, day, count)
        except SyncFailure as e:
            logger.error(f"[TRACKER] Failed to save {count} steps for {user_id} on {day}: {e}")
            return False
        return True

    async def load_today_steps(self) -> int:
        """Hydrate the counter from today's stored record."""
        await self._roll_day()
        try:
            record = await self.store.fetch_daily_record(self.user_id, self._day)
        except SyncFailure as e:
            logger.error(f"[TRACKER] Failed to load today's steps for {self.user_id}: {e}")
            return 0

        if record is None:
            return 0

        self._save_mark = record.step_count // self.settings.save_every
        self.accumulator.set_count(record.step_count)
        logger.info(f"[TRACKER] Loaded {record.step_count} steps for {self.user_id}")
        return record.step_count

    async def flush_offline_queue(self) -> FlushResult:
        return await self.reconciler.flush()

    async def wait_for_saves(self) -> None:
        """Wait for scheduled saves to finish."""
        if self._save_tasks:
            await asyncio.gather(*self._save_tasks, return_exceptions=True)

    def set_step_count(self, count: int) -> None:
        self.accumulator.set_count(count)

    def reset_step_count(self) -> None:
        self.accumulator.reset()

    def on_step_update(self, callback: StepCallback) -> StepCallback:
        return self.accumulator.subscribe(callback)

    def remove_callback(self, callback: StepCallback) -> bool:
        return self.accumulator.unsubscribe(callback)

    def _on_total(self, total: int) -> None:
        mark = total // self.settings.save_every
        previous, self._save_mark = self._save_mark, mark
        if mark > previous and self.session.is_active:
            self._schedule_save()

    def _schedule_save(self) -> None:
        task = asyncio.get_running_loop().create_task(self.save_steps())
        self._save_tasks.add(task)
        task.add_done_callback(self._save_tasks.discard)
