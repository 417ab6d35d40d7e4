"""
Motion Sampler Module.

Turns a raw motion source (device accelerometer, geolocation fixes, or a
simulated generator) into a uniform async stream of samples.

A sampler is single-use: once stopped it cannot be started again. Sensor-backed
samplers register exactly one listener with the underlying sensor and
deregister that same handle on stop, so a restarted session never receives
duplicate deliveries.
"""

import asyncio
import logging
import math
import random
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable, Dict, Optional, Union

from .exceptions import PermissionDenied, SensorUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccelerationSample:
    """Acceleration including gravity, m/s^2 per axis."""

    x: Optional[float]
    y: Optional[float]
    z: Optional[float]
    timestamp: float = field(default_factory=time.monotonic)


@dataclass(frozen=True)
class PositionSample:
    """A geolocation fix in decimal degrees."""

    latitude: Optional[float]
    longitude: Optional[float]
    timestamp: float = field(default_factory=time.monotonic)


@dataclass(frozen=True)
class SimulatedSample:
    """A simulation tick carrying a number of step-equivalents."""

    steps: int
    timestamp: float = field(default_factory=time.monotonic)


Sample = Union[AccelerationSample, PositionSample, SimulatedSample]
SampleListener = Callable[[Sample], None]


def _as_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def sample_from_payload(payload: Dict[str, Any]) -> Optional[Sample]:
    """
    Parse a wire payload into a sample.

    Payloads look like {"kind": "acceleration", "x": .., "y": .., "z": ..,
    "timestamp": ..} or {"kind": "position", "latitude": .., "longitude": ..}.

    Returns:
        The sample, or None if the payload is not a recognisable sample
    """
    if not isinstance(payload, dict):
        return None

    kind = payload.get("kind", "acceleration")
    timestamp = _as_float(payload.get("timestamp"))
    if timestamp is None:
        timestamp = time.monotonic()

    if kind == "acceleration":
        return AccelerationSample(
            x=_as_float(payload.get("x")),
            y=_as_float(payload.get("y")),
            z=_as_float(payload.get("z")),
            timestamp=timestamp,
        )
    if kind == "position":
        return PositionSample(
            latitude=_as_float(payload.get("latitude")),
            longitude=_as_float(payload.get("longitude")),
            timestamp=timestamp,
        )

    logger.debug(f"[SAMPLER] Ignoring payload of unknown kind: {kind}")
    return None


class MotionSensor(ABC):
    """
    Capability interface for a platform motion source.

    Device motion and geolocation sources both implement this; the detector
    tells their samples apart by type.
    """

    @property
    def available(self) -> bool:
        """Whether the platform provides this sensor at all."""
        return True

    async def request_permission(self) -> bool:
        """Ask the user for authorization. Platforms without a prompt grant it."""
        return True

    @abstractmethod
    def add_listener(self, listener: SampleListener) -> None:
        """Start delivering samples to listener."""

    @abstractmethod
    def remove_listener(self, listener: SampleListener) -> None:
        """Stop delivering samples to listener."""


class MotionSampler(ABC):
    """Async iterator of samples between start() and stop()."""

    source = "device"

    def __init__(self):
        self._started = False
        self._stopped = False

    @property
    def active(self) -> bool:
        return self._started and not self._stopped

    async def start(self) -> None:
        if self._stopped:
            raise RuntimeError("A stopped sampler cannot be restarted")
        if self._started:
            return
        await self._start()
        self._started = True

    def stop(self) -> None:
        if not self._started or self._stopped:
            self._stopped = True
            return
        self._stopped = True
        self._stop()

    @abstractmethod
    async def _start(self) -> None:
        ...

    @abstractmethod
    def _stop(self) -> None:
        ...

    @abstractmethod
    def __aiter__(self) -> AsyncIterator[Sample]:
        ...


_STOP = object()


class SensorSampler(MotionSampler):
    """Sampler backed by a MotionSensor listener."""

    def __init__(self, sensor: MotionSensor, source: str = "device"):
        super().__init__()
        self.sensor = sensor
        self.source = source
        self._queue: asyncio.Queue = asyncio.Queue()
        # Registered and deregistered by identity, so keep the one handle.
        self._listener: SampleListener = self._on_sample

    def _on_sample(self, sample: Sample) -> None:
        if self._stopped:
            return
        self._queue.put_nowait(sample)

    async def _start(self) -> None:
        if not self.sensor.available:
            raise SensorUnavailable(
                "Motion sensor not supported on this platform",
                details={"sensor": type(self.sensor).__name__},
            )

        granted = await self.sensor.request_permission()
        if not granted:
            raise PermissionDenied("Motion permission denied")

        self.sensor.add_listener(self._listener)
        logger.info(f"[SAMPLER] Listening to {type(self.sensor).__name__}")

    def _stop(self) -> None:
        self.sensor.remove_listener(self._listener)
        self._queue.put_nowait(_STOP)
        logger.info(f"[SAMPLER] Stopped listening to {type(self.sensor).__name__}")

    async def __aiter__(self) -> AsyncIterator[Sample]:
        while True:
            item = await self._queue.get()
            if item is _STOP or self._stopped:
                return
            yield item


class SimulatedSampler(MotionSampler):
    """
    Demo/fallback source: a uniform random number of steps every interval.

    Used when motion permission is refused or no sensor exists.
    """

    source = "simulation"

    def __init__(
        self,
        interval: float = 2.0,
        min_steps: int = 1,
        max_steps: int = 5,
        rng: Optional[random.Random] = None,
    ):
        super().__init__()
        if min_steps < 1 or max_steps < min_steps:
            raise ValueError(f"Invalid simulation bounds: {min_steps}..{max_steps}")
        self.interval = interval
        self.min_steps = min_steps
        self.max_steps = max_steps
        self._rng = rng or random.Random()
        self._wakeup = asyncio.Event()

    async def _start(self) -> None:
        logger.info(
            f"[SAMPLER] Simulating {self.min_steps}-{self.max_steps} steps "
            f"every {self.interval}s"
        )

    def _stop(self) -> None:
        self._wakeup.set()
        logger.info("[SAMPLER] Simulation stopped")

    async def __aiter__(self) -> AsyncIterator[Sample]:
        while not self._stopped:
            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
            if self._stopped:
                return
            yield SimulatedSample(steps=self._rng.randint(self.min_steps, self.max_steps))
