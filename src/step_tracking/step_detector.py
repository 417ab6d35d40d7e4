"""
Step Detector Module.

Converts motion samples into step counts with a threshold and refractory
period filter:

- Acceleration: a step is a magnitude above the threshold, more than the
  refractory period after the previous step. The strict variant also
  requires the magnitude to jump by a minimum delta from the previous sample,
  which rejects sustained high-magnitude vibration (e.g. a car ride).
- Geolocation: great-circle distance between consecutive fixes times a fixed
  steps-per-meter ratio.
- Simulation ticks pass their step count through.

No smoothing is applied beyond this.
"""

import logging
import math
from typing import Optional, Tuple

from .motion_sampler import (
    AccelerationSample,
    PositionSample,
    Sample,
    SimulatedSample,
)
from .metrics import round_half_up

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6371000.0


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two fixes in meters."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (math.sin(delta_phi / 2) ** 2 +
         math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


class StepDetector:
    """
    Stateful step filter.

    State is the previous acceleration magnitude, the time of the last
    detected step and the last geolocation fix. One detector belongs to one
    tracking session.
    """

    def __init__(
        self,
        threshold: float = 12.0,
        refractory_ms: float = 300.0,
        min_delta: float = 2.0,
        strict: bool = True,
        steps_per_meter: float = 1.3,
    ):
        """
        Initialize the detector.

        Args:
            threshold: Minimum acceleration magnitude for a step (m/s^2)
            refractory_ms: Minimum time between two steps
            min_delta: Minimum magnitude change vs the previous sample (strict only)
            strict: Apply the min_delta gate
            steps_per_meter: Step estimate per meter of geolocation distance
        """
        self.threshold = threshold
        self.refractory_ms = refractory_ms
        self.min_delta = min_delta
        self.strict = strict
        self.steps_per_meter = steps_per_meter

        self.last_magnitude: Optional[float] = None
        self.last_step_timestamp: Optional[float] = None
        self.last_fix: Optional[Tuple[float, float]] = None
        self.total_distance_m = 0.0

    @classmethod
    def from_settings(cls, settings) -> "StepDetector":
        return cls(
            threshold=settings.threshold,
            refractory_ms=settings.refractory_ms,
            min_delta=settings.min_delta,
            strict=settings.strict,
            steps_per_meter=settings.steps_per_meter,
        )

    def process(self, sample: Sample) -> int:
        """
        Feed one sample through the filter.

        Returns:
            Number of steps the sample produced (0 for discarded samples)
        """
        if isinstance(sample, AccelerationSample):
            return self._process_acceleration(sample)
        if isinstance(sample, PositionSample):
            return self._process_position(sample)
        if isinstance(sample, SimulatedSample):
            return max(int(sample.steps), 0)

        logger.debug(f"[DETECTOR] Discarding unknown sample: {sample!r}")
        return 0

    def _process_acceleration(self, sample: AccelerationSample) -> int:
        axes = (sample.x, sample.y, sample.z)
        if any(v is None or not math.isfinite(v) for v in axes):
            logger.debug(f"[DETECTOR] Discarding malformed sample: {axes}")
            return 0

        magnitude = math.sqrt(sample.x ** 2 + sample.y ** 2 + sample.z ** 2)
        previous = self.last_magnitude
        self.last_magnitude = magnitude

        if magnitude <= self.threshold:
            return 0

        if self.last_step_timestamp is not None:
            elapsed_ms = (sample.timestamp - self.last_step_timestamp) * 1000
            if elapsed_ms <= self.refractory_ms:
                return 0

        if self.strict:
            if previous is None or abs(magnitude - previous) <= self.min_delta:
                return 0

        self.last_step_timestamp = sample.timestamp
        logger.debug(f"[DETECTOR] Step at {sample.timestamp:.3f} (|a|={magnitude:.2f})")
        return 1

    def _process_position(self, sample: PositionSample) -> int:
        lat, lon = sample.latitude, sample.longitude
        if lat is None or lon is None or not (math.isfinite(lat) and math.isfinite(lon)):
            logger.debug(f"[DETECTOR] Discarding malformed fix: {lat}, {lon}")
            return 0

        previous = self.last_fix
        self.last_fix = (lat, lon)
        if previous is None:
            return 0

        distance = haversine_m(previous[0], previous[1], lat, lon)
        self.total_distance_m += distance
        steps = round_half_up(distance * self.steps_per_meter)

        logger.debug(f"[DETECTOR] Moved {distance:.1f}m, ~{steps} steps")
        return steps

    def reset(self) -> None:
        """Forget all state."""
        self.last_magnitude = None
        self.last_step_timestamp = None
        self.last_fix = None
        self.total_distance_m = 0.0
