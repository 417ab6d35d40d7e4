"""
Exception hierarchy for the step tracking pipeline.

Sensor errors are recoverable by falling back to simulated stepping.
Sync errors are logged and the data stays queued for the next save.
"""

from typing import Any, Dict, Optional


class StepTrackingError(Exception):
    """Base exception for all step tracking errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class PermissionDenied(StepTrackingError):
    """Raised when the user refuses motion/location authorization."""


class SensorUnavailable(StepTrackingError):
    """Raised when the platform lacks the sensor API or it cannot be reached."""


class SyncFailure(StepTrackingError):
    """
    Raised when a remote save or flush call fails.

    Examples:
    - Network connectivity issues
    - Server-side errors (non-2xx responses)
    - Database errors in the backing store
    """
