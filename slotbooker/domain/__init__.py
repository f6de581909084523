"""
Domain layer - Pure business logic without external dependencies.
"""

from .availability import AvailabilityResolver
from .models import (
    Appointment,
    BookingOutcome,
    BookingResult,
    CancellationOutcome,
    CancellationResult,
    ScheduleDay,
    Slot,
)

__all__ = [
    "AvailabilityResolver",
    "Appointment",
    "BookingOutcome",
    "BookingResult",
    "CancellationOutcome",
    "CancellationResult",
    "ScheduleDay",
    "Slot",
]
