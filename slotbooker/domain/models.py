"""
Domain models for appointments, weekly schedules and booking outcomes.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import List, Optional

import pendulum

from .exceptions import BookingError

ACTIVE_STATUSES = ("confirmed", "pending")


@dataclass(frozen=True)
class Appointment:
    """
    A reservation of one (date, time) slot.

    Invariant: no two active appointments share (date, time).
    """
    customer_name: str
    email: str
    date: date
    time: time
    service: str
    status: str = "confirmed"
    id: Optional[int] = None
    event_id: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def with_id(self, appointment_id: int) -> "Appointment":
        return replace(self, id=appointment_id)

    def with_event_id(self, event_id: Optional[str]) -> "Appointment":
        return replace(self, event_id=event_id)

    def display_date(self) -> str:
        """Date in day/month/year form, e.g. 26/11/2024."""
        return format_display_date(self.date)

    def display_time(self) -> str:
        return self.time.strftime("%H:%M")


@dataclass(frozen=True)
class ScheduleDay:
    """
    Opening hours for one weekday.

    day_of_week follows ``date.weekday()``: 0=Monday, 6=Sunday.
    """
    day_of_week: int
    start_time: time
    end_time: time
    is_active: bool = True

    def __post_init__(self):
        if self.day_of_week not in range(7):
            raise ValueError(f"day_of_week must be between 0 and 6, got {self.day_of_week}")

    def generate_slots(self, on_date: date, granularity_minutes: int = 30) -> List[time]:
        """
        Generate slot start times over [start_time, end_time).

        Returns an empty list for an inverted or empty range.
        """
        if self.start_time >= self.end_time:
            return []

        step = timedelta(minutes=granularity_minutes)
        current = datetime.combine(on_date, self.start_time)
        end = datetime.combine(on_date, self.end_time)

        slots: List[time] = []
        while current < end:
            slots.append(current.time())
            current += step

        return slots


@dataclass(frozen=True, order=True)
class Slot:
    """A bookable (date, time) pair."""
    date: date
    time: time

    def format_display(self) -> str:
        """
        Format the slot for display.
        Format: Weekday, DD/MM/YYYY | HH:MM
        """
        weekday = pendulum.date(self.date.year, self.date.month, self.date.day).format("dddd")
        return f"{weekday}, {format_display_date(self.date)} | {self.time.strftime('%H:%M')}"


class BookingOutcome(str, Enum):
    CONFIRMED = "confirmed"
    VALIDATION_ERROR = "validation_error"
    BLOCKED_DAY = "blocked_day"
    SLOT_CONFLICT = "slot_conflict"
    NOTIFICATION_ERROR = "notification_error"
    CALENDAR_ERROR = "calendar_error"
    ROLLBACK_FAILURE = "rollback_failure"
    ERROR = "error"


@dataclass
class BookingResult:
    """Structured answer to a booking request. Never carries a raw fault."""
    outcome: BookingOutcome
    message: str
    appointment: Optional[Appointment] = None
    error: Optional[BookingError] = None
    field_errors: dict = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.outcome is BookingOutcome.CONFIRMED


class CancellationOutcome(str, Enum):
    CANCELLED = "cancelled"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass
class CancellationResult:
    """Structured answer to a cancellation request."""
    outcome: CancellationOutcome
    message: str
    appointment: Optional[Appointment] = None

    @property
    def success(self) -> bool:
        return self.outcome is CancellationOutcome.CANCELLED


def format_display_date(value: date) -> str:
    """Format a date as DD/MM/YYYY."""
    return pendulum.date(value.year, value.month, value.day).format("DD/MM/YYYY")
