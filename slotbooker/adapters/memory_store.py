"""
In-memory stores for tests and demos.

The lock stands in for the database's atomic constraint check: it makes the
uniqueness test and the insert one indivisible step, the same guarantee a
unique index gives the SQL store.
"""

import itertools
import threading
from datetime import date, time
from typing import Dict, Iterable, List, Optional, Sequence, Set

from ..domain.exceptions import AppointmentNotFoundError, DuplicateSlotError
from ..domain.models import Appointment, ScheduleDay


class InMemorySlotStore:
    """Appointment records kept in a dict keyed by id."""

    def __init__(self, appointments: Iterable[Appointment] = ()):
        self._lock = threading.Lock()
        self._rows: Dict[int, Appointment] = {}
        self._ids = itertools.count(1)
        for appointment in appointments:
            self.insert(appointment)

    def insert(self, appointment: Appointment) -> Appointment:
        with self._lock:
            if appointment.is_active and self._slot_taken(appointment.date, appointment.time):
                raise DuplicateSlotError(
                    f"Slot {appointment.date} {appointment.time:%H:%M} is already booked"
                )
            stored = appointment.with_id(next(self._ids))
            self._rows[stored.id] = stored
            return stored

    def get(
        self,
        appointment_id: int,
        customer_name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Appointment:
        with self._lock:
            return self._find(appointment_id, customer_name, email)

    def delete(
        self,
        appointment_id: int,
        customer_name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Appointment:
        with self._lock:
            appointment = self._find(appointment_id, customer_name, email)
            del self._rows[appointment_id]
            return appointment

    def booked_times(self, day: date) -> Set[time]:
        with self._lock:
            return {
                row.time for row in self._rows.values()
                if row.date == day and row.is_active
            }

    def set_event_id(self, appointment_id: int, event_id: str) -> None:
        with self._lock:
            appointment = self._find(appointment_id, None, None)
            self._rows[appointment_id] = appointment.with_event_id(event_id)

    def upcoming_for_customer(
        self, customer_name: str, email: str, from_date: date
    ) -> List[Appointment]:
        with self._lock:
            rows = [
                row for row in self._rows.values()
                if _owned_by(row, customer_name, email) and row.date >= from_date
            ]
        return sorted(rows, key=lambda row: (row.date, row.time))

    def list_appointments(self, from_date: Optional[date] = None) -> List[Appointment]:
        with self._lock:
            rows = [
                row for row in self._rows.values()
                if from_date is None or row.date >= from_date
            ]
        return sorted(rows, key=lambda row: (row.date, row.time))

    def _slot_taken(self, day: date, slot_time: time) -> bool:
        return any(
            row.date == day and row.time == slot_time and row.is_active
            for row in self._rows.values()
        )

    def _find(
        self, appointment_id: int, customer_name: Optional[str], email: Optional[str]
    ) -> Appointment:
        appointment = self._rows.get(appointment_id)
        if appointment is None:
            raise AppointmentNotFoundError(f"Appointment {appointment_id} not found")
        if customer_name is not None and not _owned_by(appointment, customer_name, email or ""):
            raise AppointmentNotFoundError(f"Appointment {appointment_id} not found")
        return appointment


class InMemoryAdminConfigStore:
    """Schedule, closures and horizon held in memory."""

    def __init__(
        self,
        schedule_days: Sequence[ScheduleDay] = (),
        blocked_days: Iterable[date] = (),
        window_days: Optional[int] = None,
        default_window_days: int = 14,
    ):
        self._schedule: Dict[int, ScheduleDay] = {day.day_of_week: day for day in schedule_days}
        self._blocked: Set[date] = set(blocked_days)
        self._window_days = window_days
        self._default_window_days = default_window_days

    def get_schedule_days(self) -> List[ScheduleDay]:
        return [self._schedule[key] for key in sorted(self._schedule)]

    def get_blocked_days(self) -> Set[date]:
        return set(self._blocked)

    def is_blocked_day(self, day: date) -> bool:
        return day in self._blocked

    def get_booking_window_days(self) -> int:
        if self._window_days is None:
            return self._default_window_days
        return self._window_days

    def upsert_schedule_days(self, days: Sequence[ScheduleDay]) -> None:
        # Build then swap so readers see either the old or the new schedule
        updated = dict(self._schedule)
        for day in days:
            updated[day.day_of_week] = day
        self._schedule = updated

    def upsert_booking_window_days(self, days: int) -> None:
        if days < 1:
            raise ValueError("Booking window must be at least one day")
        self._window_days = days

    def add_blocked_day(self, day: date) -> None:
        self._blocked = self._blocked | {day}

    def remove_blocked_day(self, day: date) -> None:
        self._blocked = self._blocked - {day}


def _owned_by(appointment: Appointment, customer_name: str, email: str) -> bool:
    return (
        appointment.customer_name.lower() == customer_name.lower()
        and appointment.email.lower() == email.lower()
    )
