"""
Collaborator contracts consumed by the booking services.

Adapters implement these structurally; the services never import a concrete
store or gateway.
"""

from __future__ import annotations

from datetime import date, time
from typing import List, Optional, Protocol, Sequence, Set

from ..domain.models import Appointment, ScheduleDay


class SlotStoreProtocol(Protocol):
    """
    Persistent appointment records.

    Implementations must enforce uniqueness of (date, time) among active rows
    at the storage layer and raise ``DuplicateSlotError`` on a conflicting
    insert. Lookups raise ``AppointmentNotFoundError``.
    """

    def insert(self, appointment: Appointment) -> Appointment:
        """Persist a new appointment and return it with its id."""

    def get(
        self,
        appointment_id: int,
        customer_name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Appointment:
        """Fetch one appointment, optionally filtered by owner."""

    def delete(
        self,
        appointment_id: int,
        customer_name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Appointment:
        """Delete one appointment under the same filter ``get`` uses."""

    def booked_times(self, day: date) -> Set[time]:
        """Times held by active appointments on a date."""

    def set_event_id(self, appointment_id: int, event_id: str) -> None:
        """Record the external calendar event id."""

    def upcoming_for_customer(
        self, customer_name: str, email: str, from_date: date
    ) -> List[Appointment]:
        """A customer's appointments on or after ``from_date``."""

    def list_appointments(self, from_date: Optional[date] = None) -> List[Appointment]:
        """All appointments ordered by date and time."""


class AdminConfigStoreProtocol(Protocol):
    """Schedule, closures and horizon. Read-only to the booking flow."""

    def get_schedule_days(self) -> List[ScheduleDay]:
        """Schedule days ordered by weekday."""

    def get_blocked_days(self) -> Set[date]:
        """All closed dates."""

    def is_blocked_day(self, day: date) -> bool:
        """Whether a single date is closed."""

    def get_booking_window_days(self) -> int:
        """Length of the booking horizon in days."""

    def upsert_schedule_days(self, days: Sequence[ScheduleDay]) -> None:
        """Replace the schedule rows for the given weekdays."""

    def upsert_booking_window_days(self, days: int) -> None:
        """Replace the booking horizon."""

    def add_blocked_day(self, day: date) -> None:
        """Close a date."""

    def remove_blocked_day(self, day: date) -> None:
        """Reopen a date."""


class NotificationGatewayProtocol(Protocol):
    """Outgoing email."""

    def send(self, to: str, subject: str, html_body: str) -> None:
        """Send one message; raise on failure."""


class CalendarGatewayProtocol(Protocol):
    """External calendar holding one event per appointment."""

    def create_event(self, appointment: Appointment) -> str:
        """Create the event and return its external id."""

    def delete_event(self, event_id: str) -> None:
        """Remove a previously created event."""
