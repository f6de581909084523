"""
Stub collaborators and builders shared by the test modules.
"""

import threading
from datetime import date, time
from typing import Any, Dict, List, Optional, Set

import pendulum
import requests

from slotbooker.adapters.memory_store import InMemorySlotStore
from slotbooker.domain.exceptions import CalendarSyncError, MailDeliveryError, StoreError
from slotbooker.domain.models import Appointment, ScheduleDay


TZ = "Europe/Berlin"
ADMIN_EMAIL = "owner@example.com"

# 2024-11-25 is a Monday
MONDAY = date(2024, 11, 25)
TUESDAY = date(2024, 11, 26)


def weekday_schedule(start: time = time(9, 0), end: time = time(17, 0)) -> List[ScheduleDay]:
    """Mon-Fri open, Sat/Sun closed."""
    return [
        ScheduleDay(day_of_week=day, start_time=start, end_time=end, is_active=day < 5)
        for day in range(7)
    ]


def fixed_clock(*args: int):
    moment = pendulum.datetime(*args, tz=TZ)
    return lambda: moment


def booking_data(**overrides) -> dict:
    data = {
        "name": "Dana Levi",
        "email": "dana@example.com",
        "service": "Haircut",
        "date": TUESDAY.isoformat(),
        "time": "10:00",
    }
    data.update(overrides)
    return data


class StubMailer:
    """Records sends; fails for the listed recipients."""

    def __init__(self, fail_for: Optional[Set[str]] = None):
        self.fail_for = fail_for or set()
        self.sent: List[tuple] = []
        self._lock = threading.Lock()

    def send(self, to: str, subject: str, html_body: str) -> None:
        if to in self.fail_for:
            raise MailDeliveryError(f"mailbox {to} unavailable")
        with self._lock:
            self.sent.append((to, subject, html_body))

    @property
    def recipients(self) -> List[str]:
        return [to for to, _, _ in self.sent]


class StubCalendar:
    """Hands out sequential event ids; can be told to fail."""

    def __init__(self, fail_create: bool = False, fail_delete: bool = False):
        self.fail_create = fail_create
        self.fail_delete = fail_delete
        self.created: List[Appointment] = []
        self.deleted: List[str] = []
        self._lock = threading.Lock()

    def create_event(self, appointment: Appointment) -> str:
        if self.fail_create:
            raise CalendarSyncError("calendar API returned 503")
        with self._lock:
            self.created.append(appointment)
            return f"evt-{len(self.created)}"

    def delete_event(self, event_id: str) -> None:
        if self.fail_delete:
            raise CalendarSyncError("calendar API returned 503")
        self.deleted.append(event_id)


class UnreliableSlotStore(InMemorySlotStore):
    """In-memory store whose delete or event-id write can be made to fail."""

    def __init__(self, fail_delete: bool = False, fail_set_event_id: bool = False):
        super().__init__()
        self.fail_delete = fail_delete
        self.fail_set_event_id = fail_set_event_id

    def delete(self, appointment_id, customer_name=None, email=None):
        if self.fail_delete:
            raise StoreError("connection reset")
        return super().delete(appointment_id, customer_name=customer_name, email=email)

    def set_event_id(self, appointment_id, event_id):
        if self.fail_set_event_id:
            raise StoreError("connection reset")
        super().set_event_id(appointment_id, event_id)



MONDAY_MORNING = fixed_clock(2024, 11, 25, 8, 0)


class FakeResponse:
    """Minimal stand-in for ``requests.Response``."""

    def __init__(self, status_code: int = 200, body: Optional[Dict[str, Any]] = None):
        self.status_code = status_code
        self._body = body

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error")

    def json(self) -> Dict[str, Any]:
        if self._body is None:
            raise ValueError("No JSON body")
        return self._body
