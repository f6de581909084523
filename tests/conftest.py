"""
Shared fixtures for the booking tests.
"""

import pytest

from helpers import (
    ADMIN_EMAIL,
    MONDAY_MORNING,
    TZ,
    StubCalendar,
    StubMailer,
    UnreliableSlotStore,
    fixed_clock,
    weekday_schedule,
)
from slotbooker.adapters.memory_store import InMemoryAdminConfigStore
from slotbooker.services.availability_service import AvailabilityService
from slotbooker.services.booking import BookingOrchestrator
from slotbooker.services.cancellation import CancellationOrchestrator


@pytest.fixture
def slot_store() -> UnreliableSlotStore:
    return UnreliableSlotStore()


@pytest.fixture
def config_store() -> InMemoryAdminConfigStore:
    return InMemoryAdminConfigStore(schedule_days=weekday_schedule(), window_days=7)


@pytest.fixture
def mailer() -> StubMailer:
    return StubMailer()


@pytest.fixture
def calendar() -> StubCalendar:
    return StubCalendar()


@pytest.fixture
def orchestrator(slot_store, config_store, mailer, calendar) -> BookingOrchestrator:
    return BookingOrchestrator(
        slot_store, config_store, mailer, calendar, admin_email=ADMIN_EMAIL, clock=MONDAY_MORNING
    )


@pytest.fixture
def canceller(slot_store, mailer, calendar) -> CancellationOrchestrator:
    return CancellationOrchestrator(slot_store, mailer, calendar)


@pytest.fixture
def availability(slot_store, config_store) -> AvailabilityService:
    # Monday 08:00
    return AvailabilityService(
        slot_store, config_store, timezone=TZ, clock=fixed_clock(2024, 11, 25, 8, 0)
    )
