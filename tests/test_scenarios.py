"""
End-to-end flows over the in-memory stores: query, book, query, cancel.
"""

from datetime import date, time

from helpers import ADMIN_EMAIL, MONDAY, TUESDAY, TZ, StubCalendar, StubMailer, booking_data, fixed_clock
from slotbooker.adapters.memory_store import InMemoryAdminConfigStore, InMemorySlotStore
from slotbooker.domain.models import BookingOutcome, CancellationOutcome, ScheduleDay
from slotbooker.services.availability_service import AvailabilityService
from slotbooker.services.booking import BookingOrchestrator
from slotbooker.services.cancellation import CancellationOrchestrator


def build(config_store, clock):
    slot_store = InMemorySlotStore()
    mailer, calendar = StubMailer(), StubCalendar()
    return (
        slot_store,
        AvailabilityService(slot_store, config_store, timezone=TZ, clock=clock),
        BookingOrchestrator(
            slot_store, config_store, mailer, calendar, admin_email=ADMIN_EMAIL, clock=clock
        ),
        CancellationOrchestrator(slot_store, mailer, calendar),
        calendar,
    )


def test_booked_slot_disappears_and_returns_after_cancellation():
    """Mon-Fri 09:00-17:00, seven day window, Wednesday closed, Monday 08:00."""
    schedule = [
        ScheduleDay(day, time(9, 0), time(17, 0), is_active=day < 5) for day in range(7)
    ]
    config_store = InMemoryAdminConfigStore(
        schedule_days=schedule, blocked_days=[date(2024, 11, 27)], window_days=7
    )
    slot_store, availability, booking, cancellation, calendar = build(
        config_store, fixed_clock(2024, 11, 25, 8, 0)
    )

    assert availability.bookable_dates() == [
        MONDAY, TUESDAY, date(2024, 11, 28), date(2024, 11, 29)
    ]
    assert time(10, 0) in availability.available_times(TUESDAY)

    result = booking.book(booking_data(date="2024-11-26", time="10:00"))

    assert result.outcome == BookingOutcome.CONFIRMED
    assert time(10, 0) not in availability.available_times(TUESDAY)
    assert len(availability.available_times(TUESDAY)) == 15

    cancelled = cancellation.cancel(
        result.appointment.id, customer_name="Dana Levi", email="dana@example.com"
    )

    assert cancelled.outcome == CancellationOutcome.CANCELLED
    assert calendar.deleted == [result.appointment.event_id]
    assert time(10, 0) in availability.available_times(TUESDAY)


def test_one_day_window_with_today_blocked_offers_nothing():
    config_store = InMemoryAdminConfigStore(
        schedule_days=[ScheduleDay(day, time(9, 0), time(17, 0)) for day in range(7)],
        blocked_days=[MONDAY],
        window_days=1,
    )
    _, availability, booking, _, _ = build(config_store, fixed_clock(2024, 11, 25, 8, 0))

    assert availability.bookable_dates() == []
    assert availability.available_slots() == []
    assert booking.book(booking_data(date="2024-11-25")).outcome == BookingOutcome.BLOCKED_DAY


def test_late_afternoon_leaves_only_remaining_slots_today():
    config_store = InMemoryAdminConfigStore(
        schedule_days=[ScheduleDay(0, time(9, 0), time(17, 0))], window_days=7
    )
    _, availability, _, _, _ = build(config_store, fixed_clock(2024, 11, 25, 16, 0))

    assert availability.available_times(MONDAY) == [time(16, 30)]
    assert availability.bookable_dates() == [MONDAY]
