"""
Application service for answering slot queries.

The service reads the admin configuration and existing reservations through
store protocols and delegates the actual calculation to the domain-level
``AvailabilityResolver``. The clock is injectable so tests can pin "now".
"""

from __future__ import annotations

from datetime import date, time
from typing import Callable, List

import pendulum
from pendulum import DateTime

from ..domain.availability import DEFAULT_GRANULARITY_MINUTES, AvailabilityResolver
from ..domain.models import Slot
from .protocols import AdminConfigStoreProtocol, SlotStoreProtocol

Clock = Callable[[], DateTime]


class AvailabilityService:
    """
    Orchestrates configuration reads and slot resolution.

    Every call re-reads configuration; nothing is cached, so an admin edit is
    visible to the next query.
    """

    def __init__(
        self,
        slot_store: SlotStoreProtocol,
        config_store: AdminConfigStoreProtocol,
        timezone: str = "Europe/Berlin",
        clock: Clock | None = None,
        granularity_minutes: int = DEFAULT_GRANULARITY_MINUTES,
    ) -> None:
        self._slot_store = slot_store
        self._config_store = config_store
        self._timezone = timezone
        self._clock = clock or (lambda: pendulum.now(timezone))
        self._granularity_minutes = granularity_minutes

    def now(self) -> DateTime:
        """Current time in the business timezone."""
        return self._clock().in_timezone(self._timezone)

    def bookable_dates(self) -> List[date]:
        """Open dates in the booking window."""
        return self._build_resolver().bookable_dates(self.now())

    def available_times(self, day: date) -> List[time]:
        """Free slot times on one date."""
        resolver = self._build_resolver()
        return resolver.slots_for_date(day, self.now(), self._slot_store.booked_times(day))

    def available_slots(self) -> List[Slot]:
        """Free slots across the booking window."""
        return self._build_resolver().available_slots(self.now(), self._slot_store.booked_times)

    def is_offered(self, day: date, slot_time: time) -> bool:
        """
        Whether (day, slot_time) is a slot the schedule offers right now.

        Existing bookings are ignored; the store decides conflicts.
        """
        return slot_time in self._build_resolver().slots_for_date(day, self.now())

    def _build_resolver(self) -> AvailabilityResolver:
        return AvailabilityResolver(
            schedule_days=self._config_store.get_schedule_days(),
            blocked_days=self._config_store.get_blocked_days(),
            window_days=self._config_store.get_booking_window_days(),
            granularity_minutes=self._granularity_minutes,
        )
