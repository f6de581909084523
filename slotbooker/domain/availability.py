"""
Core business logic for resolving bookable dates and times.

Pure domain logic without any external dependencies (no database, no API
calls, no I/O). The caller supplies "now" and the already-booked times.
"""

from datetime import date, datetime, time, timedelta
from typing import Callable, Dict, Iterable, List, Set

from .models import ScheduleDay, Slot

DEFAULT_GRANULARITY_MINUTES = 30


class AvailabilityResolver:
    """
    Derives bookable slots from the weekly schedule, closures and horizon.

    Algorithm:
    1. Walk the booking window day by day starting at today
    2. Skip blocked days and weekdays without an active schedule
    3. Generate fixed-granularity slots over [start_time, end_time)
    4. On today, drop slots at or before the current time
    5. Remove slots that are already booked

    Identical inputs always produce identical, chronologically ordered output.
    """

    def __init__(
        self,
        schedule_days: Iterable[ScheduleDay],
        blocked_days: Iterable[date],
        window_days: int,
        granularity_minutes: int = DEFAULT_GRANULARITY_MINUTES
    ):
        if granularity_minutes <= 0:
            raise ValueError("granularity_minutes must be greater than zero")

        # Last entry wins if a weekday appears twice
        self._schedule: Dict[int, ScheduleDay] = {
            day.day_of_week: day for day in schedule_days
        }
        self._blocked: Set[date] = set(blocked_days)
        self.window_days = window_days
        self.granularity_minutes = granularity_minutes

    def bookable_dates(self, now: datetime) -> List[date]:
        """
        Return every date in [today, today + window) that can take bookings.

        A date qualifies when it is not blocked and its weekday has an active
        schedule. Whether any slot is still free is not considered here.
        """
        today = now.date()
        dates: List[date] = []

        for offset in range(max(self.window_days, 0)):
            current = today + timedelta(days=offset)
            if self._schedule_for(current) is not None:
                dates.append(current)

        return dates

    def slots_for_date(
        self,
        day: date,
        now: datetime,
        booked_times: Iterable[time] = ()
    ) -> List[time]:
        """
        Return the free slot times for one date.

        Dates outside the window, blocked dates and closed weekdays yield an
        empty list.
        """
        today = now.date()
        if not self._in_window(day, today):
            return []

        schedule_day = self._schedule_for(day)
        if schedule_day is None:
            return []

        slots = schedule_day.generate_slots(day, self.granularity_minutes)

        if day == today:
            cutoff = now.time().replace(tzinfo=None)
            slots = [slot for slot in slots if slot > cutoff]

        booked = {self._normalize(t) for t in booked_times}
        return [slot for slot in slots if slot not in booked]

    def available_slots(
        self,
        now: datetime,
        booked_times_for: Callable[[date], Iterable[time]]
    ) -> List[Slot]:
        """
        Return every free slot across the whole window.

        Args:
            now: Current time in the business timezone
            booked_times_for: Lookup returning the booked times of a date

        Returns:
            Slots ordered by date, then time
        """
        slots: List[Slot] = []

        for day in self.bookable_dates(now):
            for slot_time in self.slots_for_date(day, now, booked_times_for(day)):
                slots.append(Slot(date=day, time=slot_time))

        return slots

    def _schedule_for(self, day: date) -> ScheduleDay | None:
        """Active schedule for a date, or None if blocked or closed."""
        if day in self._blocked:
            return None

        schedule_day = self._schedule.get(day.weekday())
        if schedule_day is None or not schedule_day.is_active:
            return None

        return schedule_day

    def _in_window(self, day: date, today: date) -> bool:
        return today <= day < today + timedelta(days=max(self.window_days, 0))

    @staticmethod
    def _normalize(value: time) -> time:
        # Stores may hand back times with seconds or tzinfo attached
        return value.replace(second=0, microsecond=0, tzinfo=None)
