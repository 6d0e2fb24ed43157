"""
Core business logic for turning weekly availability into bookable slots.

Pure domain logic: no API calls, no database, no clock. The reference "now"
is always passed in by the caller.
"""

import logging
from datetime import date, time
from typing import Dict, Iterable, List, Set

import pendulum
from pendulum import DateTime

from .exceptions import InvalidWindowError
from .models import AvailableDate, Slot, WeeklyAvailability
from .timeutils import day_name, day_of_week

logger = logging.getLogger(__name__)

DEFAULT_HORIZON_DAYS = 30
DEFAULT_SUB_SLOT_MINUTES = 30
DEFAULT_MAX_DATES = 10


class SlotGenerator:
    """
    Expands recurring weekly windows into concrete (date, time) slots.

    Algorithm:
    1. Drop windows that fail validation (logged, never fatal)
    2. Walk the dates from tomorrow up to and including now + horizon days
    3. For every window on that weekday, emit each full hour from the start
       hour up to (excluding) the end hour, plus sub-slots (:30 by default)
       for every hour except the final one before closing
    4. Deduplicate and sort by date, then time
    """

    def __init__(
        self,
        horizon_days: int = DEFAULT_HORIZON_DAYS,
        sub_slot_minutes: int = DEFAULT_SUB_SLOT_MINUTES,
    ):
        if horizon_days < 0:
            raise ValueError(f"horizon_days must not be negative, got {horizon_days}")
        if sub_slot_minutes <= 0 or 60 % sub_slot_minutes:
            raise ValueError(
                f"sub_slot_minutes must divide 60, got {sub_slot_minutes}"
            )
        self.horizon_days = horizon_days
        self.sub_slot_minutes = sub_slot_minutes

    def generate(
        self,
        availability: Iterable[WeeklyAvailability],
        now: DateTime,
    ) -> List[Slot]:
        """
        Produce every bookable slot within the horizon.

        Args:
            availability: Weekly windows for a single doctor
            now: Reference instant; its calendar date is never offered

        Returns:
            Chronologically ordered, duplicate-free list of slots
        """
        windows_by_day = self._group_valid_windows(availability)

        if not windows_by_day:
            return []

        slots: Set[Slot] = set()

        for day in self._candidate_dates(now):
            for window in windows_by_day.get(day_of_week(day), []):
                for wall_time in self._expand_window(window):
                    slots.add(Slot(date=day, time=wall_time))

        return sorted(slots)

    def times_for_date(
        self,
        availability: Iterable[WeeklyAvailability],
        day: date,
    ) -> List[time]:
        """
        Return the slot times offered on a specific date, ignoring the horizon.
        """
        windows = self._group_valid_windows(availability).get(day_of_week(day), [])

        times: Set[time] = set()
        for window in windows:
            times.update(self._expand_window(window))

        return sorted(times)

    def available_dates(
        self,
        availability: Iterable[WeeklyAvailability],
        now: DateTime,
        limit: int = DEFAULT_MAX_DATES,
    ) -> List[AvailableDate]:
        """
        Return the first ``limit`` dates within the horizon that have slots.
        """
        dates: List[AvailableDate] = []
        seen: Set[date] = set()

        for slot in self.generate(availability, now):
            if slot.date in seen:
                continue
            seen.add(slot.date)
            dates.append(
                AvailableDate(
                    date=slot.date,
                    day_name=day_name(slot.date),
                    day_of_week=slot.day_of_week,
                )
            )
            if len(dates) >= limit:
                break

        return dates

    def _candidate_dates(self, now: DateTime) -> List[date]:
        """Dates from tomorrow through now + horizon days, inclusive."""
        # Plain datetimes are accepted too; the calendar date stays as given
        today = pendulum.instance(now).date()
        return [today.add(days=offset) for offset in range(1, self.horizon_days + 1)]

    def _group_valid_windows(
        self,
        availability: Iterable[WeeklyAvailability],
    ) -> Dict[int, List[WeeklyAvailability]]:
        """
        Validate windows and index the usable ones by weekday.

        A bad record is reported and skipped so one broken entry does not
        blank out the whole calendar.
        """
        grouped: Dict[int, List[WeeklyAvailability]] = {}

        for window in availability:
            try:
                window.validate()
            except InvalidWindowError as e:
                logger.warning("Skipping availability window %s: %s", window, e)
                continue

            grouped.setdefault(window.day_of_week, []).append(window)

        return grouped

    def _expand_window(self, window: WeeklyAvailability) -> List[time]:
        """
        Expand one window into wall-clock start times.

        Example (sub-slots of 30 minutes):
        Window: 09:00 - 11:00
        Result: [09:00, 09:30, 10:00]  (no 10:30, it would run past closing)
        """
        times: List[time] = []
        start_hour = window.start_time.hour
        final_hour = window.end_time.hour - 1

        for hour in range(start_hour, window.end_time.hour):
            minutes = [0]
            if hour < final_hour:
                minutes.extend(range(self.sub_slot_minutes, 60, self.sub_slot_minutes))

            for minute in minutes:
                candidate = time(hour=hour, minute=minute)
                # Windows that open off the hour must not offer earlier times
                if window.contains(candidate):
                    times.append(candidate)

        return times
