"""
Tests for domain models.
"""

from datetime import time

import pendulum
import pytest

from careslots.domain.exceptions import InvalidAvailabilityError, InvalidWindowError
from careslots.domain.models import Appointment, JoinWindow, Slot, WeeklyAvailability


class TestWeeklyAvailability:
    """Tests for WeeklyAvailability model."""

    def test_valid_window_passes_validation(self):
        window = WeeklyAvailability(day_of_week=1, start_time=time(9, 0), end_time=time(11, 0))

        window.validate()

        assert window.contains(time(9, 0))
        assert window.contains(time(10, 59))
        assert not window.contains(time(11, 0))

    def test_inverted_window_raises_error(self):
        """Test that a window closing before it opens is rejected."""
        window = WeeklyAvailability(day_of_week=1, start_time=time(10, 0), end_time=time(9, 0))

        with pytest.raises(InvalidWindowError, match="Start time 10:00 must be before end time 09:00"):
            window.validate()

    def test_empty_window_raises_error(self):
        window = WeeklyAvailability(day_of_week=1, start_time=time(9, 0), end_time=time(9, 0))

        with pytest.raises(InvalidAvailabilityError):
            window.validate()

    def test_day_out_of_range_raises_error(self):
        window = WeeklyAvailability(day_of_week=7, start_time=time(9, 0), end_time=time(10, 0))

        with pytest.raises(InvalidWindowError, match="between 0 and 6"):
            window.validate()

    def test_str(self):
        window = WeeklyAvailability(day_of_week=0, start_time=time(8, 30), end_time=time(12, 0))

        assert str(window) == "Sunday 08:30-12:00"


class TestSlot:
    """Tests for Slot value object."""

    def test_day_of_week_is_sunday_based(self):
        sunday = Slot(date=pendulum.date(2024, 1, 7), time=time(9, 0))
        monday = Slot(date=pendulum.date(2024, 1, 8), time=time(9, 0))
        saturday = Slot(date=pendulum.date(2024, 1, 13), time=time(9, 0))

        assert sunday.day_of_week == 0
        assert monday.day_of_week == 1
        assert saturday.day_of_week == 6

    def test_equality_and_ordering(self):
        a = Slot(date=pendulum.date(2024, 1, 8), time=time(10, 0))
        b = Slot(date=pendulum.date(2024, 1, 8), time=time(9, 30))
        c = Slot(date=pendulum.date(2024, 1, 9), time=time(8, 0))

        assert a == Slot(date=pendulum.date(2024, 1, 8), time=time(10, 0))
        assert sorted([c, a, b]) == [b, a, c]
        assert len({a, Slot(date=pendulum.date(2024, 1, 8), time=time(10, 0))}) == 1

    def test_starts_at_uses_timezone(self):
        slot = Slot(date=pendulum.date(2024, 1, 8), time=time(9, 30))

        starts_at = slot.starts_at("Asia/Kolkata")

        assert starts_at == pendulum.datetime(2024, 1, 8, 4, 0, tz="UTC")
        assert str(slot) == "2024-01-08 09:30"


class TestAppointment:
    """Tests for Appointment partition rules."""

    def _appointment(self, scheduled_at, status="confirmed"):
        return Appointment(
            id="apt-1",
            doctor_id="dr-1",
            patient_id="patient-1",
            scheduled_at=pendulum.parse(scheduled_at),
            status=status,
        )

    def test_future_appointment_is_upcoming(self):
        now = pendulum.parse("2024-01-10T12:00:00Z")
        apt = self._appointment("2024-01-10T15:00:00Z")

        assert apt.is_upcoming(now)
        assert not apt.is_past(now)

    def test_cancelled_future_appointment_is_not_upcoming(self):
        now = pendulum.parse("2024-01-10T12:00:00Z")
        apt = self._appointment("2024-01-10T15:00:00Z", status="cancelled")

        assert not apt.is_upcoming(now)
        assert not apt.is_past(now)

    def test_appointment_at_now_is_past(self):
        now = pendulum.parse("2024-01-10T15:00:00Z")
        apt = self._appointment("2024-01-10T15:00:00Z")

        assert not apt.is_upcoming(now)
        assert apt.is_past(now)

    def test_completed_appointment_is_past(self):
        now = pendulum.parse("2024-01-10T12:00:00Z")
        apt = self._appointment("2024-01-11T09:00:00Z", status="completed")

        assert apt.is_past(now)


class TestJoinWindow:
    def test_contains_is_inclusive(self):
        window = JoinWindow(
            opens_at=pendulum.parse("2024-01-10T14:50:00Z"),
            closes_at=pendulum.parse("2024-01-10T15:30:00Z"),
        )

        assert window.contains(pendulum.parse("2024-01-10T14:50:00Z"))
        assert window.contains(pendulum.parse("2024-01-10T15:30:00Z"))
        assert not window.contains(pendulum.parse("2024-01-10T15:30:01Z"))
