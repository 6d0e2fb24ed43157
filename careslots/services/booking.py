"""
Application services for booking appointments and building dashboards.

The service coordinates reads and writes through a data-access adapter and
delegates every scheduling decision to the domain-level ``SlotGenerator`` and
``JoinWindowGate``. This keeps the CLI thin and lets tests replace the hosted
backend with a simple stub that satisfies the protocol.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, time
from typing import Any, Dict, List, Optional, Protocol, Tuple

from pendulum import DateTime
from pydantic import HttpUrl, TypeAdapter, ValidationError

from ..domain.exceptions import InvalidMeetingLinkError, SlotUnavailableError
from ..domain.join_window import JoinWindowGate
from ..domain.models import (
    STATUS_PENDING,
    Appointment,
    AvailableDate,
    ConsultationRequest,
    JoinWindow,
    Slot,
    WeeklyAvailability,
)
from ..domain.slot_generator import DEFAULT_MAX_DATES, SlotGenerator
from ..domain.timeutils import combine

logger = logging.getLogger(__name__)

_meeting_link_adapter = TypeAdapter(HttpUrl)


def validate_meeting_link(link: str) -> str:
    """
    Check a meeting link is an absolute http(s) URL and return it stripped.

    Raises:
        InvalidMeetingLinkError: If the link is empty or not a valid URL
    """
    stripped = (link or "").strip()
    if not stripped:
        raise InvalidMeetingLinkError("Please enter a meeting URL")

    try:
        _meeting_link_adapter.validate_python(stripped)
    except ValidationError as e:
        raise InvalidMeetingLinkError(f"Invalid meeting URL {stripped!r}") from e

    return stripped


def to_storage_string(instant: DateTime) -> str:
    """Format an instant the way the backend stores timestamps (UTC, ISO 8601)."""
    return instant.in_timezone("UTC").to_iso8601_string()


class DataAccessProtocol(Protocol):
    """Protocol describing the backend behaviour needed by the services."""

    def get_weekly_availability(self, doctor_id: str) -> List[WeeklyAvailability]:
        """Return the doctor's recurring weekly windows."""

    def get_appointments(self, user_id: str) -> List[Appointment]:
        """Return the appointments a patient has booked."""

    def get_doctor_appointments(self, doctor_id: str) -> List[Appointment]:
        """Return the appointments booked with a doctor."""

    def create_appointment(self, payload: Dict[str, Any]) -> Appointment:
        """Persist a new appointment and return it."""

    def update_appointment(self, appointment_id: str, changes: Dict[str, Any]) -> Appointment:
        """Apply changes to an appointment and return the updated row."""

    def get_consultation_requests(self, status: Optional[str] = None) -> List[ConsultationRequest]:
        """Return consultation requests, newest first, optionally by status."""

    def get_consultation_request(self, request_id: str) -> Optional[ConsultationRequest]:
        """Return a single consultation request, or None if it does not exist."""

    def create_consultation_request(self, payload: Dict[str, Any]) -> ConsultationRequest:
        """Persist a new consultation request and return it."""

    def update_consultation_request(
        self, request_id: str, changes: Dict[str, Any]
    ) -> ConsultationRequest:
        """Apply changes to a consultation request and return the updated row."""


@dataclass
class AppointmentView:
    """An appointment annotated with its join-window decision."""
    appointment: Appointment
    join_window: JoinWindow
    can_join: bool

    @property
    def has_meeting_link(self) -> bool:
        return bool(self.appointment.meeting_link)


@dataclass
class Dashboard:
    """Upcoming and past appointments (and, for doctors, open requests)."""
    upcoming: List[AppointmentView] = field(default_factory=list)
    past: List[Appointment] = field(default_factory=list)
    requests: List[ConsultationRequest] = field(default_factory=list)


class BookingService:
    """
    Orchestrates availability retrieval, slot resolution and booking writes.
    """

    def __init__(
        self,
        data_access: DataAccessProtocol,
        slot_generator: SlotGenerator,
        join_gate: JoinWindowGate,
        timezone: str = "UTC",
    ) -> None:
        self._data_access = data_access
        self._slot_generator = slot_generator
        self._join_gate = join_gate
        self.timezone = timezone

    def available_slots(self, doctor_id: str, now: DateTime) -> List[Slot]:
        """Fetch the doctor's availability and expand it into slots."""
        availability = self._data_access.get_weekly_availability(doctor_id)
        logger.debug(
            "Doctor %s has %d availability window(s)", doctor_id, len(availability)
        )
        return self._slot_generator.generate(availability, self._local(now))

    def available_dates(
        self,
        doctor_id: str,
        now: DateTime,
        limit: int = DEFAULT_MAX_DATES,
    ) -> List[AvailableDate]:
        availability = self._data_access.get_weekly_availability(doctor_id)
        return self._slot_generator.available_dates(
            availability, self._local(now), limit=limit
        )

    def times_for_date(self, doctor_id: str, day: date) -> List[time]:
        availability = self._data_access.get_weekly_availability(doctor_id)
        return self._slot_generator.times_for_date(availability, day)

    def date_picker(
        self,
        doctor_id: str,
        now: DateTime,
        limit: int = DEFAULT_MAX_DATES,
    ) -> List[Tuple[AvailableDate, List[time]]]:
        """
        Return the next available dates together with their slot times.

        Availability is fetched once and reused for every listed date.
        """
        availability = self._data_access.get_weekly_availability(doctor_id)
        dates = self._slot_generator.available_dates(
            availability, self._local(now), limit=limit
        )
        return [
            (entry, self._slot_generator.times_for_date(availability, entry.date))
            for entry in dates
        ]

    def book(
        self,
        *,
        doctor_id: str,
        patient_id: str,
        slot: Slot,
        now: DateTime,
        consultation_type: str = "video",
        notes: Optional[str] = None,
    ) -> Appointment:
        """
        Book a slot after checking that it is still offered.

        Raises:
            SlotUnavailableError: If the slot is not among the doctor's
                current slots (outside the horizon, same day, or removed)
        """
        offered = self.available_slots(doctor_id, now)

        if slot not in offered:
            raise SlotUnavailableError(
                f"Slot {slot} is not available for doctor {doctor_id}"
            )

        scheduled_at = slot.starts_at(self.timezone)
        payload = {
            "user_id": patient_id,
            "doctor_id": doctor_id,
            "appointment_date": to_storage_string(scheduled_at),
            "consultation_type": consultation_type,
            "notes": notes or None,
            "status": STATUS_PENDING,
        }

        logger.info("Booking doctor %s at %s for %s", doctor_id, scheduled_at, patient_id)
        return self._data_access.create_appointment(payload)

    def setup_meeting(
        self,
        appointment_id: str,
        *,
        meeting_link: str,
        day: date,
        wall_time: time,
    ) -> Appointment:
        """
        Attach a meeting link to an appointment and (re)schedule it.

        The new instant is ``day`` at ``wall_time`` in the service timezone.

        Raises:
            InvalidMeetingLinkError: If the link is not a valid URL
        """
        link = validate_meeting_link(meeting_link)
        scheduled_at = combine(day, wall_time, self.timezone)

        logger.info("Setting up meeting for appointment %s at %s", appointment_id, scheduled_at)
        return self._data_access.update_appointment(
            appointment_id,
            {"meet_link": link, "appointment_date": to_storage_string(scheduled_at)},
        )

    def patient_dashboard(self, user_id: str, now: DateTime) -> Dashboard:
        return self.build_dashboard(self._data_access.get_appointments(user_id), now)

    def doctor_dashboard(self, doctor_id: str, now: DateTime) -> Dashboard:
        """Doctor's appointments plus the pending consultation requests."""
        dashboard = self.build_dashboard(
            self._data_access.get_doctor_appointments(doctor_id), now
        )
        dashboard.requests = self._data_access.get_consultation_requests(status=STATUS_PENDING)
        return dashboard

    def build_dashboard(
        self,
        appointments: List[Appointment],
        now: DateTime,
    ) -> Dashboard:
        """
        Partition appointments into upcoming and past.

        The two lists are computed independently, matching the portal: a
        completed appointment with a future date shows up in both.
        """
        ordered = sorted(appointments, key=lambda a: a.scheduled_at)
        dashboard = Dashboard()

        for appointment in ordered:
            if appointment.is_upcoming(now):
                dashboard.upcoming.append(self.describe(appointment, now))
            if appointment.is_past(now):
                dashboard.past.append(appointment)

        return dashboard

    def describe(self, appointment: Appointment, now: DateTime) -> AppointmentView:
        """Evaluate the join gate for a single appointment."""
        return AppointmentView(
            appointment=appointment,
            join_window=self._join_gate.window_for(appointment.scheduled_at),
            can_join=self._join_gate.can_join(appointment.scheduled_at, now),
        )

    def _local(self, now: DateTime) -> DateTime:
        """Express "now" in the viewer's timezone so the date is local."""
        return now.in_timezone(self.timezone)
