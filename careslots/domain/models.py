"""
Domain models for availability windows, slots and appointments.
"""

from dataclasses import dataclass, field
from datetime import date, time
from typing import Optional, Tuple

from pendulum import DateTime

from .exceptions import InvalidWindowError
from .timeutils import DAY_NAMES, combine, day_of_week, format_wall_time

STATUS_PENDING = "pending"
STATUS_CONFIRMED = "confirmed"
STATUS_CANCELLED = "cancelled"
STATUS_COMPLETED = "completed"
STATUS_ACCEPTED = "accepted"
STATUS_REJECTED = "rejected"


@dataclass(frozen=True)
class WeeklyAvailability:
    """
    One recurring weekly window during which a doctor accepts appointments.

    Records come from the backend as-is, so construction accepts anything;
    call ``validate()`` before using the window.
    """
    day_of_week: int  # 0=Sunday, 6=Saturday
    start_time: time
    end_time: time

    def validate(self) -> None:
        """
        Check the window invariants.

        Raises:
            InvalidWindowError: If the day is out of range or the window
                does not open before it closes
        """
        if self.day_of_week not in range(7):
            raise InvalidWindowError(
                f"day_of_week must be between 0 and 6, got {self.day_of_week}"
            )
        if self.start_time >= self.end_time:
            raise InvalidWindowError(
                f"Start time {format_wall_time(self.start_time)} must be before "
                f"end time {format_wall_time(self.end_time)}"
            )

    def contains(self, wall_time: time) -> bool:
        """Check if a wall-clock time lies in [start_time, end_time)."""
        return self.start_time <= wall_time < self.end_time

    def __str__(self) -> str:
        day = DAY_NAMES[self.day_of_week] if self.day_of_week in range(7) else "?"
        return (
            f"{day} {format_wall_time(self.start_time)}"
            f"-{format_wall_time(self.end_time)}"
        )


@dataclass(frozen=True, order=True)
class Slot:
    """
    A concrete bookable unit. Identity is the (date, time) pair.
    """
    date: date
    time: time

    @property
    def day_of_week(self) -> int:
        return day_of_week(self.date)

    def starts_at(self, timezone: str = "UTC") -> DateTime:
        """Return the absolute instant this slot starts at in ``timezone``."""
        return combine(self.date, self.time, timezone)

    def __str__(self) -> str:
        return f"{self.date.isoformat()} {format_wall_time(self.time)}"


@dataclass(frozen=True)
class AvailableDate:
    """A date offered in the booking date picker."""
    date: date
    day_name: str
    day_of_week: int


@dataclass(frozen=True)
class JoinWindow:
    """Closed interval during which joining a meeting is permitted."""
    opens_at: DateTime
    closes_at: DateTime

    def contains(self, instant: DateTime) -> bool:
        return self.opens_at <= instant <= self.closes_at


@dataclass
class Appointment:
    """
    An appointment as read from the backend. Never mutated here.
    """
    id: str
    doctor_id: str
    patient_id: str
    scheduled_at: DateTime
    meeting_link: Optional[str] = None
    status: str = STATUS_PENDING
    consultation_type: str = "video"
    notes: Optional[str] = None
    doctor_name: Optional[str] = field(default=None, compare=False)

    def is_upcoming(self, now: DateTime) -> bool:
        """Upcoming means scheduled in the future and not cancelled."""
        return self.scheduled_at > now and self.status != STATUS_CANCELLED

    def is_past(self, now: DateTime) -> bool:
        """Past means the instant has passed or the visit is completed."""
        return self.scheduled_at <= now or self.status == STATUS_COMPLETED


@dataclass
class ConsultationRequest:
    """
    A patient's request for a consultation at a preferred date and time range.

    Requests start out pending and unassigned; a doctor accepts one (taking
    it over) or rejects it.
    """
    id: str
    patient_id: str
    title: str
    preferred_date: date
    preferred_time_start: time
    preferred_time_end: time
    meeting_link: str
    description: Optional[str] = None
    status: str = STATUS_PENDING
    doctor_id: Optional[str] = None
    patient_name: Optional[str] = field(default=None, compare=False)

    @property
    def is_open(self) -> bool:
        return self.status == STATUS_PENDING

    def preferred_range(self, timezone: str = "UTC") -> Tuple[DateTime, DateTime]:
        """Return the preferred start and end as instants in ``timezone``."""
        return (
            combine(self.preferred_date, self.preferred_time_start, timezone),
            combine(self.preferred_date, self.preferred_time_end, timezone),
        )
