"""
Shared date and time helpers used by the slot generator and the join gate.

Days of the week follow the backend convention: 0=Sunday ... 6=Saturday.
"""

from datetime import date, datetime, time

import pendulum
from pendulum import DateTime

from .exceptions import InvalidInstantError

DAY_NAMES = [
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
]


def day_of_week(day: date) -> int:
    """Return the Sunday-based weekday index (0=Sunday, 6=Saturday)."""
    return day.isoweekday() % 7


def day_name(day: date) -> str:
    return DAY_NAMES[day_of_week(day)]


def parse_wall_time(value: str | time) -> time:
    """
    Parse a wall-clock time such as ``09:00`` or ``09:00:00``.

    Raises:
        ValueError: If the value is not a valid 24-hour time
    """
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0, tzinfo=None)

    try:
        parsed = time.fromisoformat(value.strip())
    except (AttributeError, ValueError) as e:
        raise ValueError(f"Invalid wall-clock time: {value!r}") from e

    return parsed.replace(second=0, microsecond=0, tzinfo=None)


def format_wall_time(value: time) -> str:
    return f"{value.hour:02d}:{value.minute:02d}"


def parse_instant(value: str | datetime, timezone: str = "UTC") -> DateTime:
    """
    Parse an absolute instant (ISO 8601 string or datetime).

    Naive values are interpreted in ``timezone``. Nothing is coerced: an empty
    or unparsable value raises instead of silently becoming the epoch, and a
    bare date or bare time is not completed with today or midnight.

    Raises:
        InvalidInstantError: If the value cannot be turned into an instant
    """
    if isinstance(value, DateTime):
        return value

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return pendulum.instance(value, tz=timezone)
        return pendulum.instance(value)

    if not isinstance(value, str) or not value.strip():
        raise InvalidInstantError(f"Missing or non-string timestamp: {value!r}")

    text = value.strip()
    if text.lower() == "now":
        raise InvalidInstantError("Relative timestamps are not accepted: 'now'")

    try:
        parsed = pendulum.parse(text, tz=timezone, exact=True)
    except (ValueError, TypeError) as e:
        raise InvalidInstantError(f"Could not parse timestamp {value!r}: {e}") from e

    if not isinstance(parsed, DateTime):
        raise InvalidInstantError(f"Timestamp {value!r} is not a date and time")

    return parsed


def combine(day: date, wall_time: time, timezone: str = "UTC") -> DateTime:
    """Combine a calendar date and a wall-clock time into an instant."""
    return pendulum.datetime(
        day.year,
        day.month,
        day.day,
        wall_time.hour,
        wall_time.minute,
        tz=timezone,
    )


def parse_calendar_date(value: str | date) -> date:
    """
    Parse a calendar date such as ``2024-01-10``.

    Raises:
        ValueError: If the value is not a plain ISO date
    """
    if isinstance(value, datetime):
        raise ValueError(f"Expected a date, got a date and time: {value!r}")
    if isinstance(value, date):
        return pendulum.date(value.year, value.month, value.day)

    try:
        parsed = pendulum.parse(value.strip(), exact=True)
    except (AttributeError, TypeError, ValueError) as e:
        raise ValueError(f"Invalid calendar date: {value!r}") from e

    if isinstance(parsed, datetime) or not isinstance(parsed, date):
        raise ValueError(f"Invalid calendar date: {value!r}")

    return parsed
