"""
Domain-specific exception hierarchy for the scheduling resolver.
"""


class SchedulingError(Exception):
    """Base class for all application-level errors."""


class InvalidAvailabilityError(SchedulingError):
    """Raised when weekly availability data cannot be used."""


class InvalidWindowError(InvalidAvailabilityError):
    """Raised when a single availability window is malformed."""


class InvalidInstantError(SchedulingError):
    """Raised when a timestamp cannot be parsed into an aware instant."""


class SlotUnavailableError(SchedulingError):
    """Raised when a requested slot is not among the offered slots."""


class BackendAPIError(SchedulingError):
    """Raised when the hosted backend cannot be reached or returns bad data."""


class InvalidMeetingLinkError(SchedulingError):
    """Raised when a meeting link is not an absolute http(s) URL."""


class RequestStateError(SchedulingError):
    """Raised when a consultation request cannot move to the requested status."""


class InvalidRequestError(SchedulingError):
    """Raised when a consultation request is missing data or asks for an impossible time."""
