"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .booking import (
    AppointmentView,
    BookingService,
    Dashboard,
    DataAccessProtocol,
)
from .consultations import ConsultationService

__all__ = [
    "AppointmentView",
    "BookingService",
    "ConsultationService",
    "Dashboard",
    "DataAccessProtocol",
]
