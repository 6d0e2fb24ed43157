"""
Domain layer - Pure scheduling logic without external dependencies.
"""

from .join_window import JoinWindowGate, can_join
from .models import Appointment, AvailableDate, JoinWindow, Slot, WeeklyAvailability
from .slot_generator import SlotGenerator

__all__ = [
    "Appointment",
    "AvailableDate",
    "JoinWindow",
    "JoinWindowGate",
    "Slot",
    "SlotGenerator",
    "WeeklyAvailability",
    "can_join",
]
