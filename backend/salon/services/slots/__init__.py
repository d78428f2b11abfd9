# backend/salon/services/slots/__init__.py
"""
Availability & conflict engine.

availability: weekly windows per hairdresser
calculator:   candidate slots for a date, flagged available/unavailable
conflicts:    half-open overlap checks against booked occupancy
"""

from .config import BookingConfig, get_booking_config, day_of_week
from .availability import AvailabilityWindow, get_windows, windows_for_date
from .calculator import TimeSlot, calculate_time_slots, generate_window_slots, parse_target_date
from .conflicts import Occupancy, find_booking_conflicts, find_conflicts, intervals_overlap

__all__ = [
    "BookingConfig",
    "get_booking_config",
    "day_of_week",
    "AvailabilityWindow",
    "get_windows",
    "windows_for_date",
    "TimeSlot",
    "calculate_time_slots",
    "generate_window_slots",
    "parse_target_date",
    "Occupancy",
    "find_booking_conflicts",
    "find_conflicts",
    "intervals_overlap",
]
