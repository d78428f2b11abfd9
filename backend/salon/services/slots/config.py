# backend/salon/services/slots/config.py
"""
Booking configuration for slots calculation.
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from functools import lru_cache

from ...models.generated import DAYS_OF_WEEK


@dataclass(frozen=True)
class BookingConfig:
    """
    Configuration for the slot engine.

    Attributes:
        slot_step_minutes: Candidate grid step in minutes (15/30/60),
            anchored at each availability window start
        default_duration_minutes: Slot length when no service is requested
    """
    slot_step_minutes: int = 30  # 15 / 30 / 60
    default_duration_minutes: int = 30

    def __post_init__(self):
        """Validate configuration."""
        if self.slot_step_minutes not in (15, 30, 60):
            raise ValueError(f"slot_step_minutes must be 15, 30, or 60, got {self.slot_step_minutes}")
        if self.default_duration_minutes <= 0:
            raise ValueError(
                f"default_duration_minutes must be positive, got {self.default_duration_minutes}"
            )


@lru_cache
def get_booking_config() -> BookingConfig:
    """Get booking configuration (singleton, read from settings once)."""
    from ...config import settings

    return BookingConfig(
        slot_step_minutes=settings.slot_step_minutes,
        default_duration_minutes=settings.default_duration_minutes,
    )


def day_of_week(target_date: date) -> str:
    """Monday-first weekday name, locale independent."""
    return DAYS_OF_WEEK[target_date.weekday()]


def anchor_time(target_date: date, wall_clock: time | datetime) -> datetime:
    """
    Place a wall-clock time on target_date.

    Accepts a datetime too: its date component is discarded, only
    hour and minute are kept.
    """
    if isinstance(wall_clock, datetime):
        wall_clock = wall_clock.time()
    return datetime.combine(target_date, time(wall_clock.hour, wall_clock.minute))

