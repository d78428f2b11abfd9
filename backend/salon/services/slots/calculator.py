# backend/salon/services/slots/calculator.py
"""
Slot generation.

For a date (+ optional service / hairdresser) produces every candidate
appointment inside the matching availability windows:

  ✓ grid anchored at each window start, step = slot_step_minutes
  ✓ candidate = [t, t + duration), emitted while t + duration <= window end
  ✓ each candidate flagged available / unavailable against booked occupancy

Unavailable candidates are returned too (the admin reschedule dialog
renders them disabled); callers filter.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from ..errors import NotFoundError, ValidationError
from ..repository import SalonRepository
from .availability import windows_for_date
from .config import BookingConfig, get_booking_config
from .conflicts import Occupancy, intervals_overlap, load_occupancy


@dataclass(frozen=True)
class TimeSlot:
    hairdresser_id: int
    service_id: int | None
    start_time: datetime
    end_time: datetime
    available: bool


def parse_target_date(value: date | datetime | str) -> date:
    """Accept a date, a datetime or an ISO "YYYY-MM-DD" string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationError(f"Invalid date: {value!r}, expected YYYY-MM-DD") from None


def generate_window_slots(
    window_start: datetime,
    window_end: datetime,
    duration_minutes: int,
    step_minutes: int,
) -> list[tuple[datetime, datetime]]:
    """
    Candidate intervals inside one window.

    A window shorter than the duration yields nothing; a trailing partial
    slot that would overrun the window end is never emitted.
    """
    if duration_minutes <= 0:
        raise ValidationError(f"Service duration must be positive, got {duration_minutes}")
    if step_minutes <= 0:
        raise ValidationError(f"Slot step must be positive, got {step_minutes}")

    duration = timedelta(minutes=duration_minutes)
    step = timedelta(minutes=step_minutes)

    slots: list[tuple[datetime, datetime]] = []
    t = window_start
    while t + duration <= window_end:
        slots.append((t, t + duration))
        t += step
    return slots


def calculate_time_slots(
    repo: SalonRepository,
    target_date: date | datetime | str,
    service_id: int | None = None,
    hairdresser_id: int | None = None,
    config: BookingConfig | None = None,
) -> list[TimeSlot]:
    """
    Calculate candidate slots for a date.

    Returns:
        TimeSlot list ordered by hairdresser then start time.
        No windows on that weekday → empty list.
    """
    config = config or get_booking_config()
    target_date = parse_target_date(target_date)

    # Step 1: Resolve duration
    duration_min = config.default_duration_minutes
    if service_id is not None:
        service = repo.get_service(service_id)
        if not service:
            raise NotFoundError(f"Service {service_id} not found")
        duration_min = int(service.time_required)

    # Step 2: Windows for the weekday
    windows = windows_for_date(repo, target_date, service_id, hairdresser_id)
    if not windows:
        return []

    # Step 3: Occupancy per hairdresser. Look back one day so a booking
    # running past midnight still blocks the early slots.
    day_start = datetime.combine(target_date, datetime.min.time())
    date_range = (day_start - timedelta(days=1), day_start + timedelta(days=1))
    occupancy: dict[int, list[Occupancy]] = {}
    for window in windows:
        if window.hairdresser_id not in occupancy:
            occupancy[window.hairdresser_id] = load_occupancy(
                repo, window.hairdresser_id, date_range, config
            )

    # Step 4: Walk each window independently
    slots: list[TimeSlot] = []
    for window in windows:
        window_start, window_end = window.on(target_date)
        booked = occupancy[window.hairdresser_id]

        for start, end in generate_window_slots(
            window_start, window_end, duration_min, config.slot_step_minutes
        ):
            available = not any(
                intervals_overlap(start, end, occ.start, occ.end) for occ in booked
            )
            slots.append(TimeSlot(
                hairdresser_id=window.hairdresser_id,
                service_id=service_id,
                start_time=start,
                end_time=end,
                available=available,
            ))

    return slots
