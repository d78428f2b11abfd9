# backend/salon/services/slots/availability.py
"""
Availability calendar.

Per-hairdresser, per-weekday open/close windows. Windows are wall-clock
times; the date they were entered with is irrelevant. A hairdresser may
have several windows on one day and they are kept apart, never merged.
"""

from dataclasses import dataclass
from datetime import date, datetime, time

from ..repository import SalonRepository
from .config import anchor_time, day_of_week


@dataclass(frozen=True)
class AvailabilityWindow:
    hairdresser_id: int
    start_time: time
    end_time: time

    def on(self, target_date: date) -> tuple[datetime, datetime]:
        """Anchor the window onto a calendar date."""
        return anchor_time(target_date, self.start_time), anchor_time(target_date, self.end_time)


def get_windows(
    repo: SalonRepository,
    hairdresser_id: int,
    weekday: str,
) -> list[AvailabilityWindow]:
    """All windows of one hairdresser on a weekday ("monday".."sunday")."""
    return [_to_window(row) for row in repo.list_windows(weekday, hairdresser_id=hairdresser_id)]


def windows_for_date(
    repo: SalonRepository,
    target_date: date,
    service_id: int | None = None,
    hairdresser_id: int | None = None,
) -> list[AvailabilityWindow]:
    """
    Windows open on target_date's weekday.

    With service_id, only hairdressers offering that service are kept;
    nobody offering it means no windows at all.
    """
    weekday = day_of_week(target_date)

    hairdresser_ids = None
    if service_id is not None:
        hairdresser_ids = repo.list_service_hairdresser_ids(service_id)
        if not hairdresser_ids:
            return []

    rows = repo.list_windows(
        weekday,
        hairdresser_id=hairdresser_id,
        hairdresser_ids=hairdresser_ids,
    )
    return [_to_window(row) for row in rows]


def _to_window(row) -> AvailabilityWindow:
    start, end = row.start_time, row.end_time
    if isinstance(start, datetime):
        start = start.time()
    if isinstance(end, datetime):
        end = end.time()
    return AvailabilityWindow(
        hairdresser_id=row.hairdresser_id,
        start_time=start,
        end_time=end,
    )
