# backend/salon/services/slots/conflicts.py
"""
Conflict validation.

Intervals are half-open: [start, start + duration). Two intervals clash
iff a_start < b_end and a_end > b_start, so back-to-back appointments
never conflict. Only `booked` bookings occupy a hairdresser; cancelled
and past ones are ignored.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable

from ..repository import STATUS_BOOKED, SalonRepository
from .config import BookingConfig, get_booking_config


@dataclass(frozen=True)
class Occupancy:
    """A booked interval of one hairdresser."""
    booking_id: int
    hairdresser_id: int
    start: datetime
    end: datetime


def intervals_overlap(
    a_start: datetime,
    a_end: datetime,
    b_start: datetime,
    b_end: datetime,
) -> bool:
    return a_start < b_end and a_end > b_start


def find_conflicts(
    start: datetime,
    duration_minutes: int,
    occupied: Iterable[Occupancy],
    exclude_booking_id: int | None = None,
) -> list[Occupancy]:
    """Occupancies overlapping [start, start + duration)."""
    end = start + timedelta(minutes=duration_minutes)
    return [
        occ for occ in occupied
        if occ.booking_id != exclude_booking_id
        and intervals_overlap(start, end, occ.start, occ.end)
    ]


def load_occupancy(
    repo: SalonRepository,
    hairdresser_id: int,
    date_range: tuple[datetime, datetime] | None = None,
    config: BookingConfig | None = None,
) -> list[Occupancy]:
    """
    Booked intervals of a hairdresser.

    Durations come from each booking's service; a booking whose service
    row is gone counts as the default duration.
    """
    config = config or get_booking_config()

    bookings = repo.list_bookings(
        hairdresser_id=hairdresser_id,
        status=STATUS_BOOKED,
        date_range=date_range,
    )
    durations = repo.get_service_durations(b.service_id for b in bookings)

    return [
        Occupancy(
            booking_id=b.id,
            hairdresser_id=b.hairdresser_id,
            start=b.appointment_date,
            end=b.appointment_date + timedelta(
                minutes=durations.get(b.service_id, config.default_duration_minutes)
            ),
        )
        for b in bookings
    ]


def find_booking_conflicts(
    repo: SalonRepository,
    hairdresser_id: int,
    start: datetime,
    duration_minutes: int,
    exclude_booking_id: int | None = None,
    config: BookingConfig | None = None,
) -> list[Occupancy]:
    """
    Booked intervals of hairdresser_id that a new appointment
    [start, start + duration) would overlap. Empty list = no conflict.
    """
    occupied = load_occupancy(repo, hairdresser_id, config=config)
    return find_conflicts(start, duration_minutes, occupied, exclude_booking_id)
