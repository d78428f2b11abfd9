"""
backend/salon/services/repository.py

Persistence port for the booking engine.

Every read and write the slot engine and the lifecycle manager need goes
through SalonRepository, so the engine never builds queries itself.
Writes only flush; committing is the caller's job (one transaction per
lifecycle operation).
"""

from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..models.generated import (
    Bookings,
    GoogleCalendarCredentials,
    Hairdressers,
    HairdresserAvailability,
    Services,
    UserProfile,
    t_hairdressers_services,
)

STATUS_BOOKED = "booked"
STATUS_CANCELLED = "cancelled"
STATUS_PAST = "past"

REASON_FIELDS = ("cancellation_reason", "reschedule_reason")
SCHEDULE_FIELDS = ("appointment_date", "service_id", "hairdresser_id", "reschedule_reason")


class SalonRepository:
    """SQLAlchemy-backed persistence port."""

    def __init__(self, db: Session):
        self.db = db

    # ── Calendar ─────────────────────────────────────────────────────────

    def list_windows(
        self,
        day_of_week: str,
        hairdresser_id: Optional[int] = None,
        hairdresser_ids: Optional[Iterable[int]] = None,
    ) -> list[HairdresserAvailability]:
        """Availability windows for a weekday, optionally narrowed to hairdressers."""
        query = select(HairdresserAvailability).where(
            HairdresserAvailability.day_of_week == day_of_week
        )
        if hairdresser_id is not None:
            query = query.where(HairdresserAvailability.hairdresser_id == hairdresser_id)
        if hairdresser_ids is not None:
            query = query.where(HairdresserAvailability.hairdresser_id.in_(list(hairdresser_ids)))
        query = query.order_by(
            HairdresserAvailability.hairdresser_id,
            HairdresserAvailability.start_time,
        )
        return list(self.db.scalars(query))

    def list_hairdresser_service_ids(self, hairdresser_id: int) -> set[int]:
        rows = self.db.execute(
            select(t_hairdressers_services.c.service_id).where(
                t_hairdressers_services.c.hairdresser_id == hairdresser_id
            )
        )
        return {row[0] for row in rows}

    def list_service_hairdresser_ids(self, service_id: int) -> set[int]:
        rows = self.db.execute(
            select(t_hairdressers_services.c.hairdresser_id).where(
                t_hairdressers_services.c.service_id == service_id
            )
        )
        return {row[0] for row in rows}

    def get_hairdresser(self, hairdresser_id: int) -> Optional[Hairdressers]:
        return self.db.get(Hairdressers, hairdresser_id)

    def get_service(self, service_id: int) -> Optional[Services]:
        return self.db.get(Services, service_id)

    def get_service_durations(self, service_ids: Iterable[int]) -> dict[int, int]:
        ids = set(service_ids)
        if not ids:
            return {}
        rows = self.db.execute(
            select(Services.id, Services.time_required).where(Services.id.in_(ids))
        )
        return {service_id: int(minutes) for service_id, minutes in rows}

    def get_user_profile(self, user_id: str) -> Optional[UserProfile]:
        return self.db.scalars(
            select(UserProfile).where(UserProfile.user_id == user_id)
        ).first()

    # ── Ledger: reads ────────────────────────────────────────────────────

    def get_booking(self, booking_id: int, for_update: bool = False) -> Optional[Bookings]:
        if for_update:
            return self.db.get(Bookings, booking_id, with_for_update=True)
        return self.db.get(Bookings, booking_id)

    def list_bookings(
        self,
        hairdresser_id: Optional[int] = None,
        status: Optional[str] = None,
        date_range: Optional[tuple[datetime, datetime]] = None,
        user_id: Optional[str] = None,
    ) -> list[Bookings]:
        """
        Bookings filtered by hairdresser, status and a half-open
        [start, end) range on appointment_date.
        """
        query = select(Bookings)
        if hairdresser_id is not None:
            query = query.where(Bookings.hairdresser_id == hairdresser_id)
        if status is not None:
            query = query.where(Bookings.status == status)
        if user_id is not None:
            query = query.where(Bookings.user_id == user_id)
        if date_range is not None:
            start, end = date_range
            query = query.where(
                Bookings.appointment_date >= start,
                Bookings.appointment_date < end,
            )
        query = query.order_by(Bookings.appointment_date, Bookings.id)
        return list(self.db.scalars(query))

    # ── Ledger: writes ───────────────────────────────────────────────────

    def insert_booking(
        self,
        user_id: str,
        hairdresser_id: int,
        service_id: int,
        appointment_date: datetime,
        notes: Optional[str],
        now: datetime,
    ) -> Bookings:
        booking = Bookings(
            user_id=user_id,
            hairdresser_id=hairdresser_id,
            service_id=service_id,
            appointment_date=appointment_date,
            notes=notes,
            status=STATUS_BOOKED,
            created_at=now,
            updated_at=now,
        )
        self.db.add(booking)
        self.db.flush()
        return booking

    def update_booking_status(
        self,
        booking: Bookings,
        status: str,
        now: datetime,
        reason_field: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> Bookings:
        booking.status = status
        if reason_field is not None:
            if reason_field not in REASON_FIELDS:
                raise ValueError(f"Unknown reason field: {reason_field}")
            setattr(booking, reason_field, reason)
        booking.updated_at = now
        self.db.flush()
        return booking

    def update_booking_schedule(self, booking: Bookings, fields: dict, now: datetime) -> Bookings:
        for field, value in fields.items():
            if field not in SCHEDULE_FIELDS:
                raise ValueError(f"Field is not part of a booking schedule: {field}")
            setattr(booking, field, value)
        booking.updated_at = now
        self.db.flush()
        return booking

    def set_calendar_event_id(self, booking_id: int, event_id: Optional[str]) -> None:
        self.db.execute(
            update(Bookings)
            .where(Bookings.id == booking_id)
            .values(google_calendar_event_id=event_id)
        )

    def mark_past(self, now: datetime) -> int:
        """Flip every booked appointment that starts before now. Returns row count."""
        result = self.db.execute(
            update(Bookings)
            .where(
                Bookings.status == STATUS_BOOKED,
                Bookings.appointment_date < now,
            )
            .values(status=STATUS_PAST, updated_at=now)
        )
        return result.rowcount or 0

    # ── Calendar integration ─────────────────────────────────────────────

    def get_calendar_credentials(self) -> Optional[GoogleCalendarCredentials]:
        """The salon keeps a single credentials row."""
        return self.db.scalars(
            select(GoogleCalendarCredentials).order_by(GoogleCalendarCredentials.id)
        ).first()

    def save_calendar_credentials(self, tokens: dict, now: datetime) -> GoogleCalendarCredentials:
        """
        Upsert the credentials row. A token set without a refresh token
        keeps the stored one (Google only sends it on first consent).
        """
        credentials = self.get_calendar_credentials()
        if credentials is None:
            credentials = GoogleCalendarCredentials(created_at=now)
            self.db.add(credentials)

        credentials.access_token = tokens["access_token"]
        if tokens.get("refresh_token"):
            credentials.refresh_token = tokens["refresh_token"]
        credentials.scope = tokens.get("scope") or credentials.scope or ""
        credentials.token_type = tokens.get("token_type") or credentials.token_type or "Bearer"
        # expiry is naive UTC like google-auth reports it; unknown expiry is
        # treated as expired so the next sync refreshes first
        credentials.expiry_date = (
            tokens.get("expiry_date")
            or credentials.expiry_date
            or datetime.now(timezone.utc).replace(tzinfo=None)
        )
        credentials.updated_at = now
        self.db.flush()
        return credentials

    def delete_calendar_credentials(self) -> bool:
        credentials = self.get_calendar_credentials()
        if credentials is None:
            return False
        self.db.delete(credentials)
        self.db.flush()
        return True
