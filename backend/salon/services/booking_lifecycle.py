"""
backend/salon/services/booking_lifecycle.py

Booking lifecycle: create / cancel / reschedule / sweep.

State machine per booking:
  booked → cancelled   (terminal, reason recorded)
  booked → past        (terminal, set by the sweep)
  booked → booked      (reschedule: date / service / hairdresser mutated)

Create and reschedule run "load occupancy → check → write → commit"
while holding the hairdresser's lock, so two overlapping requests for the
same hairdresser can never both commit. Calendar sync is dispatched after
commit through `notify` and can never fail the mutation.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth import CallerContext
from ..models.generated import Bookings
from .errors import (
    AlreadyCancelledError,
    CannotRescheduleCancelledError,
    InvalidStatusTransitionError,
    NotFoundError,
    PastDateError,
    ServiceNotOfferedError,
    SlotUnavailableError,
    StorageError,
    UnauthorizedError,
    ValidationError,
)
from .events import emit_event
from .locks import get_hairdresser_locks
from .repository import (
    STATUS_BOOKED,
    STATUS_CANCELLED,
    STATUS_PAST,
    SalonRepository,
)
from .slots.config import BookingConfig, get_booking_config
from .slots.conflicts import find_booking_conflicts

logger = logging.getLogger(__name__)

Notifier = Callable[[str, dict], None]


class BookingManager:
    """
    Orchestrates booking mutations for one DB session.

    Args:
        db: SQLAlchemy session (one unit of work)
        locks: per-hairdresser lock registry (`hold(hairdresser_id)`)
        notify: post-commit event sink, defaults to the Redis emitter
        now: clock, injectable for tests
        config: slot engine config
    """

    def __init__(
        self,
        db: Session,
        locks=None,
        notify: Optional[Notifier] = None,
        now: Optional[Callable[[], datetime]] = None,
        config: Optional[BookingConfig] = None,
    ):
        self.db = db
        self.repo = SalonRepository(db)
        self.locks = locks or get_hairdresser_locks()
        self.notify = notify or emit_event
        self.now = now or datetime.now
        self.config = config or get_booking_config()

    # ── Create ───────────────────────────────────────────────────────────

    def create(
        self,
        caller: CallerContext,
        hairdresser_id: int,
        service_id: int,
        appointment_date: datetime | str,
        notes: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Bookings:
        user_id = user_id or caller.id
        if user_id != caller.id and not caller.is_admin:
            raise UnauthorizedError("Only an admin can book on behalf of another user")

        start = _coerce_datetime(appointment_date)

        if not self.repo.get_user_profile(user_id):
            raise NotFoundError(f"User profile {user_id} not found")
        if not self.repo.get_hairdresser(hairdresser_id):
            raise NotFoundError(f"Hairdresser {hairdresser_id} not found")
        service = self.repo.get_service(service_id)
        if not service:
            raise NotFoundError(f"Service {service_id} not found")
        if service_id not in self.repo.list_hairdresser_service_ids(hairdresser_id):
            raise ServiceNotOfferedError()

        with self.locks.hold(hairdresser_id):
            self._fresh_read()

            conflicts = find_booking_conflicts(
                self.repo, hairdresser_id, start, service.time_required, config=self.config
            )
            if conflicts:
                raise SlotUnavailableError(conflicts=conflicts)

            with self._transaction():
                booking = self.repo.insert_booking(
                    user_id=user_id,
                    hairdresser_id=hairdresser_id,
                    service_id=service_id,
                    appointment_date=start,
                    notes=notes,
                    now=self.now(),
                )

        logger.info(
            f"Booking created: booking_id={booking.id}, user_id={user_id}, "
            f"hairdresser_id={hairdresser_id}, service_id={service_id}, start={start:%Y-%m-%d %H:%M}"
        )
        self._dispatch("booking_created", {"booking_id": booking.id})
        return booking

    # ── Cancel ───────────────────────────────────────────────────────────

    def cancel(
        self,
        booking_id: int,
        caller: CallerContext,
        reason: Optional[str] = None,
    ) -> Bookings:
        booking = self._get_managed_booking(booking_id, caller)

        with self.locks.hold(booking.hairdresser_id):
            self._fresh_read()
            if booking.status == STATUS_CANCELLED:
                raise AlreadyCancelledError()
            if booking.status == STATUS_PAST:
                raise InvalidStatusTransitionError("Cannot cancel a past booking")

            event_id = booking.google_calendar_event_id
            with self._transaction():
                self.repo.update_booking_status(
                    booking,
                    STATUS_CANCELLED,
                    now=self.now(),
                    reason_field="cancellation_reason",
                    reason=reason or None,
                )

        logger.info(f"Booking cancelled: booking_id={booking.id}, by={caller.id}")
        self._dispatch("booking_cancelled", {"booking_id": booking.id, "event_id": event_id})
        return booking

    # ── Reschedule ───────────────────────────────────────────────────────

    def reschedule(
        self,
        booking_id: int,
        caller: CallerContext,
        new_appointment_date: datetime | str,
        new_service_id: Optional[int] = None,
        new_hairdresser_id: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> Bookings:
        booking = self._get_managed_booking(booking_id, caller)
        _ensure_reschedulable(booking)

        start = _coerce_datetime(new_appointment_date)
        if start < self.now():
            raise PastDateError()

        service_id = new_service_id or booking.service_id
        hairdresser_id = new_hairdresser_id or booking.hairdresser_id

        if not self.repo.get_hairdresser(hairdresser_id):
            raise NotFoundError(f"Hairdresser {hairdresser_id} not found")
        service = self.repo.get_service(service_id)
        if not service:
            raise NotFoundError(f"Service {service_id} not found")
        if service_id not in self.repo.list_hairdresser_service_ids(hairdresser_id):
            raise ServiceNotOfferedError()

        with self.locks.hold(hairdresser_id):
            self._fresh_read()
            _ensure_reschedulable(booking)

            # the booking's own current interval never blocks its move
            conflicts = find_booking_conflicts(
                self.repo,
                hairdresser_id,
                start,
                service.time_required,
                exclude_booking_id=booking.id,
                config=self.config,
            )
            if conflicts:
                raise SlotUnavailableError(conflicts=conflicts)

            with self._transaction():
                self.repo.update_booking_schedule(
                    booking,
                    {
                        "appointment_date": start,
                        "service_id": service_id,
                        "hairdresser_id": hairdresser_id,
                        "reschedule_reason": reason or None,
                    },
                    now=self.now(),
                )

        logger.info(
            f"Booking rescheduled: booking_id={booking.id}, by={caller.id}, "
            f"hairdresser_id={hairdresser_id}, service_id={service_id}, start={start:%Y-%m-%d %H:%M}"
        )
        self._dispatch("booking_rescheduled", {"booking_id": booking.id})
        return booking

    # ── Sweep ────────────────────────────────────────────────────────────

    def sweep_past(self) -> int:
        """Mark booked appointments that started before now as past. Idempotent."""
        with self._transaction():
            updated = self.repo.mark_past(self.now())
        if updated:
            logger.info(f"Past sweep: {updated} booking(s) marked past")
        return updated

    # ── Helpers ──────────────────────────────────────────────────────────

    def _get_managed_booking(self, booking_id: int, caller: CallerContext) -> Bookings:
        booking = self.repo.get_booking(booking_id)
        if not booking:
            raise NotFoundError(f"Booking {booking_id} not found")
        if not caller.can_manage(booking):
            raise UnauthorizedError()
        return booking

    def _fresh_read(self) -> None:
        """
        End the transaction opened by the pre-lock reads. Snapshot-isolated
        backends would otherwise serve the check from the old snapshot;
        rollback also expires every loaded instance.
        """
        self.db.rollback()

    @contextmanager
    def _transaction(self):
        """Commit the block's writes; any database failure becomes StorageError."""
        try:
            yield
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Booking ledger commit failed")
            raise StorageError() from e

    def _dispatch(self, event_type: str, payload: dict) -> None:
        try:
            self.notify(event_type, payload)
        except Exception:
            logger.exception(f"Failed to dispatch {event_type} for booking {payload.get('booking_id')}")


def _ensure_reschedulable(booking: Bookings) -> None:
    if booking.status == STATUS_CANCELLED:
        raise CannotRescheduleCancelledError()
    if booking.status != STATUS_BOOKED:
        raise InvalidStatusTransitionError(f"Cannot reschedule a {booking.status} booking")


def _coerce_datetime(value: datetime | str) -> datetime:
    """
    Naive local datetime. Aware values are converted to the server's
    local zone; ISO strings are parsed.
    """
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError(f"Invalid appointment date: {value!r}") from None
    if not isinstance(value, datetime):
        raise ValidationError("Appointment date is required")
    if value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    return value
