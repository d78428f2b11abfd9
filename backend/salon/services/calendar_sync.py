"""
backend/salon/services/calendar_sync.py

Google Calendar sync for bookings.

Booking mutations emit events to Redis (services/events.py) after commit.
calendar_sync_loop consumes them and mirrors each booking into the salon
calendar:

- booking_created     → add_booking
- booking_rescheduled → update_booking (creates the event if missing)
- booking_cancelled   → remove_booking

Sync is best-effort: no stored credentials means the sync is skipped,
failures are retried MAX_RETRIES times, then parked in the dead-letter
queue. The booking ledger is never touched except for the event id.
"""

import asyncio
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import redis.asyncio as aioredis
from googleapiclient.errors import HttpError
from sqlalchemy.orm import Session

from ..database import SessionLocal
from ..models.generated import Bookings
from . import google_calendar
from .errors import ExternalSyncError
from .events import CALENDAR_DEAD_QUEUE, CALENDAR_QUEUE
from .repository import STATUS_BOOKED, SalonRepository
from .slots.config import get_booking_config

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
TOKEN_REFRESH_MARGIN = timedelta(minutes=5)


def _utcnow() -> datetime:
    # google-auth reports expiry as naive UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


class CalendarSync:
    """
    Mirrors bookings into the salon's Google Calendar.

    Args:
        db: SQLAlchemy session
        calendar: Google Calendar client module (injectable for tests)
    """

    def __init__(self, db: Session, calendar=None):
        self.db = db
        self.repo = SalonRepository(db)
        self.calendar = calendar or google_calendar

    def add_booking(self, booking_id: int) -> Optional[str]:
        """Create the event. Idempotent: an already-synced booking is left alone."""
        booking = self.repo.get_booking(booking_id)
        if booking is None:
            logger.warning(f"Calendar sync: booking {booking_id} not found")
            return None
        if booking.status != STATUS_BOOKED:
            # event arrived after the booking was cancelled or swept
            logger.info(f"Calendar sync skipped: booking {booking_id} is {booking.status}")
            return None
        if booking.google_calendar_event_id:
            return booking.google_calendar_event_id

        tokens = self._get_tokens()
        if tokens is None:
            return None

        try:
            event_id = self.calendar.create_event(*tokens, self._event_body(booking))
        except HttpError as e:
            raise ExternalSyncError(f"Create failed for booking {booking_id}: {e}") from e

        self.repo.set_calendar_event_id(booking.id, event_id)
        self.db.commit()
        logger.info(f"Booking {booking_id} synced to Google Calendar: event_id={event_id}")
        return event_id

    def update_booking(self, booking_id: int) -> Optional[str]:
        booking = self.repo.get_booking(booking_id)
        if booking is None:
            logger.warning(f"Calendar sync: booking {booking_id} not found")
            return None
        if booking.status != STATUS_BOOKED:
            logger.info(f"Calendar sync skipped: booking {booking_id} is {booking.status}")
            return None
        if not booking.google_calendar_event_id:
            return self.add_booking(booking_id)

        tokens = self._get_tokens()
        if tokens is None:
            return None

        try:
            event_id = self.calendar.update_event(
                *tokens, booking.google_calendar_event_id, self._event_body(booking)
            )
        except HttpError as e:
            raise ExternalSyncError(f"Update failed for booking {booking_id}: {e}") from e

        logger.info(f"Booking {booking_id} calendar event updated: event_id={event_id}")
        return event_id

    def remove_booking(self, booking_id: int, event_id: Optional[str] = None) -> bool:
        """
        Delete the booking's event. event_id comes from the cancel event
        payload; falls back to the stored id.
        """
        if not event_id:
            booking = self.repo.get_booking(booking_id)
            event_id = booking.google_calendar_event_id if booking else None
        if not event_id:
            return False

        tokens = self._get_tokens()
        if tokens is None:
            return False

        try:
            self.calendar.delete_event(*tokens, event_id)
        except HttpError as e:
            raise ExternalSyncError(f"Delete failed for booking {booking_id}: {e}") from e

        self.repo.set_calendar_event_id(booking_id, None)
        self.db.commit()
        logger.info(f"Booking {booking_id} calendar event removed: event_id={event_id}")
        return True

    # ── Helpers ──────────────────────────────────────────────────────────

    def _get_tokens(self) -> Optional[tuple[str, str]]:
        """(access_token, refresh_token), refreshed when close to expiry."""
        credentials = self.repo.get_calendar_credentials()
        if credentials is None:
            logger.info("Calendar sync skipped: Google Calendar not connected")
            return None

        if credentials.expiry_date and credentials.expiry_date - TOKEN_REFRESH_MARGIN <= _utcnow():
            try:
                refreshed = self.calendar.refresh_access_token(credentials.refresh_token)
            except ValueError as e:
                raise ExternalSyncError(str(e)) from e
            self.repo.save_calendar_credentials(refreshed, now=datetime.now())
            self.db.commit()
            logger.info("Google Calendar access token refreshed")

        return credentials.access_token, credentials.refresh_token

    def _event_body(self, booking: Bookings) -> dict:
        service = booking.service
        hairdresser = booking.hairdresser
        client = booking.user

        if service is not None:
            duration = service.time_required
            service_name = service.name
        else:
            duration = get_booking_config().default_duration_minutes
            service_name = "Service"

        return self.calendar.build_event({
            "booking_id": booking.id,
            "start": booking.appointment_date,
            "end": booking.appointment_date + timedelta(minutes=duration),
            "service_name": service_name,
            "hairdresser_name": (
                f"{hairdresser.first_name} {hairdresser.last_name}" if hairdresser else ""
            ),
            "client_name": f"{client.first_name} {client.last_name}" if client else booking.user_id,
            "client_email": client.email if client else None,
            "notes": booking.notes,
        })


# ── Event handlers ───────────────────────────────────────────────────────

# Registry of event handlers
EVENT_HANDLERS: dict[str, Callable[[CalendarSync, dict], object]] = {}


def register_event(event_type: str):
    """Decorator to register an event handler."""
    def decorator(func):
        EVENT_HANDLERS[event_type] = func
        return func
    return decorator


@register_event("booking_created")
def on_booking_created(sync: CalendarSync, data: dict):
    return sync.add_booking(data["booking_id"])


@register_event("booking_rescheduled")
def on_booking_rescheduled(sync: CalendarSync, data: dict):
    return sync.update_booking(data["booking_id"])


@register_event("booking_cancelled")
def on_booking_cancelled(sync: CalendarSync, data: dict):
    return sync.remove_booking(data["booking_id"], data.get("event_id"))


def process_event(data: dict, session_factory=SessionLocal, calendar=None) -> None:
    """
    Dispatch an event to its registered handler in a fresh session.

    Args:
        data: {"type": "event_type", ...payload}
    """
    event_type = data.get("type")

    if not event_type:
        logger.warning("Event without type field, skipping")
        return

    handler = EVENT_HANDLERS.get(event_type)
    if handler is None:
        logger.warning(f"No handler for event type: {event_type}")
        return

    logger.info(f"Processing event: {event_type}")
    db = session_factory()
    try:
        handler(CalendarSync(db, calendar=calendar), data)
    finally:
        db.close()


# ── Consumer ─────────────────────────────────────────────────────────────


async def calendar_sync_loop(redis_url: str) -> None:
    """
    Consume events from events:calendar.

    Uses BRPOP with 5s timeout to avoid busy-waiting.
    On failure, retries up to MAX_RETRIES, then moves to dead-letter queue.
    """
    r = aioredis.from_url(redis_url, decode_responses=True)
    logger.info("calendar_sync_loop started")

    try:
        while True:
            try:
                result = await r.brpop(CALENDAR_QUEUE, timeout=5)
                if result is None:
                    continue

                _, raw = result
                await handle_raw_event(r, raw)

            except asyncio.CancelledError:
                logger.info("calendar_sync_loop cancelled")
                raise
            except Exception:
                logger.exception("calendar_sync_loop error, retrying in 2s")
                await asyncio.sleep(2)
    finally:
        await r.aclose()


async def handle_raw_event(r, raw: str, session_factory=SessionLocal, calendar=None) -> None:
    """
    Parse and process a single event with retry logic.

    On failure:
    - If attempts < MAX_RETRIES → push back to events:calendar
    - Otherwise → push to events:calendar:dead
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.error(f"Invalid JSON in event queue: {raw[:200]}")
        await r.rpush(CALENDAR_DEAD_QUEUE, raw)
        return

    attempt = data.get("_attempt", 1)

    try:
        await asyncio.to_thread(process_event, data, session_factory, calendar)
    except Exception:
        logger.exception(
            f"Failed to process event type={data.get('type')} "
            f"(attempt {attempt}/{MAX_RETRIES})"
        )

        if attempt < MAX_RETRIES:
            data["_attempt"] = attempt + 1
            await r.rpush(CALENDAR_QUEUE, json.dumps(data))
            logger.info(f"Event re-queued to {CALENDAR_QUEUE} (attempt {attempt + 1})")
        else:
            await r.rpush(CALENDAR_DEAD_QUEUE, json.dumps(data))
            logger.warning(
                f"Event moved to dead-letter queue {CALENDAR_DEAD_QUEUE}: "
                f"type={data.get('type')}"
            )
