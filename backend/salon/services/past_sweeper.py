"""
Past-booking sweeper.

Periodically marks bookings whose appointment has started
(appointment_date < now, status still `booked`) as `past`.

Runs as an asyncio task in the app lifespan, and on demand from the
cron endpoint (/internal/cron/update-past-bookings).
Uses synchronous DB (via asyncio.to_thread).
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional

from ..config import settings
from ..database import SessionLocal
from .booking_lifecycle import BookingManager

logger = logging.getLogger(__name__)


def run_past_sweep(now: Optional[Callable[[], datetime]] = None) -> int:
    """One sweep in its own session. Zero rows updated is a success."""
    db = SessionLocal()
    try:
        return BookingManager(db, now=now).sweep_past()
    finally:
        db.close()


async def past_sweeper_loop(interval: Optional[int] = None) -> None:
    """Periodic loop around run_past_sweep."""
    interval = interval or settings.sweep_interval_seconds
    logger.info("past_sweeper_loop started")

    try:
        while True:
            try:
                await asyncio.to_thread(run_past_sweep)
            except asyncio.CancelledError:
                logger.info("past_sweeper_loop cancelled")
                raise
            except Exception:
                logger.exception("past_sweeper_loop error")

            await asyncio.sleep(interval)
    except asyncio.CancelledError:
        pass
