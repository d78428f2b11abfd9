"""
backend/salon/services/events.py

Event emitter: pushes booking events to a Redis list consumed by the
calendar sync loop (services/calendar_sync.py).

Queues:
- events:calendar: booking_created / booking_cancelled / booking_rescheduled
- events:calendar:dead: events that failed MAX_RETRIES times
"""

import json
import time
import logging

from ..redis_client import redis_client

logger = logging.getLogger(__name__)

CALENDAR_QUEUE = "events:calendar"
CALENDAR_DEAD_QUEUE = "events:calendar:dead"


def emit_event(event_type: str, payload: dict) -> None:
    """
    Emit a booking event after the ledger commit.

    Never raises: a Redis outage must not undo or fail a booking.
    """
    event = {
        "type": event_type,
        **payload,
        "ts": int(time.time()),
    }
    try:
        redis_client.rpush(CALENDAR_QUEUE, json.dumps(event))
        logger.info(f"Event emitted: {event_type} → {CALENDAR_QUEUE}")
    except Exception as e:
        logger.error(f"Failed to emit event {event_type}: {e}")
