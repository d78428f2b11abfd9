# backend/salon/routers/internal.py
"""
Internal API endpoints for trusted callers.

/internal/cron/update-past-bookings is hit by an external scheduler.
Access: Authorization: Bearer <CRON_SECRET>. An empty secret disables it.
"""

import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status

from ..config import settings
from ..dependencies import get_booking_manager
from ..schemas.bookings import SweepResult
from ..services.booking_lifecycle import BookingManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/internal", tags=["internal"])


def verify_cron_secret(authorization: Optional[str] = Header(None)) -> None:
    expected = settings.cron_secret
    if not expected or not authorization:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not hmac.compare_digest(token.strip(), expected):
        logger.warning("Rejected cron call with invalid secret")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


@router.api_route(
    "/cron/update-past-bookings",
    methods=["GET", "POST"],
    response_model=SweepResult,
    dependencies=[Depends(verify_cron_secret)],
)
def update_past_bookings(manager: BookingManager = Depends(get_booking_manager)):
    updated = manager.sweep_past()
    return SweepResult(success=True, updated_count=updated)
