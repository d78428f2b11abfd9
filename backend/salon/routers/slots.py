# backend/salon/routers/slots.py
"""
Slots API endpoints.

GET /slots/day - candidate slots for a day, optionally per service / hairdresser
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..dependencies import get_repository
from ..schemas.slots import SlotsDayResponse, TimeSlotRead
from ..services.repository import SalonRepository
from ..services.slots import calculate_time_slots, get_booking_config

router = APIRouter(prefix="/slots", tags=["slots"])


@router.get("/day", response_model=SlotsDayResponse)
def get_slots_day(
    target_date: date = Query(..., alias="date", description="YYYY-MM-DD"),
    service_id: Optional[int] = None,
    hairdresser_id: Optional[int] = None,
    only_available: bool = False,
    repo: SalonRepository = Depends(get_repository),
):
    """
    Slots for one day. Unavailable slots are included unless
    only_available is set (booking UI hides them, admin UI disables them).
    """
    config = get_booking_config()
    slots = calculate_time_slots(repo, target_date, service_id, hairdresser_id, config)
    if only_available:
        slots = [s for s in slots if s.available]

    duration = config.default_duration_minutes
    if service_id is not None:
        # calculate_time_slots already raised for an unknown service
        duration = repo.get_service(service_id).time_required

    return SlotsDayResponse(
        date=target_date,
        service_id=service_id,
        hairdresser_id=hairdresser_id,
        duration_minutes=duration,
        slot_step_minutes=config.slot_step_minutes,
        slots=[TimeSlotRead.model_validate(s) for s in slots],
    )
