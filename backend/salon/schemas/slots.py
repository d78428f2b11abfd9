# backend/salon/schemas/slots.py
"""
Pydantic schemas for slots API.
"""

from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field


class TimeSlotRead(BaseModel):
    """A single candidate start for one hairdresser."""
    hairdresser_id: int
    service_id: Optional[int] = None
    start_time: datetime
    end_time: datetime
    available: bool

    model_config = {"from_attributes": True}


class SlotsDayResponse(BaseModel):
    """All slots of a day, ordered by hairdresser then start time."""
    date: date
    service_id: Optional[int] = None
    hairdresser_id: Optional[int] = None
    duration_minutes: int
    slot_step_minutes: int = Field(description="Grid step in minutes (15/30/60)")
    slots: list[TimeSlotRead]

    model_config = {"from_attributes": True}
