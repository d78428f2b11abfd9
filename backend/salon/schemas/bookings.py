# backend/salon/schemas/bookings.py

from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class BookingCreate(BaseModel):
    hairdresser_id: int
    service_id: int
    appointment_date: datetime
    notes: Optional[str] = None
    # admin only: book on behalf of another user
    user_id: Optional[str] = None

    model_config = {"from_attributes": True}


class BookingCancel(BaseModel):
    reason: Optional[str] = None


class BookingReschedule(BaseModel):
    new_appointment_date: datetime
    new_service_id: Optional[int] = None
    new_hairdresser_id: Optional[int] = None
    reason: Optional[str] = None


class ServiceSummary(BaseModel):
    id: int
    name: str
    time_required: int

    model_config = {"from_attributes": True}


class HairdresserSummary(BaseModel):
    id: int
    first_name: str
    last_name: str

    model_config = {"from_attributes": True}


class UserSummary(BaseModel):
    user_id: str
    first_name: str
    last_name: str
    email: str

    model_config = {"from_attributes": True}


class BookingRead(BaseModel):
    id: int
    user_id: str
    hairdresser_id: int
    service_id: int
    appointment_date: datetime

    status: str
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    reschedule_reason: Optional[str] = None
    google_calendar_event_id: Optional[str] = None

    service: Optional[ServiceSummary] = None

    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AdminBookingRead(BookingRead):
    """Booking row for the admin list, with client and hairdresser."""
    user: Optional[UserSummary] = None
    hairdresser: Optional[HairdresserSummary] = None


class SweepResult(BaseModel):
    success: bool
    updated_count: int
