# backend/salon/schemas/hairdressers.py

from datetime import datetime, time
from typing import Literal, Optional
from pydantic import BaseModel, field_validator, model_validator

from .services import ServiceRead

DayOfWeek = Literal["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


class AvailabilityWindowIn(BaseModel):
    day_of_week: DayOfWeek
    start_time: time
    end_time: time

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _time_of_day(cls, value):
        # admin UI may send full timestamps, only the clock time is kept
        if isinstance(value, datetime):
            return value.time().replace(second=0, microsecond=0)
        return value

    @model_validator(mode="after")
    def _end_after_start(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class AvailabilityWindowRead(BaseModel):
    id: int
    day_of_week: str
    start_time: time
    end_time: time

    model_config = {"from_attributes": True}


class HairdresserCreate(BaseModel):
    first_name: str
    last_name: str
    phone_number: Optional[str] = None
    email: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None

    availability: list[AvailabilityWindowIn] = []
    service_ids: list[int] = []


class HairdresserUpdate(BaseModel):
    """Omitted availability / service_ids leave them as they are."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None

    availability: Optional[list[AvailabilityWindowIn]] = None
    service_ids: Optional[list[int]] = None


class HairdresserRead(BaseModel):
    id: int
    first_name: str
    last_name: str
    phone_number: Optional[str] = None
    email: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None

    availability: list[AvailabilityWindowRead] = []
    services: list[ServiceRead] = []

    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
