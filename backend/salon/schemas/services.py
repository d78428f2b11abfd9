# backend/salon/schemas/services.py

from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field


class ServiceCreate(BaseModel):
    name: str
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    time_required: int = Field(gt=0, description="Duration in minutes")
    description: Optional[str] = None

    model_config = {"from_attributes": True}


class ServiceUpdate(BaseModel):
    name: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    time_required: Optional[int] = Field(default=None, gt=0)
    description: Optional[str] = None

    model_config = {"from_attributes": True}


class ServiceRead(BaseModel):
    id: int
    name: str
    price: Decimal
    time_required: int
    description: Optional[str] = None

    model_config = {"from_attributes": True}
