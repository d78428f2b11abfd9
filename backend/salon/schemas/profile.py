# backend/salon/schemas/profile.py

from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class ProfileCreate(BaseModel):
    # must match the authenticated caller when sent
    user_id: Optional[str] = None
    first_name: str
    last_name: str
    email: str
    phone_number: Optional[str] = None

    model_config = {"from_attributes": True}


class ProfileRead(BaseModel):
    id: int
    user_id: str
    first_name: str
    last_name: str
    email: str
    phone_number: Optional[str] = None
    role: str
    created_at: datetime

    model_config = {"from_attributes": True}
