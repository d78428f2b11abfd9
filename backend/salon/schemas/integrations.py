# backend/salon/schemas/integrations.py

from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class OAuthUrlResponse(BaseModel):
    auth_url: str


class IntegrationStatusRead(BaseModel):
    """Salon calendar connection status."""
    is_connected: bool
    calendar_id: str
    expiry_date: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OAuthCallbackResponse(BaseModel):
    """Response from OAuth callback processing."""
    success: bool
    message: str
