# backend/salon/routers/integrations.py
# API endpoints for the salon Google Calendar integration

import logging
import secrets
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from redis.exceptions import RedisError
from sqlalchemy.orm import Session

from ..auth import CallerContext, require_admin
from ..config import settings
from ..database import get_db
from ..redis_client import redis_client
from ..schemas.integrations import (
    IntegrationStatusRead,
    OAuthCallbackResponse,
    OAuthUrlResponse,
)
from ..services.google_calendar import exchange_code_for_tokens, get_oauth_url
from ..services.repository import SalonRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/integrations", tags=["integrations"])

OAUTH_STATE_PREFIX = "oauth:google:state"
OAUTH_STATE_TTL_SECONDS = 600


def _ensure_configured() -> None:
    if not settings.google_client_id or not settings.google_client_secret:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Google OAuth client is not configured",
        )


def _consume_state(state: str, caller: CallerContext) -> None:
    """One-shot check of the state issued with the auth URL."""
    try:
        owner = redis_client.getdel(f"{OAUTH_STATE_PREFIX}:{state}")
    except RedisError as e:
        logger.error(f"Failed to read OAuth state: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Try again later")
    if owner is None or owner != caller.id:
        logger.warning(f"Rejected Google OAuth callback with unknown state, caller={caller.id}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid OAuth state")


@router.get("/google/auth-url", response_model=OAuthUrlResponse)
def get_google_auth_url(caller: CallerContext = Depends(require_admin)):
    """
    Generate OAuth URL for Google Calendar authorization.

    The admin should be redirected to this URL to authorize access.
    """
    _ensure_configured()
    state = secrets.token_urlsafe(16)
    try:
        redis_client.set(f"{OAUTH_STATE_PREFIX}:{state}", caller.id, ex=OAUTH_STATE_TTL_SECONDS)
    except RedisError as e:
        logger.error(f"Failed to store OAuth state: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Try again later")
    return OAuthUrlResponse(auth_url=get_oauth_url(state))


@router.get("/google/callback", response_model=OAuthCallbackResponse)
def google_oauth_callback(
    code: str = Query(..., description="Authorization code from Google"),
    state: str = Query(..., description="State issued with the auth URL"),
    caller: CallerContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    Handle OAuth callback from Google.

    Stores the token set. A grant without a refresh token keeps the one
    already stored; with nothing stored it is rejected.
    Only the admin who requested the auth URL may complete it.
    """
    _ensure_configured()
    _consume_state(state, caller)
    try:
        tokens = exchange_code_for_tokens(code)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    repo = SalonRepository(db)
    if not tokens.get("refresh_token") and repo.get_calendar_credentials() is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Google did not return a refresh token, revoke access and try again",
        )

    repo.save_calendar_credentials(tokens, now=datetime.now())
    db.commit()
    logger.info("Google Calendar connected")

    return OAuthCallbackResponse(success=True, message="Google Calendar connected successfully")


@router.get("/google/status", response_model=IntegrationStatusRead)
def get_google_status(
    caller: CallerContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    credentials = SalonRepository(db).get_calendar_credentials()
    return IntegrationStatusRead(
        is_connected=credentials is not None,
        calendar_id=settings.google_calendar_id,
        expiry_date=credentials.expiry_date if credentials else None,
        updated_at=credentials.updated_at if credentials else None,
    )


@router.delete("/google", status_code=status.HTTP_204_NO_CONTENT)
def disconnect_google(
    caller: CallerContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if not SalonRepository(db).delete_calendar_credentials():
        raise HTTPException(status_code=404, detail="Google Calendar is not connected")
    db.commit()
    logger.info(f"Google Calendar disconnected by {caller.id}")
