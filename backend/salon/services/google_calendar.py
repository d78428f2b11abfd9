"""
backend/salon/services/google_calendar.py

Google Calendar client for the salon calendar.

Handles:
- OAuth URL generation and token exchange
- Access token refresh
- Calendar event CRUD operations

One salon-wide calendar: tokens live in google_calendar_credentials,
the target calendar is settings.google_calendar_id.
"""

import logging
from datetime import datetime

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from ..config import settings

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar"]
TOKEN_URI = "https://oauth2.googleapis.com/token"


def _get_client_config() -> dict:
    """Build OAuth client configuration from settings."""
    return {
        "web": {
            "client_id": settings.google_client_id,
            "client_secret": settings.google_client_secret,
            "auth_uri": "https://accounts.google.com/o/oauth2/auth",
            "token_uri": TOKEN_URI,
            "redirect_uris": [settings.google_redirect_uri],
        }
    }


def _build_flow() -> Flow:
    return Flow.from_client_config(
        _get_client_config(),
        scopes=SCOPES,
        redirect_uri=settings.google_redirect_uri,
    )


def get_oauth_url(state: str) -> str:
    """
    Generate OAuth URL for Google Calendar authorization.

    Offline access + forced consent, so Google hands out a refresh token.
    state comes back on the callback and must be checked there.
    """
    authorization_url, _ = _build_flow().authorization_url(
        access_type="offline",
        include_granted_scopes="true",
        state=state,
        prompt="consent",
    )
    return authorization_url


def exchange_code_for_tokens(code: str) -> dict:
    """
    Exchange authorization code for tokens.

    Returns:
        {"access_token", "refresh_token" (may be None), "scope",
         "token_type", "expiry_date" (datetime or None)}

    Raises:
        ValueError: If the token exchange fails
    """
    flow = _build_flow()
    try:
        flow.fetch_token(code=code)
    except Exception as e:
        logger.error(f"Token exchange failed: {e}")
        raise ValueError(f"Token exchange failed: {e}")

    credentials = flow.credentials
    return {
        "access_token": credentials.token,
        "refresh_token": credentials.refresh_token,
        "scope": " ".join(credentials.scopes or SCOPES),
        "token_type": "Bearer",
        "expiry_date": credentials.expiry,
    }


def refresh_access_token(refresh_token: str) -> dict:
    """
    Refresh an expired access token.

    Raises:
        ValueError: If refresh fails (token revoked or invalid)
    """
    credentials = Credentials(
        token=None,
        refresh_token=refresh_token,
        token_uri=TOKEN_URI,
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
    )
    try:
        credentials.refresh(Request())
    except Exception as e:
        logger.error(f"Token refresh failed: {e}")
        raise ValueError(f"Token refresh failed: {e}")

    return {
        "access_token": credentials.token,
        "expiry_date": credentials.expiry,
    }


def _get_calendar_service(access_token: str, refresh_token: str):
    """Build Google Calendar API service client."""
    credentials = Credentials(
        token=access_token,
        refresh_token=refresh_token,
        token_uri=TOKEN_URI,
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
    )
    return build("calendar", "v3", credentials=credentials, cache_discovery=False)


def build_event(booking: dict) -> dict:
    """
    Calendar event body for a booking.

    booking keys: booking_id, start, end (datetime), service_name,
    hairdresser_name, client_name, client_email (optional), notes (optional)
    """
    description_parts = [
        f"Booking: #{booking['booking_id']}",
        f"Service: {booking['service_name']}",
        f"Hairdresser: {booking['hairdresser_name']}",
        f"Client: {booking['client_name']}",
    ]
    if booking.get("notes"):
        description_parts.append(f"Notes: {booking['notes']}")

    start: datetime = booking["start"]
    end: datetime = booking["end"]

    event = {
        "summary": f"{booking['service_name']} - {booking['client_name']}",
        "description": "\n".join(description_parts),
        "start": {
            "dateTime": start.isoformat(),
            "timeZone": settings.calendar_timezone,
        },
        "end": {
            "dateTime": end.isoformat(),
            "timeZone": settings.calendar_timezone,
        },
    }
    if booking.get("client_email"):
        event["attendees"] = [{"email": booking["client_email"]}]
    return event


def create_event(access_token: str, refresh_token: str, event: dict) -> str:
    """
    Insert an event into the salon calendar.

    Returns:
        Google event id

    Raises:
        HttpError: If API call fails
    """
    service = _get_calendar_service(access_token, refresh_token)
    try:
        created = service.events().insert(
            calendarId=settings.google_calendar_id,
            body=event,
        ).execute()
    except HttpError as e:
        logger.error(f"Failed to create calendar event: {e}")
        raise

    logger.info(f"Created Google Calendar event: {created.get('id')}")
    return created.get("id")


def update_event(access_token: str, refresh_token: str, event_id: str, event: dict) -> str:
    """
    Replace an existing event.

    Raises:
        HttpError: If API call fails
    """
    service = _get_calendar_service(access_token, refresh_token)
    try:
        updated = service.events().update(
            calendarId=settings.google_calendar_id,
            eventId=event_id,
            body=event,
        ).execute()
    except HttpError as e:
        logger.error(f"Failed to update calendar event: {e}")
        raise

    logger.info(f"Updated Google Calendar event: {event_id}")
    return updated.get("id", event_id)


def delete_event(access_token: str, refresh_token: str, event_id: str) -> bool:
    """
    Delete an event. An event that is already gone counts as deleted.

    Raises:
        HttpError: If API call fails
    """
    service = _get_calendar_service(access_token, refresh_token)
    try:
        service.events().delete(
            calendarId=settings.google_calendar_id,
            eventId=event_id,
        ).execute()
    except HttpError as e:
        if e.resp.status in (404, 410):
            logger.warning(f"Calendar event not found: {event_id}")
            return True
        logger.error(f"Failed to delete calendar event: {e}")
        raise

    logger.info(f"Deleted Google Calendar event: {event_id}")
    return True
