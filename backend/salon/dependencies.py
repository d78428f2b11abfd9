# backend/salon/dependencies.py

from fastapi import Depends
from sqlalchemy.orm import Session

from .database import get_db
from .services.booking_lifecycle import BookingManager
from .services.repository import SalonRepository


def get_repository(db: Session = Depends(get_db)) -> SalonRepository:
    return SalonRepository(db)


def get_booking_manager(db: Session = Depends(get_db)) -> BookingManager:
    """Lifecycle manager bound to the request session. Overridden in tests."""
    return BookingManager(db)
