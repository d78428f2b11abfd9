# backend/salon/routers/bookings.py
# Client-facing booking endpoints.
# - POST creates through the lifecycle manager (conflict check under lock)
# - cancel / reschedule: owner or admin
# - DELETE is not exposed, bookings are never hard-deleted

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ..auth import CallerContext, get_caller
from ..database import get_db
from ..dependencies import get_booking_manager
from ..models.generated import Bookings
from ..schemas.bookings import (
    BookingCancel,
    BookingCreate,
    BookingRead,
    BookingReschedule,
)
from ..services.booking_lifecycle import BookingManager
from ..services.errors import NotFoundError, UnauthorizedError

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("/", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: BookingCreate,
    caller: CallerContext = Depends(get_caller),
    manager: BookingManager = Depends(get_booking_manager),
):
    return manager.create(
        caller,
        hairdresser_id=data.hairdresser_id,
        service_id=data.service_id,
        appointment_date=data.appointment_date,
        notes=data.notes,
        user_id=data.user_id,
    )


@router.get("/mine", response_model=list[BookingRead])
def list_my_bookings(
    caller: CallerContext = Depends(get_caller),
    db: Session = Depends(get_db),
):
    """Caller's bookings, newest appointment first."""
    query = (
        select(Bookings)
        .options(selectinload(Bookings.service))
        .where(Bookings.user_id == caller.id)
        .order_by(Bookings.appointment_date.desc(), Bookings.id.desc())
    )
    return list(db.scalars(query))


@router.get("/{id}", response_model=BookingRead)
def get_booking(
    id: int,
    caller: CallerContext = Depends(get_caller),
    db: Session = Depends(get_db),
):
    booking = db.get(Bookings, id)
    if not booking:
        raise NotFoundError(f"Booking {id} not found")
    if not caller.can_manage(booking):
        raise UnauthorizedError()
    return booking


@router.post("/{id}/cancel", response_model=BookingRead)
def cancel_booking(
    id: int,
    data: BookingCancel | None = None,
    caller: CallerContext = Depends(get_caller),
    manager: BookingManager = Depends(get_booking_manager),
):
    reason = data.reason if data else None
    return manager.cancel(id, caller, reason=reason)


@router.patch("/{id}/reschedule", response_model=BookingRead)
def reschedule_booking(
    id: int,
    data: BookingReschedule,
    caller: CallerContext = Depends(get_caller),
    manager: BookingManager = Depends(get_booking_manager),
):
    return manager.reschedule(
        id,
        caller,
        new_appointment_date=data.new_appointment_date,
        new_service_id=data.new_service_id,
        new_hairdresser_id=data.new_hairdresser_id,
        reason=data.reason,
    )
