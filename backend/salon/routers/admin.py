# backend/salon/routers/admin.py
# Admin booking overview: filter by status / day / client search,
# newest appointment first.

from datetime import date, datetime, timedelta
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_, select
from sqlalchemy.orm import Session, selectinload

from ..auth import CallerContext, require_admin
from ..database import get_db
from ..models.generated import Bookings, UserProfile
from ..schemas.bookings import AdminBookingRead

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/bookings", response_model=list[AdminBookingRead])
def list_bookings(
    status: Literal["booked", "cancelled", "past", "all"] = "all",
    day: Optional[date] = Query(None, alias="date"),
    search: Optional[str] = None,
    caller: CallerContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    query = select(Bookings).options(
        selectinload(Bookings.user),
        selectinload(Bookings.service),
        selectinload(Bookings.hairdresser),
    )

    if status != "all":
        query = query.where(Bookings.status == status)

    if day is not None:
        day_start = datetime.combine(day, datetime.min.time())
        query = query.where(
            Bookings.appointment_date >= day_start,
            Bookings.appointment_date < day_start + timedelta(days=1),
        )

    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.join(UserProfile, UserProfile.user_id == Bookings.user_id).where(
            or_(
                UserProfile.first_name.ilike(pattern),
                UserProfile.last_name.ilike(pattern),
                UserProfile.email.ilike(pattern),
            )
        )

    query = query.order_by(Bookings.appointment_date.desc(), Bookings.id.desc())
    return list(db.scalars(query))
