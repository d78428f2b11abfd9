# backend/salon/routers/hairdressers.py
# - reads are public (booking UI lists hairdressers with services)
# - writes: admin only
# - availability and service set are replaced wholesale when provided
# - DELETE cascades windows and associations, refused while bookings exist

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import exists, select
from sqlalchemy.orm import Session, selectinload

from ..auth import CallerContext, require_admin
from ..database import get_db
from ..models.generated import (
    Bookings,
    HairdresserAvailability,
    Hairdressers as DBHairdressers,
    Services as DBServices,
)
from ..schemas.hairdressers import (
    AvailabilityWindowIn,
    HairdresserCreate,
    HairdresserRead,
    HairdresserUpdate,
)

router = APIRouter(prefix="/hairdressers", tags=["hairdressers"])


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def _load_services(db: Session, service_ids: list[int]) -> list[DBServices]:
    ids = set(service_ids)
    services = list(db.scalars(select(DBServices).where(DBServices.id.in_(ids)))) if ids else []
    missing = ids - {s.id for s in services}
    if missing:
        raise HTTPException(
            status_code=404,
            detail=f"Services not found: {sorted(missing)}",
        )
    return services


def _build_windows(windows: list[AvailabilityWindowIn]) -> list[HairdresserAvailability]:
    return [
        HairdresserAvailability(
            day_of_week=w.day_of_week,
            start_time=w.start_time,
            end_time=w.end_time,
        )
        for w in windows
    ]


def _get_or_404(db: Session, id: int) -> DBHairdressers:
    obj = db.get(DBHairdressers, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Hairdresser not found")
    return obj


# ---------------------------------------------------------------------
# Base CRUD
# ---------------------------------------------------------------------

@router.get("/", response_model=list[HairdresserRead])
def list_hairdressers(db: Session = Depends(get_db)):
    query = (
        select(DBHairdressers)
        .options(
            selectinload(DBHairdressers.services),
            selectinload(DBHairdressers.availability),
        )
        .order_by(DBHairdressers.last_name, DBHairdressers.first_name)
    )
    return list(db.scalars(query))


@router.get("/{id}", response_model=HairdresserRead)
def get_hairdresser(id: int, db: Session = Depends(get_db)):
    return _get_or_404(db, id)


@router.post("/", response_model=HairdresserRead, status_code=status.HTTP_201_CREATED)
def create_hairdresser(
    data: HairdresserCreate,
    caller: CallerContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    obj = DBHairdressers(**data.model_dump(exclude={"availability", "service_ids"}))
    obj.services = _load_services(db, data.service_ids)
    obj.availability = _build_windows(data.availability)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


@router.patch("/{id}", response_model=HairdresserRead)
def update_hairdresser(
    id: int,
    data: HairdresserUpdate,
    caller: CallerContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    obj = _get_or_404(db, id)

    fields = data.model_dump(exclude_unset=True, exclude={"availability", "service_ids"})
    for field, value in fields.items():
        setattr(obj, field, value)

    if data.service_ids is not None:
        obj.services = _load_services(db, data.service_ids)
    if data.availability is not None:
        # delete-orphan removes the old windows on flush
        obj.availability = _build_windows(data.availability)

    db.commit()
    db.refresh(obj)
    return obj


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_hairdresser(
    id: int,
    caller: CallerContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    obj = _get_or_404(db, id)

    if db.scalar(select(exists().where(Bookings.hairdresser_id == id))):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Hairdresser has bookings and cannot be deleted",
        )

    db.delete(obj)
    db.commit()


# ---------------------------------------------------------------------
# Domain: Hairdresser → Services
# ---------------------------------------------------------------------

@router.get("/{id}/services", response_model=list[int])
def list_hairdresser_service_ids(id: int, db: Session = Depends(get_db)):
    obj = _get_or_404(db, id)
    return sorted(s.id for s in obj.services)
