# backend/salon/routers/services.py
# - reads are public
# - writes: admin only
# - DELETE refused while bookings reference the service

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import exists, select
from sqlalchemy.orm import Session

from ..auth import CallerContext, require_admin
from ..database import get_db
from ..models.generated import Bookings, Services as DBServices
from ..schemas.services import ServiceCreate, ServiceRead, ServiceUpdate

router = APIRouter(prefix="/services", tags=["services"])


@router.get("/", response_model=list[ServiceRead])
def list_services(db: Session = Depends(get_db)):
    return list(db.scalars(select(DBServices).order_by(DBServices.name)))


@router.get("/{id}", response_model=ServiceRead)
def get_service(id: int, db: Session = Depends(get_db)):
    obj = db.get(DBServices, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Service not found")
    return obj


@router.post("/", response_model=ServiceRead, status_code=status.HTTP_201_CREATED)
def create_service(
    data: ServiceCreate,
    caller: CallerContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    obj = DBServices(**data.model_dump())
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


@router.patch("/{id}", response_model=ServiceRead)
def update_service(
    id: int,
    data: ServiceUpdate,
    caller: CallerContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    obj = db.get(DBServices, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Service not found")

    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None and field != "description":
            continue
        setattr(obj, field, value)

    db.commit()
    db.refresh(obj)
    return obj


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_service(
    id: int,
    caller: CallerContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    obj = db.get(DBServices, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Service not found")

    if db.scalar(select(exists().where(Bookings.service_id == id))):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Service has bookings and cannot be deleted",
        )

    db.delete(obj)
    db.commit()
