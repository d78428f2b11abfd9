# backend/salon/routers/profile.py
# Profile of the signed-in user.
# - POST: first sign-up creates the caller's own profile (role user)
# - GET: caller's profile, 404 until created

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import ROLE_USER, CallerContext, get_caller
from ..database import get_db
from ..models.generated import UserProfile
from ..schemas.profile import ProfileCreate, ProfileRead

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profile", tags=["profile"])


@router.post("/", response_model=ProfileRead, status_code=status.HTTP_201_CREATED)
def create_profile(
    data: ProfileCreate,
    caller: CallerContext = Depends(get_caller),
    db: Session = Depends(get_db),
):
    if data.user_id is not None and data.user_id != caller.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="A profile can only be created for yourself",
        )

    existing = db.scalars(
        select(UserProfile).where(
            or_(UserProfile.user_id == caller.id, UserProfile.email == data.email)
        )
    ).first()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Profile already exists")

    obj = UserProfile(
        user_id=caller.id,
        first_name=data.first_name,
        last_name=data.last_name,
        email=data.email,
        phone_number=data.phone_number or None,
        role=ROLE_USER,
    )
    db.add(obj)
    try:
        db.commit()
    except IntegrityError:
        # concurrent sign-up with the same user_id or email
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Profile already exists")
    db.refresh(obj)

    logger.info(f"Profile created: user_id={caller.id}")
    return obj


@router.get("/", response_model=ProfileRead)
def get_profile(
    caller: CallerContext = Depends(get_caller),
    db: Session = Depends(get_db),
):
    obj = db.scalars(select(UserProfile).where(UserProfile.user_id == caller.id)).first()
    if not obj:
        raise HTTPException(status_code=404, detail="Profile not found")
    return obj
