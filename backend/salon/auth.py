# backend/salon/auth.py
#
# Identity arrives from the auth gateway in front of the API:
# X-User-Id carries the authenticated user id. Roles live in user_profile.

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from .database import get_db
from .services.repository import SalonRepository

ROLE_ADMIN = "admin"
ROLE_USER = "user"


@dataclass(frozen=True)
class CallerContext:
    id: str
    role: str = ROLE_USER

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def can_manage(self, booking) -> bool:
        """Owner of the booking or an admin."""
        return self.is_admin or booking.user_id == self.id


def resolve_caller_role(repo: SalonRepository, user_id: str) -> str:
    profile = repo.get_user_profile(user_id)
    if profile is None:
        return ROLE_USER
    return profile.role


def get_caller(
    x_user_id: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> CallerContext:
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    role = resolve_caller_role(SalonRepository(db), x_user_id)
    return CallerContext(id=x_user_id, role=role)


def require_admin(caller: CallerContext = Depends(get_caller)) -> CallerContext:
    if not caller.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin only",
        )
    return caller
