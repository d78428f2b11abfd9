# backend/salon/init_db.py
#
# Bootstrap: create the schema and make sure an admin profile exists.
#
#   ADMIN_USER_ID=... ADMIN_EMAIL=... python -m salon.init_db

import os

from dotenv import load_dotenv
from sqlalchemy import select
from sqlalchemy.orm import Session

from .config import BASE_DIR
from .database import engine
from .models.generated import Base, UserProfile


# ======================================================
# MAIN LOGIC
# ======================================================

def ensure_admin(
    db: Session,
    user_id: str,
    email: str,
    first_name: str = "Admin",
    last_name: str = "Salon",
) -> UserProfile:
    """Create the admin profile, or promote an existing one."""
    profile = db.scalars(select(UserProfile).where(UserProfile.user_id == user_id)).first()

    if profile is None:
        profile = UserProfile(
            user_id=user_id,
            first_name=first_name,
            last_name=last_name,
            email=email,
            role="admin",
        )
        db.add(profile)
        print(f"[BOOTSTRAP] Admin profile created (user_id={user_id})")
    elif profile.role != "admin":
        profile.role = "admin"
        print(f"[BOOTSTRAP] Existing user promoted to admin (user_id={user_id})")
    else:
        print(f"[BOOTSTRAP] Admin already exists (user_id={user_id})")

    db.commit()
    return profile


def main():
    load_dotenv(BASE_DIR / ".env")

    admin_user_id = os.getenv("ADMIN_USER_ID")
    admin_email = os.getenv("ADMIN_EMAIL")
    if not admin_user_id:
        raise RuntimeError("ADMIN_USER_ID is not set")
    if not admin_email:
        raise RuntimeError("ADMIN_EMAIL is not set")

    if engine.url.get_backend_name() == "sqlite" and engine.url.database:
        # sqlite does not create missing parent dirs
        os.makedirs(os.path.dirname(engine.url.database) or ".", exist_ok=True)

    Base.metadata.create_all(bind=engine)

    with Session(engine) as db:
        ensure_admin(
            db,
            user_id=admin_user_id,
            email=admin_email,
            first_name=os.getenv("ADMIN_FIRST_NAME", "Admin"),
            last_name=os.getenv("ADMIN_LAST_NAME", "Salon"),
        )


if __name__ == "__main__":
    main()
