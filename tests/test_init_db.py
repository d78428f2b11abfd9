from sqlalchemy import select

from salon.init_db import ensure_admin
from salon.models.generated import UserProfile


def test_ensure_admin_creates_profile(db):
    ensure_admin(db, user_id="boss", email="boss@example.com")

    profile = db.scalars(select(UserProfile).where(UserProfile.user_id == "boss")).one()
    assert profile.role == "admin"


def test_ensure_admin_promotes_existing_user(db, make_user):
    make_user("u1")

    ensure_admin(db, user_id="u1", email="u1@example.com")

    profiles = db.scalars(select(UserProfile).where(UserProfile.user_id == "u1")).all()
    assert len(profiles) == 1
    assert profiles[0].role == "admin"


def test_ensure_admin_is_idempotent(db):
    ensure_admin(db, user_id="boss", email="boss@example.com")
    ensure_admin(db, user_id="boss", email="boss@example.com")

    assert len(db.scalars(select(UserProfile)).all()) == 1
