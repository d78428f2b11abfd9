import os

# settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["USE_REDIS_LOCKS"] = "false"
os.environ["RUN_BACKGROUND_JOBS"] = "false"
os.environ["CRON_SECRET"] = "test-cron-secret"

from datetime import datetime, time
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from salon.auth import CallerContext
from salon.database import create_db_engine, get_db
from salon.dependencies import get_booking_manager
from salon.main import app
from salon.models.generated import (
    Base,
    Bookings,
    HairdresserAvailability,
    Hairdressers,
    Services,
    UserProfile,
)
from salon.services.booking_lifecycle import BookingManager
from salon.services.locks import LocalHairdresserLocks
from salon.services.repository import SalonRepository
from salon.services.slots.config import BookingConfig

# Monday
MONDAY = datetime(2030, 1, 7)
CRON_SECRET = "test-cron-secret"


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class RecordingNotifier:
    def __init__(self):
        self.events: list[tuple[str, dict]] = []

    def __call__(self, event_type: str, payload: dict) -> None:
        self.events.append((event_type, payload))

    def types(self) -> list[str]:
        return [t for t, _ in self.events]


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def repo(db):
    return SalonRepository(db)


@pytest.fixture
def clock():
    return FixedClock(MONDAY.replace(hour=7))


@pytest.fixture
def locks():
    return LocalHairdresserLocks(wait_seconds=5)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def config():
    return BookingConfig(slot_step_minutes=30, default_duration_minutes=30)


@pytest.fixture
def manager(db, locks, notifier, clock, config):
    return BookingManager(db, locks=locks, notify=notifier, now=clock, config=config)


# ── Factories ───────────────────────────────────────────────────────────


@pytest.fixture
def make_user(db):
    def _make(user_id: str, role: str = "user", first_name: str = "Anna", last_name: str = "Nowak"):
        profile = UserProfile(
            user_id=user_id,
            first_name=first_name,
            last_name=last_name,
            email=f"{user_id}@example.com",
            role=role,
        )
        db.add(profile)
        db.commit()
        return profile
    return _make


@pytest.fixture
def make_service(db):
    def _make(name: str = "Haircut", minutes: int = 30, price: str = "50.00"):
        service = Services(name=name, price=Decimal(price), time_required=minutes)
        db.add(service)
        db.commit()
        return service
    return _make


@pytest.fixture
def make_hairdresser(db):
    def _make(services=(), windows=(("monday", time(9), time(12)),), first_name="Ewa", last_name="Kowalska"):
        hairdresser = Hairdressers(first_name=first_name, last_name=last_name)
        hairdresser.services = list(services)
        hairdresser.availability = [
            HairdresserAvailability(day_of_week=day, start_time=start, end_time=end)
            for day, start, end in windows
        ]
        db.add(hairdresser)
        db.commit()
        return hairdresser
    return _make


@pytest.fixture
def make_booking(db):
    """Insert a booking row directly, bypassing the lifecycle checks."""
    def _make(user, hairdresser, service, start: datetime, status: str = "booked"):
        booking = Bookings(
            user_id=user.user_id,
            hairdresser_id=hairdresser.id,
            service_id=service.id,
            appointment_date=start,
            status=status,
        )
        db.add(booking)
        db.commit()
        return booking
    return _make


@pytest.fixture
def client_user(make_user):
    profile = make_user("client-1")
    return CallerContext(id=profile.user_id, role="user")


@pytest.fixture
def admin_user(make_user):
    profile = make_user("admin-1", role="admin", first_name="Admin", last_name="Salon")
    return CallerContext(id=profile.user_id, role="admin")


@pytest.fixture
def salon(make_service, make_hairdresser):
    """One hairdresser offering a 30-minute service, Monday 09:00-12:00."""
    service = make_service("Haircut", 30)
    hairdresser = make_hairdresser(services=[service])
    return hairdresser, service


# ── HTTP ────────────────────────────────────────────────────────────────


@pytest.fixture
def client(session_factory, locks, notifier, clock, config):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    def override_get_booking_manager():
        session = session_factory()
        try:
            yield BookingManager(session, locks=locks, notify=notifier, now=clock, config=config)
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_booking_manager] = override_get_booking_manager
    yield TestClient(app)
    app.dependency_overrides.clear()
