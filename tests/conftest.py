"""
Test configuration and fixtures.

Each test gets its own file-backed SQLite database under tmp_path (file-backed
so that threads get separate connections and real locking), a seeded catalog,
and a FastAPI TestClient whose session and clock dependencies point at it.
"""

from datetime import date, datetime, time
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from barbershop.auth import create_access_token, hash_password
from barbershop.db import build_engine, get_session, init_db
from barbershop.deps import get_now
from barbershop.main import create_app
from barbershop.models import Provider, Service, User, WorkingWindow

MONDAY = date(2030, 1, 7)
TUESDAY = date(2030, 1, 8)
SUNDAY = date(2030, 1, 6)

# Monday morning before opening
DEFAULT_NOW = datetime(2030, 1, 7, 8, 0)

PASSWORD = "correct-horse-battery"


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'booking.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(scope="session")
def password_hash():
    # bcrypt is slow; hash once for every test user
    return hash_password(PASSWORD)


def _add_user(session, email, password_hash, role="customer"):
    user = User(email=email, password_hash=password_hash, full_name=email.split("@")[0], role=role)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def customer(session, password_hash):
    return _add_user(session, "carla@example.com", password_hash)


@pytest.fixture
def other_customer(session, password_hash):
    return _add_user(session, "omar@example.com", password_hash)


@pytest.fixture
def admin(session, password_hash):
    return _add_user(session, "boss@example.com", password_hash, role="admin")


@pytest.fixture
def haircut(session):
    service = Service(name="Haircut", price=Decimal("300"), duration_minutes=30)
    session.add(service)
    session.commit()
    session.refresh(service)
    return service


@pytest.fixture
def full_cut(session):
    service = Service(name="Cut and Style", price=Decimal("550"), duration_minutes=60)
    session.add(service)
    session.commit()
    session.refresh(service)
    return service


@pytest.fixture
def provider(session):
    """Works Monday 09:00-17:00 and Tuesday 09:00-12:00; closed otherwise."""
    barber = Provider(name="Alex", specialties=["Fades"])
    barber.schedule = [
        WorkingWindow(day_of_week=1, start_time=time(9, 0), end_time=time(17, 0)),
        WorkingWindow(day_of_week=2, start_time=time(9, 0), end_time=time(12, 0)),
    ]
    session.add(barber)
    session.commit()
    session.refresh(barber)
    return barber


class Clock:
    """Mutable "now" injected through the get_now dependency."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return Clock(DEFAULT_NOW)


@pytest.fixture
def client(engine, clock):
    """Create test client bound to the per-test database and clock."""
    app = create_app(use_lifespan=False)

    def _session_override():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _session_override
    app.dependency_overrides[get_now] = clock
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user) -> dict:
    """Bearer header for a user, minted directly (no password round trip)."""
    token = create_access_token({"sub": user.email})
    return {"Authorization": f"Bearer {token}"}
