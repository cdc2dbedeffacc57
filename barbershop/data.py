# barbershop/data.py
"""Default catalog: services offered out of the box and the standard weekly hours."""

import logging
from datetime import time
from decimal import Decimal

from sqlmodel import Session, select

from .auth import hash_password
from .models import Provider, Service, User, WorkingWindow
from .schemas import UserRole

logger = logging.getLogger(__name__)

# name -> (price, duration in minutes)
DEFAULT_SERVICES = {
    "Shape Up": (Decimal("150"), 15),
    "Beard Trim": (Decimal("200"), 15),
    "Haircut": (Decimal("300"), 30),
    "Fade": (Decimal("350"), 30),
    "Scissors Cut": (Decimal("400"), 30),
    "Cut and Beard": (Decimal("450"), 45),
}

# every weekday, Sunday=0 .. Saturday=6
DEFAULT_OPEN = time(9, 0)
DEFAULT_CLOSE = time(22, 0)


def default_schedule() -> list[WorkingWindow]:
    return [
        WorkingWindow(day_of_week=day, start_time=DEFAULT_OPEN, end_time=DEFAULT_CLOSE)
        for day in range(7)
    ]


def seed_default_catalog(session: Session) -> bool:
    """Fill an empty catalog with the default services and one provider. Returns True if it seeded."""
    if session.exec(select(Service)).first() is not None:
        return False

    for name, (price, minutes) in DEFAULT_SERVICES.items():
        session.add(Service(name=name, price=price, duration_minutes=minutes))

    provider = Provider(name="House Barber", specialties=["Fades", "Beards"])
    provider.schedule = default_schedule()
    session.add(provider)
    session.commit()

    logger.info(f"Seeded default catalog with {len(DEFAULT_SERVICES)} services")
    return True


def seed_admin(session: Session, email: str, password: str) -> bool:
    """Create the admin account if no user has that email yet."""
    if session.exec(select(User).where(User.email == email)).first() is not None:
        return False

    session.add(
        User(email=email, password_hash=hash_password(password), role=UserRole.admin.value)
    )
    session.commit()
    logger.info("Provisioned admin account")
    return True
