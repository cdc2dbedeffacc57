# barbershop/models.py

from typing import Optional, List
from datetime import datetime, timezone, date as Date, time
from decimal import Decimal

from sqlalchemy import DateTime, Index, UniqueConstraint, text
from sqlalchemy.types import JSON
from sqlmodel import SQLModel, Field, Column, Relationship

from .schemas import ReservationStatus, UserRole


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    password_hash: str
    full_name: Optional[str] = None
    role: str = UserRole.customer.value  # customer or admin


class Service(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    description: Optional[str] = None
    price: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2)
    duration_minutes: int
    is_active: bool = True


class Provider(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    bio: Optional[str] = None
    specialties: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    is_active: bool = True

    schedule: List["WorkingWindow"] = Relationship(
        back_populates="provider",
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "order_by": "WorkingWindow.day_of_week",
            "lazy": "selectin",
        },
    )


class WorkingWindow(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("provider_id", "day_of_week", name="uq_provider_weekday"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    provider_id: int = Field(foreign_key="provider.id", index=True)
    day_of_week: int  # 0=Sunday ... 6=Saturday
    start_time: time
    end_time: time

    provider: Optional[Provider] = Relationship(back_populates="schedule")


class Reservation(SQLModel, table=True):
    __table_args__ = (
        # Two live reservations can never share a provider start; cancelled rows free the start again
        Index(
            "uq_provider_date_start_live",
            "provider_id",
            "date",
            "start_time",
            unique=True,
            sqlite_where=text("status != 'cancelled'"),
            postgresql_where=text("status != 'cancelled'"),
        ),
        Index("ix_reservation_provider_date", "provider_id", "date"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)

    customer_id: int = Field(foreign_key="user.id", index=True)
    service_id: int = Field(foreign_key="service.id")
    provider_id: int = Field(foreign_key="provider.id")
    date: Date
    start_time: time
    end_time: time  # frozen at creation, later service edits do not move it
    status: str = ReservationStatus.confirmed.value
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )

    service: Optional[Service] = Relationship()
    provider: Optional[Provider] = Relationship()
    customer: Optional[User] = Relationship()


class ProviderDay(SQLModel, table=True):
    """Lock row for one provider's calendar day; every booking attempt bumps `version`."""

    provider_id: int = Field(foreign_key="provider.id", primary_key=True)
    date: Date = Field(primary_key=True)
    version: int = 0
