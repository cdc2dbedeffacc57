# barbershop/schemas.py

from pydantic import BaseModel, ConfigDict, Field
from enum import Enum
from datetime import datetime, date, time
from decimal import Decimal
from typing import List, Optional


class UserRole(str, Enum):
    customer = "customer"
    admin = "admin"


class ReservationStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"
    completed = "completed"


# statuses that hold a provider's time
ACTIVE_STATUSES = frozenset(
    s.value for s in (ReservationStatus.pending, ReservationStatus.confirmed, ReservationStatus.completed)
)
CANCELLABLE_STATUSES = frozenset(
    s.value for s in (ReservationStatus.pending, ReservationStatus.confirmed)
)


class ReservationScope(str, Enum):
    upcoming = "upcoming"  # today or later, not cancelled
    past = "past"  # before today, or cancelled


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserPublic(BaseModel):
    id: int
    email: str
    full_name: Optional[str] = None
    role: UserRole


class UserCreate(BaseModel):
    email: str
    password: str = Field(min_length=8, max_length=72)
    full_name: Optional[str] = None


# Services

class ServiceCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    price: Decimal = Field(ge=0)
    duration_minutes: int = Field(gt=0)


class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0)
    duration_minutes: Optional[int] = Field(default=None, gt=0)
    is_active: Optional[bool] = None


class ServicePublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    price: Decimal
    duration_minutes: int
    is_active: bool


# Providers

class WorkingWindowSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    day_of_week: int = Field(ge=0, le=6)  # 0=Sunday ... 6=Saturday
    start_time: time
    end_time: time


class ProviderCreate(BaseModel):
    name: str = Field(min_length=1)
    bio: Optional[str] = None
    specialties: List[str] = Field(default_factory=list)
    # None means "use the default weekly schedule"
    schedule: Optional[List[WorkingWindowSchema]] = None


class ProviderUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    bio: Optional[str] = None
    specialties: Optional[List[str]] = None
    is_active: Optional[bool] = None
    # when given, replaces the whole weekly schedule
    schedule: Optional[List[WorkingWindowSchema]] = None


class ProviderPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    bio: Optional[str] = None
    specialties: List[str] = Field(default_factory=list)
    is_active: bool
    schedule: List[WorkingWindowSchema] = Field(default_factory=list)


# Reservations

class ReservationCreate(BaseModel):
    service_id: int
    provider_id: int
    date: date
    start_time: time


class ReservationPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    customer_id: int
    service_id: int
    provider_id: int
    date: date
    start_time: time
    end_time: time
    status: ReservationStatus
    created_at: Optional[datetime] = None


class ReservationServiceInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    price: Decimal
    duration_minutes: int


class ReservationDetail(ReservationPublic):
    """A reservation as listed to people: with service, provider and customer names."""

    service: ReservationServiceInfo
    provider_name: str
    customer_name: Optional[str] = None
    can_cancel: bool


class AvailabilityResponse(BaseModel):
    provider_id: int
    service_id: int
    date: date
    available_starts: List[str]


class AdminSummary(BaseModel):
    date: date
    reservations_today: int
    total_reservations: int
    active_services: int
    active_providers: int
