# barbershop/routers/providers_routes.py

from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from barbershop import catalog, reservations
from barbershop.db import get_session
from barbershop.schemas import (
    AvailabilityResponse,
    ProviderCreate,
    ProviderPublic,
    ProviderUpdate,
    ReservationDetail,
)
from barbershop.auth import get_current_user
from barbershop.deps import get_now, require_admin

router = APIRouter(
    prefix="/providers",
    tags=["providers"],
)


def _public(provider) -> ProviderPublic:
    # SQLModel dumps skip relationships, so build the schedule-bearing response explicitly
    return ProviderPublic.model_validate(provider)


@router.get("", response_model=List[ProviderPublic])
def list_providers(
    on_date: Optional[date] = None,
    session: Session = Depends(get_session),
):
    """Active providers; with on_date, only those working that weekday."""
    return [_public(p) for p in catalog.list_providers(session, on_date=on_date)]


@router.get("/{provider_id}", response_model=ProviderPublic)
def get_provider(provider_id: int, session: Session = Depends(get_session)):
    return _public(catalog.require_provider(session, provider_id))


@router.post("", response_model=ProviderPublic, status_code=201)
def create_provider(
    provider: ProviderCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_admin(current_user)
    return _public(catalog.create_provider(session, provider))


@router.put("/{provider_id}", response_model=ProviderPublic)
def update_provider(
    provider_id: int,
    changes: ProviderUpdate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_admin(current_user)
    return _public(catalog.update_provider(session, provider_id, changes))


@router.delete("/{provider_id}", response_model=ProviderPublic)
def deactivate_provider(
    provider_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_admin(current_user)
    return _public(catalog.deactivate_provider(session, provider_id))


@router.get("/{provider_id}/availability", response_model=AvailabilityResponse)
def provider_availability(
    provider_id: int,
    service_id: int,
    on_date: date,
    session: Session = Depends(get_session),
    now: datetime = Depends(get_now),
):
    available = reservations.list_available_slots(session, provider_id, service_id, on_date, now)
    return {
        "provider_id": provider_id,
        "service_id": service_id,
        "date": on_date,
        "available_starts": available,
    }


@router.get("/{provider_id}/reservations", response_model=List[ReservationDetail])
def provider_day_reservations(
    provider_id: int,
    on_date: date,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    require_admin(current_user)
    day = reservations.list_provider_day(session, provider_id, on_date)
    return [reservations.describe(r, now) for r in day]
