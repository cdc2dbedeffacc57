# barbershop/catalog.py
"""
Catalog access: services, providers with their weekly schedules, and the
per-day reservation query the booking core reads from.
"""

import logging
from datetime import date
from typing import List, Optional

from sqlmodel import Session, select

from .core.schedule import day_of_week, validate_windows
from .data import default_schedule
from .errors import InvalidRequest, NotFound
from .models import Provider, Reservation, Service, WorkingWindow
from .schemas import (
    ACTIVE_STATUSES,
    ProviderCreate,
    ProviderUpdate,
    ServiceCreate,
    ServiceUpdate,
    WorkingWindowSchema,
)

logger = logging.getLogger(__name__)


def get_service(session: Session, service_id: int) -> Optional[Service]:
    return session.get(Service, service_id)


def get_provider(session: Session, provider_id: int) -> Optional[Provider]:
    return session.get(Provider, provider_id)


def require_service(session: Session, service_id: int) -> Service:
    service = get_service(session, service_id)
    if service is None:
        raise NotFound(f"Service {service_id} not found")
    return service


def require_provider(session: Session, provider_id: int) -> Provider:
    provider = get_provider(session, provider_id)
    if provider is None:
        raise NotFound(f"Provider {provider_id} not found")
    return provider


def active_reservations_for_day(session: Session, provider_id: int, on_date: date) -> List[Reservation]:
    """Every reservation still holding time for this provider on this date (read fresh, never cached)."""
    stmt = (
        select(Reservation)
        .where(Reservation.provider_id == provider_id)
        .where(Reservation.date == on_date)
        .where(Reservation.status.in_(sorted(ACTIVE_STATUSES)))
        .order_by(Reservation.start_time)
        .execution_options(populate_existing=True)
    )
    return list(session.exec(stmt).all())


# Services

def list_services(session: Session, include_inactive: bool = False) -> List[Service]:
    stmt = select(Service)
    if not include_inactive:
        stmt = stmt.where(Service.is_active == True)  # noqa: E712
    stmt = stmt.order_by(Service.price, Service.id)
    return list(session.exec(stmt).all())


def create_service(session: Session, data: ServiceCreate) -> Service:
    service = Service(**data.model_dump())
    session.add(service)
    session.commit()
    session.refresh(service)
    logger.info(f"Service created: {service.name}", extra={"service_id": service.id})
    return service


def update_service(session: Session, service_id: int, data: ServiceUpdate) -> Service:
    """
    Edit a service in place.

    Existing reservations keep their stored end_time, so a duration change
    only affects bookings made afterwards.
    """
    service = require_service(session, service_id)
    for key, value in data.model_dump(exclude_unset=True).items():
        if value is None and key != "description":
            continue
        setattr(service, key, value)
    session.add(service)
    session.commit()
    session.refresh(service)
    logger.info(f"Service updated: {service.name}", extra={"service_id": service.id})
    return service


def deactivate_service(session: Session, service_id: int) -> Service:
    service = require_service(session, service_id)
    service.is_active = False
    session.add(service)
    session.commit()
    session.refresh(service)
    logger.info(f"Service deactivated: {service.name}", extra={"service_id": service.id})
    return service


# Providers

def _build_schedule(windows: List[WorkingWindowSchema]) -> List[WorkingWindow]:
    try:
        validate_windows(windows)
    except ValueError as exc:
        # DuplicateWindowError is a ValueError too
        raise InvalidRequest(str(exc)) from exc
    return [
        WorkingWindow(day_of_week=w.day_of_week, start_time=w.start_time, end_time=w.end_time)
        for w in windows
    ]


def list_providers(session: Session, on_date: Optional[date] = None) -> List[Provider]:
    """Active providers; with on_date, only those who work that weekday."""
    stmt = select(Provider).where(Provider.is_active == True).order_by(Provider.name)  # noqa: E712
    providers = list(session.exec(stmt).all())
    if on_date is None:
        return providers

    dow = day_of_week(on_date)
    return [p for p in providers if any(w.day_of_week == dow for w in p.schedule)]


def create_provider(session: Session, data: ProviderCreate) -> Provider:
    if data.schedule is None:
        schedule = default_schedule()
    else:
        schedule = _build_schedule(data.schedule)

    provider = Provider(name=data.name, bio=data.bio, specialties=data.specialties)
    provider.schedule = schedule
    session.add(provider)
    session.commit()
    session.refresh(provider)
    logger.info(f"Provider created: {provider.name}", extra={"provider_id": provider.id})
    return provider


def update_provider(session: Session, provider_id: int, data: ProviderUpdate) -> Provider:
    """Edit provider details; a given schedule replaces the whole weekly schedule."""
    provider = require_provider(session, provider_id)
    changes = data.model_dump(exclude_unset=True, exclude={"schedule"})
    for key, value in changes.items():
        if value is None and key != "bio":
            continue
        setattr(provider, key, value)

    if data.schedule is not None:
        new_schedule = _build_schedule(data.schedule)
        # old rows must be gone before the new ones hit uq_provider_weekday
        provider.schedule.clear()
        session.flush()
        provider.schedule = new_schedule

    session.add(provider)
    session.commit()
    session.refresh(provider)
    logger.info(f"Provider updated: {provider.name}", extra={"provider_id": provider.id})
    return provider


def deactivate_provider(session: Session, provider_id: int) -> Provider:
    provider = require_provider(session, provider_id)
    provider.is_active = False
    session.add(provider)
    session.commit()
    session.refresh(provider)
    logger.info(f"Provider deactivated: {provider.name}", extra={"provider_id": provider.id})
    return provider
