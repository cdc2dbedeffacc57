# barbershop/reservations.py
"""
Reservation lifecycle.

- list_available_slots(): what a customer can still book for a provider/service/date
- create_reservation(): commit-if-still-free, serialized per (provider, date)
- cancel_reservation(): owner/admin cancellation of a future reservation

Creating a reservation is the only operation that needs exclusion. It runs in
one database transaction that first bumps the ProviderDay row for the
(provider, date) pair. That write takes the row lock (PostgreSQL) or the
database write lock (SQLite), so concurrent creates for the same day queue up
in the database; each one then re-derives availability from committed state
before inserting. The partial unique index on live (provider, date, start)
rows backs this up. A create that loses fails with SlotUnavailable and is not
retried here.
"""

import logging
from datetime import date, datetime, time
from typing import List, Optional

from sqlalchemy import func, or_, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import selectinload
from sqlmodel import Session, select

from .catalog import active_reservations_for_day, require_provider, require_service
from .config import get_settings
from .core.availability import available_slots
from .core.intervals import add_minutes, format_hhmm
from .errors import (
    AlreadyCancelled,
    AlreadyPast,
    BookingError,
    Forbidden,
    InvalidRequest,
    NotFound,
    ProviderInactive,
    ReservationNotFound,
    ServiceInactive,
    SlotUnavailable,
)
from .models import Provider, ProviderDay, Reservation, Service
from .schemas import (
    ACTIVE_STATUSES,
    CANCELLABLE_STATUSES,
    ReservationDetail,
    ReservationPublic,
    ReservationScope,
    ReservationServiceInfo,
    ReservationStatus,
)

logger = logging.getLogger(__name__)

RECENT_LIMIT = 50


def _step_minutes(step_minutes: Optional[int]) -> int:
    return step_minutes or get_settings().SLOT_STEP_MINUTES


def _slots_for(
    provider: Provider,
    service: Service,
    on_date: date,
    now: datetime,
    reservations: List[Reservation],
    step_minutes: int,
) -> List[str]:
    try:
        return available_slots(
            provider.id,
            provider.schedule,
            service.duration_minutes,
            on_date,
            now,
            reservations,
            step_minutes=step_minutes,
        )
    except ValueError as exc:
        # duplicate weekday windows or a non-positive duration
        raise InvalidRequest(str(exc)) from exc


def list_available_slots(
    session: Session,
    provider_id: int,
    service_id: int,
    on_date: date,
    now: datetime,
    step_minutes: Optional[int] = None,
) -> List[str]:
    """
    Bookable "HH:MM" starts for a provider and service on a date.

    Unknown ids raise NotFound. An inactive service or provider, a closed day
    or a past date simply has no slots.
    """
    service = require_service(session, service_id)
    provider = require_provider(session, provider_id)
    if not (service.is_active and provider.is_active):
        return []

    reservations = active_reservations_for_day(session, provider_id, on_date)
    return _slots_for(provider, service, on_date, now, reservations, _step_minutes(step_minutes))


def _lock_provider_day(session: Session, provider_id: int, on_date: date) -> None:
    """Upsert-and-bump the (provider, date) lock row inside the current transaction."""
    dialect = session.get_bind().dialect.name

    if dialect in ("sqlite", "postgresql"):
        insert = sqlite.insert if dialect == "sqlite" else postgresql.insert
        stmt = (
            insert(ProviderDay)
            .values(provider_id=provider_id, date=on_date, version=1)
            .on_conflict_do_update(
                index_elements=["provider_id", "date"],
                set_={"version": ProviderDay.version + 1},
            )
        )
        session.connection().execute(stmt)
        return

    row = session.exec(
        select(ProviderDay)
        .where(ProviderDay.provider_id == provider_id)
        .where(ProviderDay.date == on_date)
        .with_for_update()
    ).first()
    if row is None:
        session.add(ProviderDay(provider_id=provider_id, date=on_date, version=1))
    else:
        row.version += 1
        session.add(row)
    session.flush()


def create_reservation(
    session: Session,
    customer_id: int,
    service_id: int,
    provider_id: int,
    on_date: date,
    start_time: time,
    now: datetime,
    step_minutes: Optional[int] = None,
) -> Reservation:
    """
    Book `start_time` on `on_date` with a provider for a service, in `confirmed` status.

    Raises:
        InvalidRequest: past date, start not on a whole minute or carrying an
            offset, or the service/provider does not exist (NotFound)
        ServiceInactive / ProviderInactive: deactivated before the commit
        SlotUnavailable: the start is not (or no longer) offered
    """
    log_extra = {
        "customer_id": customer_id,
        "provider_id": provider_id,
        "service_id": service_id,
        "booking_date": on_date.isoformat(),
        "start_time": start_time.isoformat(),
    }
    logger.info("Starting reservation commit", extra=log_extra)

    if on_date < now.date():
        raise InvalidRequest("Cannot book a date in the past")
    if start_time.tzinfo is not None:
        raise InvalidRequest("Start time must be shop wall-clock time, without a UTC offset")
    if start_time.second or start_time.microsecond:
        raise InvalidRequest("Start time must be on a whole minute")

    # existence first: the lock row references the provider
    require_service(session, service_id)
    require_provider(session, provider_id)

    try:
        _lock_provider_day(session, provider_id, on_date)
    except OperationalError:
        session.rollback()
        logger.warning("Provider day is locked by another booking", extra=log_extra, exc_info=True)
        raise SlotUnavailable("Provider calendar is busy, please pick the slot again")

    try:
        # re-read under the lock; a concurrent deactivation must be seen here
        service = session.get(Service, service_id, populate_existing=True)
        provider = session.get(Provider, provider_id, populate_existing=True)
        if service is None or provider is None:
            raise NotFound("Service or provider no longer exists")
        if not service.is_active:
            raise ServiceInactive()
        if not provider.is_active:
            raise ProviderInactive()

        reservations = active_reservations_for_day(session, provider_id, on_date)
        slots = _slots_for(provider, service, on_date, now, reservations, _step_minutes(step_minutes))
        if format_hhmm(start_time) not in slots:
            raise SlotUnavailable()

        reservation = Reservation(
            customer_id=customer_id,
            service_id=service.id,
            provider_id=provider.id,
            date=on_date,
            start_time=start_time,
            end_time=add_minutes(start_time, service.duration_minutes),
            status=ReservationStatus.confirmed.value,
        )
        session.add(reservation)
        session.commit()
    except BookingError as exc:
        session.rollback()
        logger.warning(
            f"Reservation rejected: {exc.message}",
            extra={**log_extra, "error_code": exc.code},
        )
        raise
    except (IntegrityError, OperationalError):
        # unique index hit, or the database gave up waiting at commit
        session.rollback()
        logger.warning("Reservation lost the commit race", extra=log_extra, exc_info=True)
        raise SlotUnavailable()

    session.refresh(reservation)
    logger.info(
        "Reservation confirmed",
        extra={**log_extra, "reservation_id": reservation.id},
    )
    return reservation


def cancel_reservation(
    session: Session,
    actor: dict,
    reservation_id: int,
    now: datetime,
) -> Reservation:
    """
    Cancel a reservation on behalf of `actor` (its customer, or an admin).

    Only confirmed/pending reservations whose start is still after `now` can
    be cancelled. The status flip is one conditional UPDATE, so two racing
    cancels cannot both succeed.
    """
    reservation = session.get(Reservation, reservation_id, populate_existing=True)
    if reservation is None:
        raise ReservationNotFound()

    if reservation.customer_id != actor["id"] and not actor.get("is_admin"):
        raise Forbidden("Only the customer who booked or an admin can cancel")

    if reservation.status == ReservationStatus.cancelled.value:
        raise AlreadyCancelled()
    if reservation.status not in CANCELLABLE_STATUSES:
        raise AlreadyPast("Reservation is already completed")
    if datetime.combine(reservation.date, reservation.start_time) <= now:
        raise AlreadyPast()

    result = session.connection().execute(
        update(Reservation)
        .where(Reservation.id == reservation_id)
        .where(Reservation.status.in_(sorted(CANCELLABLE_STATUSES)))
        .values(status=ReservationStatus.cancelled.value)
    )
    if result.rowcount == 0:
        session.rollback()
        raise AlreadyCancelled()
    session.commit()

    session.refresh(reservation)
    logger.info(
        "Reservation cancelled",
        extra={"reservation_id": reservation.id, "provider_id": reservation.provider_id},
    )
    return reservation


# Listings

def can_cancel(reservation: Reservation, now: datetime) -> bool:
    """Whether cancel_reservation would accept this reservation at `now` (ownership aside)."""
    if reservation.status not in CANCELLABLE_STATUSES:
        return False
    return datetime.combine(reservation.date, reservation.start_time) > now


def describe(reservation: Reservation, now: datetime) -> ReservationDetail:
    """Listing view of a reservation, with the names a person needs to read it."""
    return ReservationDetail(
        **ReservationPublic.model_validate(reservation).model_dump(),
        service=ReservationServiceInfo.model_validate(reservation.service),
        provider_name=reservation.provider.name,
        customer_name=reservation.customer.full_name if reservation.customer else None,
        can_cancel=can_cancel(reservation, now),
    )


def _with_names(stmt):
    return stmt.options(
        selectinload(Reservation.service),
        selectinload(Reservation.provider),
        selectinload(Reservation.customer),
    )


def list_customer_reservations(
    session: Session,
    customer_id: int,
    scope: Optional[ReservationScope] = None,
    today: Optional[date] = None,
) -> List[Reservation]:
    """
    A customer's reservations, soonest first.

    scope=upcoming keeps today-or-later reservations that are not cancelled;
    scope=past keeps earlier days plus every cancelled one. `today` is
    required with a scope.
    """
    stmt = select(Reservation).where(Reservation.customer_id == customer_id)
    if scope is not None:
        if today is None:
            raise ValueError("today is required to filter by scope")
        cancelled = ReservationStatus.cancelled.value
        if scope == ReservationScope.upcoming:
            stmt = stmt.where(Reservation.date >= today).where(Reservation.status != cancelled)
        else:
            stmt = stmt.where(or_(Reservation.date < today, Reservation.status == cancelled))
    stmt = _with_names(stmt).order_by(Reservation.date, Reservation.start_time)
    return list(session.exec(stmt).all())


def list_recent_reservations(session: Session, limit: int = RECENT_LIMIT) -> List[Reservation]:
    stmt = _with_names(
        select(Reservation)
        .order_by(Reservation.date.desc(), Reservation.start_time.desc())
        .limit(limit)
    )
    return list(session.exec(stmt).all())


def list_provider_day(session: Session, provider_id: int, on_date: date) -> List[Reservation]:
    """All of a provider's reservations on a date, cancelled ones included."""
    require_provider(session, provider_id)
    stmt = _with_names(
        select(Reservation)
        .where(Reservation.provider_id == provider_id)
        .where(Reservation.date == on_date)
        .order_by(Reservation.start_time)
    )
    return list(session.exec(stmt).all())


def count_active_on(session: Session, on_date: date) -> int:
    stmt = (
        select(func.count())
        .select_from(Reservation)
        .where(Reservation.date == on_date)
        .where(Reservation.status.in_(sorted(ACTIVE_STATUSES)))
    )
    return session.exec(stmt).one()


def count_all(session: Session) -> int:
    """Every reservation ever made, cancelled ones included."""
    return session.exec(select(func.count()).select_from(Reservation)).one()
