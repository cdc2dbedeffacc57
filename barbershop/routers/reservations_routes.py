# barbershop/routers/reservations_routes.py

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from barbershop import catalog, reservations
from barbershop.db import get_session
from barbershop.schemas import (
    AdminSummary,
    ReservationCreate,
    ReservationDetail,
    ReservationPublic,
    ReservationScope,
)
from barbershop.auth import get_current_user
from barbershop.deps import get_now, require_admin

router = APIRouter(
    tags=["reservations"],
)


@router.post("/reservations", response_model=ReservationPublic, status_code=201)
def create_reservation(
    body: ReservationCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    # availability is re-derived inside the commit, the client's slot list is not trusted
    return reservations.create_reservation(
        session,
        customer_id=current_user["id"],
        service_id=body.service_id,
        provider_id=body.provider_id,
        on_date=body.date,
        start_time=body.start_time,
        now=now,
    )


@router.get("/reservations/me", response_model=List[ReservationDetail])
def list_my_reservations(
    scope: Optional[ReservationScope] = None,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    """The caller's reservations, soonest first; scope=upcoming|past splits them."""
    mine = reservations.list_customer_reservations(
        session, current_user["id"], scope=scope, today=now.date()
    )
    return [reservations.describe(r, now) for r in mine]


@router.get("/reservations", response_model=List[ReservationDetail])
def list_recent_reservations(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    require_admin(current_user)
    return [reservations.describe(r, now) for r in reservations.list_recent_reservations(session)]


@router.post("/reservations/{reservation_id}/cancel", response_model=ReservationPublic)
def cancel_reservation(
    reservation_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    return reservations.cancel_reservation(session, current_user, reservation_id, now)


@router.get("/admin/summary", response_model=AdminSummary)
def admin_summary(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    require_admin(current_user)
    today = now.date()
    return {
        "date": today,
        "reservations_today": reservations.count_active_on(session, today),
        "total_reservations": reservations.count_all(session),
        "active_services": len(catalog.list_services(session)),
        "active_providers": len(catalog.list_providers(session)),
    }
