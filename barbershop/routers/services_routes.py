# barbershop/routers/services_routes.py

from typing import List

from fastapi import APIRouter, Depends
from sqlmodel import Session

from barbershop import catalog
from barbershop.db import get_session
from barbershop.schemas import ServiceCreate, ServicePublic, ServiceUpdate
from barbershop.auth import get_current_user
from barbershop.deps import require_admin

router = APIRouter(
    prefix="/services",
    tags=["services"],
)


@router.get("", response_model=List[ServicePublic])
def list_services(session: Session = Depends(get_session)):
    """Active services, cheapest first."""
    return catalog.list_services(session)


@router.get("/all", response_model=List[ServicePublic])
def list_all_services(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_admin(current_user)
    return catalog.list_services(session, include_inactive=True)


@router.get("/{service_id}", response_model=ServicePublic)
def get_service(service_id: int, session: Session = Depends(get_session)):
    return catalog.require_service(session, service_id)


@router.post("", response_model=ServicePublic, status_code=201)
def create_service(
    service: ServiceCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_admin(current_user)
    return catalog.create_service(session, service)


@router.patch("/{service_id}", response_model=ServicePublic)
def update_service(
    service_id: int,
    changes: ServiceUpdate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_admin(current_user)
    return catalog.update_service(session, service_id, changes)


@router.delete("/{service_id}", response_model=ServicePublic)
def deactivate_service(
    service_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    # soft delete: reservations keep pointing at it
    require_admin(current_user)
    return catalog.deactivate_service(session, service_id)
