# comebookus/routers/services_routes.py

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, col, select

from comebookus.auth import get_current_user
from comebookus.core import HOLDING_STATUSES, utcnow
from comebookus.db import get_session
from comebookus.models import Booking, Service
from comebookus.schemas import ServiceCreate, ServicePublic, ServiceUpdate

router = APIRouter(
    prefix="/services",
    tags=["services"],
)


def _owned_service(session: Session, service_id: int, user_id: int) -> Service:
    service = session.get(Service, service_id)
    if service is None or service.user_id != user_id:
        raise HTTPException(status_code=404, detail="Service not found")
    return service


@router.get("", response_model=List[ServicePublic])
def list_services(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    return session.exec(
        select(Service)
        .where(Service.user_id == current_user["id"])
        .order_by(Service.name)
    ).all()


@router.post("", response_model=ServicePublic, status_code=201)
def create_service(
    service: ServiceCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    db_service = Service(user_id=current_user["id"], **service.model_dump())
    session.add(db_service)
    session.commit()
    session.refresh(db_service)
    return db_service


@router.get("/{service_id}", response_model=ServicePublic)
def get_service(
    service_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    return _owned_service(session, service_id, current_user["id"])


@router.put("/{service_id}", response_model=ServicePublic)
def update_service(
    service_id: int,
    changes: ServiceUpdate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    # existing bookings keep the duration and buffer they were made with
    service = _owned_service(session, service_id, current_user["id"])
    for key, value in changes.model_dump(exclude_unset=True).items():
        if value is None and key != "description":
            continue
        setattr(service, key, value)

    session.add(service)
    session.commit()
    session.refresh(service)
    return service


@router.delete("/{service_id}")
def delete_service(
    service_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    service = _owned_service(session, service_id, current_user["id"])

    future_booking = session.exec(
        select(Booking)
        .where(Booking.service_id == service_id)
        .where(Booking.start_time >= utcnow())
        .where(col(Booking.status).in_(HOLDING_STATUSES))
    ).first()
    if future_booking is not None:
        raise HTTPException(status_code=400, detail="Cannot delete service with future bookings")

    # past bookings still reference the row, so it is retired instead of removed
    has_history = session.exec(
        select(Booking).where(Booking.service_id == service_id)
    ).first()
    if has_history is not None:
        service.is_active = False
        session.add(service)
    else:
        session.delete(service)
    session.commit()

    return {"message": "Service deleted successfully"}
