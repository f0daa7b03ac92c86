# comebookus/routers/bookings_routes.py

import logging
from datetime import datetime
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from comebookus.auth import get_current_user
from comebookus.core import BookingStatus, to_utc_naive
from comebookus.db import get_session
from comebookus.deps import get_payment_gateway, get_scheduler
from comebookus.errors import ServiceNotFound
from comebookus.models import Booking, Service
from comebookus.payments import PaymentError, StripeGateway
from comebookus.scheduling import ClientInfo, SchedulingService, check_booking_window
from comebookus.schemas import BookingCreate, BookingCreated, BookingPublic, BookingUpdate

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/bookings",
    tags=["bookings"],
)


@router.post("", response_model=BookingCreated, status_code=201)
def create_booking(
    body: BookingCreate,
    session: Session = Depends(get_session),
    scheduler: SchedulingService = Depends(get_scheduler),
    gateway: StripeGateway = Depends(get_payment_gateway),
):
    # 1) Validate service (public endpoint: the provider comes from the service)
    service = session.get(Service, body.service_id)
    if service is None:
        raise ServiceNotFound()

    # 2) Prevent booking in the past or beyond the service's advance window
    start = to_utc_naive(body.start_time)
    check_booking_window(service, start)

    # 3) Reserve the slot (atomic per provider)
    booking = scheduler.reserve(
        service.user_id,
        service.id,
        start,
        ClientInfo(email=body.client_email, name=body.client_name, phone=body.client_phone),
        payment_required=body.requires_payment,
        notes=body.notes,
    )

    # 4) Payment intent for bookings waiting on payment
    payment_intent = None
    if booking.status == BookingStatus.pending:
        try:
            intent = gateway.create_payment_intent(
                booking.total_amount,
                {
                    "booking_id": booking.id,
                    "service_id": service.id,
                    "client_email": body.client_email,
                },
            )
        except (PaymentError, ValueError) as e:
            logger.error("Releasing booking %s, payment intent failed: %s", booking.id, e)
            scheduler.fail_payment(booking.id)
            raise HTTPException(status_code=502, detail="Payment could not be initiated")

        booking = scheduler.attach_payment_reference(booking.id, intent.id)
        payment_intent = {"id": intent.id, "client_secret": intent.client_secret}

    return {"booking": booking, "payment_intent": payment_intent}


@router.get("", response_model=List[BookingPublic])
def list_bookings(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    status: Optional[BookingStatus] = None,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    stmt = select(Booking).where(Booking.user_id == current_user["id"])

    if start_date is not None:
        stmt = stmt.where(Booking.start_time >= to_utc_naive(start_date))
    if end_date is not None:
        stmt = stmt.where(Booking.start_time <= to_utc_naive(end_date))
    if status is not None:
        stmt = stmt.where(Booking.status == status.value)

    stmt = stmt.order_by(Booking.start_time)
    return session.exec(stmt).all()


@router.get("/{booking_id}", response_model=BookingPublic)
def get_booking(
    booking_id: int,
    scheduler: SchedulingService = Depends(get_scheduler),
    current_user: dict = Depends(get_current_user),
):
    return scheduler.get_booking(booking_id, current_user["id"])


@router.put("/{booking_id}", response_model=BookingPublic)
def update_booking(
    booking_id: int,
    changes: BookingUpdate,
    session: Session = Depends(get_session),
    scheduler: SchedulingService = Depends(get_scheduler),
    current_user: dict = Depends(get_current_user),
):
    provider_id = current_user["id"]

    # 1) A new start must respect the service's booking window
    if changes.start_time is not None:
        booking = scheduler.get_booking(booking_id, provider_id)
        check_booking_window(session.get(Service, booking.service_id), changes.start_time)

    # 2) Move, status change and plain fields are saved together or not at all
    return scheduler.update(
        booking_id,
        provider_id,
        start=changes.start_time,
        end=changes.end_time,
        status=changes.status.value if changes.status is not None else None,
        details=changes.model_dump(include={"notes", "client_name", "client_phone"}, exclude_unset=True),
    )


@router.delete("/{booking_id}", response_model=BookingPublic)
def cancel_booking(
    booking_id: int,
    scheduler: SchedulingService = Depends(get_scheduler),
    current_user: dict = Depends(get_current_user),
):
    # soft cancel: the record stays, the slot is released
    return scheduler.cancel(booking_id, current_user["id"])
