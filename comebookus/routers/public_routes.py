# comebookus/routers/public_routes.py

from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from comebookus.config import settings
from comebookus.db import get_session
from comebookus.deps import get_scheduler
from comebookus.models import Service, User
from comebookus.scheduling import SchedulingService
from comebookus.schemas import AvailabilityResponse, PublicPage

router = APIRouter(
    prefix="/public",
    tags=["public"],
)


def _published_provider(session: Session, slug: str) -> User:
    provider = session.exec(
        select(User).where(User.booking_page_slug == slug)
    ).first()
    if provider is None or not provider.booking_page_enabled:
        raise HTTPException(status_code=404, detail="Booking page not found")
    return provider


@router.get("/{slug}", response_model=PublicPage)
def public_page(
    slug: str,
    session: Session = Depends(get_session),
):
    provider = _published_provider(session, slug)
    services = session.exec(
        select(Service)
        .where(Service.user_id == provider.id)
        .where(Service.is_active == True)  # noqa: E712
        .order_by(Service.name)
    ).all()

    return {
        "id": provider.id,
        "name": provider.name,
        "business_name": provider.business_name,
        "business_address": provider.business_address,
        "business_phone": provider.business_phone,
        "booking_page_title": provider.booking_page_title,
        "booking_page_bio": provider.booking_page_bio,
        "timezone": provider.timezone,
        "services": services,
    }


@router.get("/{slug}/availability", response_model=AvailabilityResponse)
def public_availability(
    slug: str,
    service_id: int,
    date: date,
    session: Session = Depends(get_session),
    scheduler: SchedulingService = Depends(get_scheduler),
):
    # 1) Lookup provider and the requested service
    provider = _published_provider(session, slug)
    service = session.get(Service, service_id)
    if service is None or service.user_id != provider.id or not service.is_active:
        raise HTTPException(status_code=404, detail="Service not found")

    # 2) Walk the business day on the slot grid, subtracting held bookings
    starts = scheduler.available_starts(
        service,
        date,
        settings.business_day_start,
        settings.business_day_end,
        settings.slot_minutes,
    )
    return {"service_id": service.id, "date": date, "available_starts": starts}
