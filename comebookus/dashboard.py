# comebookus/dashboard.py

"""Provider dashboard figures.

Months and weeks are calendar periods in UTC; weeks start on Monday.
Booking counts and revenue only include CONFIRMED and COMPLETED bookings,
and revenue only counts paid ones.
"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func
from sqlmodel import Session, col, select

from comebookus.core import BookingStatus, HOLDING_STATUSES, PaymentStatus, utcnow
from comebookus.models import Booking, Service

COUNTED_STATUSES = (BookingStatus.confirmed.value, BookingStatus.completed.value)
LIST_LIMIT = 5


def _month_start(moment: datetime) -> datetime:
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _week_end(moment: datetime) -> datetime:
    monday = (moment - timedelta(days=moment.weekday())).replace(
        hour=0, minute=0, second=0, microsecond=0
    )
    return monday + timedelta(days=7)


def _growth(current: int, previous: int) -> float:
    if previous > 0:
        return round((current - previous) / previous * 100, 2)
    return 100.0 if current > 0 else 0.0


def _totals(session: Session, provider_id: int, start: datetime, end: datetime) -> dict:
    in_period = (
        (Booking.user_id == provider_id)
        & (Booking.start_time >= start)
        & (Booking.start_time < end)
        & col(Booking.status).in_(COUNTED_STATUSES)
    )
    bookings = session.exec(select(func.count(Booking.id)).where(in_period)).one()
    revenue = session.exec(
        select(func.coalesce(func.sum(Booking.total_amount), 0))
        .where(in_period)
        .where(Booking.payment_status == PaymentStatus.paid.value)
    ).one()
    return {"bookings": bookings, "revenue": revenue}


def dashboard_stats(session: Session, provider_id: int, now: Optional[datetime] = None) -> dict:
    now = now or utcnow()
    this_start = _month_start(now)
    next_start = _month_start(this_start + timedelta(days=32))
    last_start = _month_start(this_start - timedelta(days=1))

    this_month = _totals(session, provider_id, this_start, next_start)
    last_month = _totals(session, provider_id, last_start, this_start)

    upcoming = session.exec(
        select(Booking)
        .where(Booking.user_id == provider_id)
        .where(col(Booking.status).in_(HOLDING_STATUSES))
        .where(Booking.start_time >= now)
        .where(Booking.start_time < _week_end(now))
        .order_by(Booking.start_time)
        .limit(LIST_LIMIT)
    ).all()

    recent = session.exec(
        select(Booking)
        .where(Booking.user_id == provider_id)
        .order_by(col(Booking.created_at).desc(), col(Booking.id).desc())
        .limit(LIST_LIMIT)
    ).all()

    performance = session.exec(
        select(
            Service.name,
            func.count(Booking.id),
            func.coalesce(func.sum(Booking.total_amount), 0),
        )
        .select_from(Booking)
        .join(Service, Service.id == Booking.service_id)
        .where(Booking.user_id == provider_id)
        .where(Booking.start_time >= this_start)
        .where(Booking.start_time < next_start)
        .where(col(Booking.status).in_(COUNTED_STATUSES))
        .group_by(Service.id, Service.name)
        .order_by(Service.name)
    ).all()

    return {
        "this_month": this_month,
        "last_month": last_month,
        "growth": {
            "bookings": _growth(this_month["bookings"], last_month["bookings"]),
            "revenue": _growth(this_month["revenue"], last_month["revenue"]),
        },
        "upcoming_bookings": upcoming,
        "recent_bookings": recent,
        "service_performance": [
            {"service_name": name, "bookings": count, "revenue": revenue}
            for name, count, revenue in performance
        ],
    }
