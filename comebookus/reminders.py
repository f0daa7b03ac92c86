# comebookus/reminders.py

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlmodel import Session, col, select

from comebookus.core import HOLDING_STATUSES, utcnow
from comebookus.models import Booking, Service, User
from comebookus.notifications import NotificationDispatcher, build_notice

logger = logging.getLogger(__name__)


def send_due_reminders(
    session: Session,
    dispatcher: NotificationDispatcher,
    now: Optional[datetime] = None,
) -> dict:
    """Send reminders for holding bookings that start tomorrow (UTC).

    The reminder flag is set even when the provider has every channel
    disabled, so a booking is considered once.
    """
    now = now or utcnow()
    day_start = datetime.combine((now + timedelta(days=1)).date(), datetime.min.time())
    day_end = day_start + timedelta(days=1)

    due = session.exec(
        select(Booking)
        .where(Booking.start_time >= day_start)
        .where(Booking.start_time < day_end)
        .where(col(Booking.status).in_(HOLDING_STATUSES))
        .where(Booking.reminder_sent == False)  # noqa: E712
        .order_by(Booking.start_time)
    ).all()

    sent = 0
    errors = []
    for booking in due:
        try:
            service = session.get(Service, booking.service_id)
            provider = session.get(User, booking.user_id)
            result = dispatcher.booking_reminder(build_notice(booking, service, provider))

            booking.reminder_sent = True
            session.add(booking)
            session.commit()

            if result["email_sent"] or result["sms_sent"]:
                sent += 1
            else:
                logger.info("Reminder skipped for booking %s, notifications disabled", booking.id)
        except Exception as e:
            session.rollback()
            message = f"Failed to send reminder for booking {booking.id}: {e}"
            logger.exception(message)
            errors.append(message)

    summary = {
        "processed": len(due),
        "sent": sent,
        "errors": len(errors),
        "error_details": errors,
    }
    logger.info("Reminder sweep finished: %s", summary)
    return summary
