# comebookus/notifications.py

"""
Booking notifications (confirmation and reminder) over email and SMS.

Delivery is delegated to a sender object exposing ``send_email`` and
``send_sms``. The default sender only logs the rendered message; production
deployments plug in a provider-backed sender. A failing channel is logged
and reported in the result, it is never raised to the caller.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from comebookus.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingNotice:
    """Snapshot of everything a message needs, detached from the DB session."""

    booking_id: int
    client_name: str
    client_email: str
    client_phone: Optional[str]
    service_name: str
    start_time: datetime
    end_time: datetime
    business_name: str
    business_address: Optional[str]
    total_amount: Optional[int]
    email_enabled: bool
    sms_enabled: bool


def build_notice(booking, service, provider) -> BookingNotice:
    return BookingNotice(
        booking_id=booking.id,
        client_name=booking.client_name or booking.client_email,
        client_email=booking.client_email,
        client_phone=booking.client_phone,
        service_name=service.name if service is not None else "Appointment",
        start_time=booking.start_time,
        end_time=booking.end_time,
        business_name=provider.business_name or provider.name or "Business",
        business_address=provider.business_address,
        total_amount=booking.total_amount,
        email_enabled=provider.email_notifications,
        sms_enabled=provider.sms_notifications,
    )


def _when(value: datetime) -> str:
    return value.strftime("%b %d, %Y at %I:%M %p")


def render_confirmation(notice: BookingNotice) -> tuple[str, str, str]:
    """Return (subject, email body, sms body) for a confirmed booking."""
    subject = f"Booking Confirmation - {notice.service_name}"
    lines = [
        f"Hi {notice.client_name},",
        "",
        f"Your booking has been confirmed with {notice.business_name}.",
        "",
        f"Service: {notice.service_name}",
        f"Date & Time: {_when(notice.start_time)}",
    ]
    if notice.total_amount:
        lines.append(f"Total: ${notice.total_amount / 100:.2f}")
    if notice.business_address:
        lines.append(f"Address: {notice.business_address}")
    lines += ["", "We look forward to seeing you!", f"Best regards, {notice.business_name}"]
    sms = (
        f"Hi {notice.client_name}! Your {notice.service_name} appointment with "
        f"{notice.business_name} is confirmed for {_when(notice.start_time)}. See you then!"
    )
    return subject, "\n".join(lines), sms


def render_reminder(notice: BookingNotice) -> tuple[str, str, str]:
    subject = f"Reminder: {notice.service_name} appointment tomorrow"
    body = "\n".join([
        f"Hi {notice.client_name},",
        "",
        f"This is a friendly reminder about your upcoming appointment with {notice.business_name}.",
        "",
        f"Service: {notice.service_name}",
        f"Date & Time: {_when(notice.start_time)}",
        "",
        "Please let us know if you need to reschedule.",
        f"Best regards, {notice.business_name}",
    ])
    sms = (
        f"Reminder: {notice.client_name}, you have a {notice.service_name} appointment with "
        f"{notice.business_name} tomorrow at {notice.start_time.strftime('%I:%M %p')}."
    )
    return subject, body, sms


class LoggingSender:
    def send_email(self, from_address: str, to: str, subject: str, body: str) -> None:
        logger.info("Email from %s to %s: %s", from_address, to, subject)

    def send_sms(self, to: str, body: str) -> None:
        logger.info("SMS to %s: %s", to, body)


class NotificationDispatcher:
    def __init__(self, sender=None, from_address: str = settings.email_from_address):
        self.sender = sender or LoggingSender()
        self.from_address = from_address

    def booking_confirmed(self, notice: BookingNotice) -> dict:
        return self._deliver("confirmation", notice, *render_confirmation(notice))

    def booking_reminder(self, notice: BookingNotice) -> dict:
        return self._deliver("reminder", notice, *render_reminder(notice))

    def _deliver(self, kind: str, notice: BookingNotice, subject: str, body: str, sms: str) -> dict:
        result = {"email_sent": False, "sms_sent": False}

        if notice.email_enabled:
            try:
                self.sender.send_email(self.from_address, notice.client_email, subject, body)
                result["email_sent"] = True
            except Exception:
                logger.exception(
                    "Failed to send %s email for booking %s", kind, notice.booking_id
                )

        if notice.sms_enabled and notice.client_phone:
            try:
                self.sender.send_sms(notice.client_phone, sms)
                result["sms_sent"] = True
            except Exception:
                logger.exception(
                    "Failed to send %s SMS for booking %s", kind, notice.booking_id
                )

        return result
