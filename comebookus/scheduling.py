# comebookus/scheduling.py

"""
Scheduling conflict service.

Every booking owns the half-open interval ``[start_time, blocked_until)``,
where ``blocked_until`` is the appointment end plus the service buffer
snapshotted at reservation time. While a booking is PENDING or CONFIRMED no
other holding booking of the same provider may overlap that interval.

Check-then-write paths (reserve, reschedule, status changes) run while
holding the provider's entry in ``ProviderLocks`` and a row lock on the
provider record, so attempts for one provider are applied one at a time
and attempts for different providers do not wait on each other.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from sqlmodel import Session, col, select

from comebookus.core import (
    BookingStatus,
    HOLDING_STATUSES,
    PaymentStatus,
    appointment_end,
    can_transition,
    effective_end,
    overlaps,
    to_utc_naive,
    utcnow,
)
from comebookus.errors import (
    BookingNotFound,
    InvalidInterval,
    InvalidTransition,
    OutsideBookingWindow,
    ProviderNotFound,
    ServiceNotFound,
    SlotTaken,
)
from comebookus.locks import ProviderLocks
from comebookus.models import Booking, Client, Service, User
from comebookus.notifications import BookingNotice, build_notice

logger = logging.getLogger(__name__)


@dataclass
class ClientInfo:
    email: str
    name: Optional[str] = None
    phone: Optional[str] = None


def _checked_interval(start: datetime, end: datetime) -> tuple[datetime, datetime]:
    start, end = to_utc_naive(start), to_utc_naive(end)
    if start >= end:
        raise InvalidInterval()
    return start, end


def check_booking_window(service: Service, start: datetime, now: Optional[datetime] = None) -> None:
    """Reject starts in the past or more than ``max_advance_book`` days ahead."""
    start = to_utc_naive(start)
    now = now or utcnow()
    if start < now:
        raise OutsideBookingWindow("Cannot book an appointment in the past")
    if start > now + timedelta(days=service.max_advance_book):
        raise OutsideBookingWindow(
            f"Bookings open at most {service.max_advance_book} days in advance"
        )


class SchedulingService:
    def __init__(
        self,
        session: Session,
        locks: ProviderLocks,
        notify: Optional[Callable[[BookingNotice], None]] = None,
    ):
        self.session = session
        self.locks = locks
        self.notify = notify

    # -- queries -----------------------------------------------------------

    def get_booking(self, booking_id: int, provider_id: Optional[int] = None) -> Booking:
        booking = self.session.get(Booking, booking_id)
        if booking is None or (provider_id is not None and booking.user_id != provider_id):
            raise BookingNotFound()
        return booking

    def find_by_payment_reference(self, reference: str) -> Optional[Booking]:
        return self.session.exec(
            select(Booking).where(Booking.payment_intent_id == reference)
        ).first()

    def _find_conflict(
        self,
        provider_id: int,
        start: datetime,
        end: datetime,
        exclude_booking_id: Optional[int] = None,
    ) -> Optional[Booking]:
        stmt = (
            select(Booking)
            .where(Booking.user_id == provider_id)
            .where(col(Booking.status).in_(HOLDING_STATUSES))
            .where(Booking.start_time < end)
            .where(Booking.blocked_until > start)
        )
        if exclude_booking_id is not None:
            stmt = stmt.where(Booking.id != exclude_booking_id)
        return self.session.exec(stmt).first()

    def check_availability(
        self,
        provider_id: int,
        start: datetime,
        end: datetime,
        exclude_booking_id: Optional[int] = None,
    ) -> bool:
        """True when ``[start, end)`` overlaps none of the provider's holding bookings."""
        start, end = _checked_interval(start, end)
        if self.session.get(User, provider_id) is None:
            raise ProviderNotFound()
        return self._find_conflict(provider_id, start, end, exclude_booking_id) is None

    def available_starts(
        self,
        service: Service,
        on_date: date,
        day_start,
        day_end,
        slot_minutes: int,
        now: Optional[datetime] = None,
    ) -> list[str]:
        """Start times ("HH:MM") on ``on_date`` where ``service`` fits."""
        work_start = datetime.combine(on_date, day_start)
        work_end = datetime.combine(on_date, day_end)
        buffer_span = timedelta(minutes=service.duration + service.buffer_time)
        now = now or utcnow()

        holding = self.session.exec(
            select(Booking)
            .where(Booking.user_id == service.user_id)
            .where(col(Booking.status).in_(HOLDING_STATUSES))
            .where(Booking.start_time < work_end + buffer_span)
            .where(Booking.blocked_until > work_start)
        ).all()

        available = []
        step = timedelta(minutes=slot_minutes)
        current = work_start
        while appointment_end(current, service.duration) <= work_end:
            blocked_until = effective_end(
                appointment_end(current, service.duration), service.buffer_time
            )
            taken = any(
                overlaps(current, blocked_until, b.start_time, b.blocked_until) for b in holding
            )
            if not taken and current >= now:
                available.append(current.strftime("%H:%M"))
            current += step
        return available

    # -- mutations ---------------------------------------------------------

    def _lock_provider(self, provider_id: int) -> User:
        # row lock for multi-process deployments; a no-op on SQLite
        provider = self.session.exec(
            select(User).where(User.id == provider_id).with_for_update()
        ).first()
        if provider is None:
            raise ProviderNotFound()
        return provider

    def _find_or_create_client(self, provider_id: int, info: ClientInfo) -> Client:
        client = self.session.exec(
            select(Client)
            .where(Client.user_id == provider_id)
            .where(Client.email == info.email)
        ).first()
        if client is None:
            client = Client(user_id=provider_id, email=info.email, name=info.name, phone=info.phone)
            self.session.add(client)
            self.session.flush()
        return client

    def reserve(
        self,
        provider_id: int,
        service_id: int,
        start: datetime,
        client: ClientInfo,
        payment_required: bool = False,
        notes: Optional[str] = None,
    ) -> Booking:
        service = self.session.get(Service, service_id)
        if service is None or not service.is_active or service.user_id != provider_id:
            raise ServiceNotFound()

        start = to_utc_naive(start)
        end = appointment_end(start, service.duration)
        blocked_until = effective_end(end, service.buffer_time)
        start, blocked_until = _checked_interval(start, blocked_until)

        needs_payment = payment_required and service.price > 0

        with self.locks.hold(provider_id):
            try:
                provider = self._lock_provider(provider_id)
                if self._find_conflict(provider_id, start, blocked_until) is not None:
                    logger.info(
                        "Slot %s - %s already taken for provider %s", start, blocked_until, provider_id
                    )
                    raise SlotTaken()

                client_row = self._find_or_create_client(provider_id, client)
                booking = Booking(
                    user_id=provider_id,
                    service_id=service.id,
                    client_id=client_row.id,
                    start_time=start,
                    end_time=end,
                    buffer_minutes=service.buffer_time,
                    blocked_until=blocked_until,
                    status=(BookingStatus.pending if needs_payment else BookingStatus.confirmed).value,
                    payment_status=(PaymentStatus.pending if needs_payment else PaymentStatus.paid).value,
                    total_amount=service.price,
                    client_email=client.email,
                    client_name=client.name,
                    client_phone=client.phone,
                    notes=notes,
                )
                self.session.add(booking)
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise
            self.session.refresh(booking)

        logger.info(
            "Booking %s reserved for provider %s at %s (%s)",
            booking.id, provider_id, booking.start_time, booking.status,
        )
        if booking.status == BookingStatus.confirmed:
            self._emit_confirmed(booking, service, provider)
        return booking

    def update(
        self,
        booking_id: int,
        provider_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        status: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> Booking:
        """Apply a move, a status change and plain field edits in one commit.

        Every part is checked before anything is written, so a rejected
        request leaves the booking as it was. When only ``start`` is given the
        appointment keeps its length.
        """
        booking = self.get_booking(booking_id, provider_id)
        if end is not None and start is None:
            raise InvalidInterval("start_time is required when changing end_time")
        if start is not None:
            start = to_utc_naive(start)
            if end is None:
                end = start + (booking.end_time - booking.start_time)
            start, end = _checked_interval(start, end)
        details = details or {}

        with self.locks.hold(booking.user_id):
            try:
                self._lock_provider(booking.user_id)
                self.session.refresh(booking)
                previous = booking.status

                if status == previous:
                    status = None
                if status is not None and not can_transition(previous, status):
                    raise InvalidTransition(
                        f"Cannot change booking status from {previous} to {status}"
                    )
                if start is not None:
                    if previous not in HOLDING_STATUSES:
                        raise InvalidTransition(f"Cannot reschedule a {previous} booking")
                    blocked_until = effective_end(end, booking.buffer_minutes)
                    if self._find_conflict(booking.user_id, start, blocked_until, booking.id) is not None:
                        raise SlotTaken()

                if start is None and status is None and not details:
                    return booking

                if start is not None:
                    booking.start_time = start
                    booking.end_time = end
                    booking.blocked_until = blocked_until
                    booking.reminder_sent = False
                if status is not None:
                    booking.status = status
                for key, value in details.items():
                    setattr(booking, key, value)
                booking.updated_at = utcnow()
                self.session.add(booking)
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise
            self.session.refresh(booking)

        if start is not None:
            logger.info("Booking %s moved to %s - %s", booking.id, booking.start_time, booking.end_time)
        if status is not None:
            logger.info("Booking %s status %s -> %s", booking.id, previous, booking.status)
        return booking

    def reschedule(
        self,
        booking_id: int,
        start: datetime,
        end: Optional[datetime] = None,
        provider_id: Optional[int] = None,
    ) -> Booking:
        """Move a holding booking; the booking never conflicts with itself."""
        return self.update(booking_id, provider_id, start=start, end=end)

    def confirm_payment(self, booking_id: int) -> Booking:
        """PENDING -> CONFIRMED / PAID. Repeated calls return the booking unchanged."""
        booking = self.get_booking(booking_id)
        transitioned = False

        with self.locks.hold(booking.user_id):
            try:
                self.session.refresh(booking)
                if booking.status == BookingStatus.confirmed:
                    if booking.payment_status == PaymentStatus.paid:
                        logger.info("Payment for booking %s already confirmed", booking.id)
                        return booking
                    booking.payment_status = PaymentStatus.paid.value
                elif booking.status == BookingStatus.pending:
                    booking.status = BookingStatus.confirmed.value
                    booking.payment_status = PaymentStatus.paid.value
                    transitioned = True
                else:
                    raise InvalidTransition(
                        f"Cannot confirm payment for a {booking.status} booking"
                    )
                booking.updated_at = utcnow()
                self.session.add(booking)
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise
            self.session.refresh(booking)

        logger.info("Payment confirmed for booking %s", booking.id)
        if transitioned:
            self._emit_confirmed(booking)
        return booking

    def fail_payment(self, booking_id: int) -> Booking:
        """PENDING -> CANCELLED / FAILED, releasing the slot. Idempotent."""
        booking = self.get_booking(booking_id)

        with self.locks.hold(booking.user_id):
            try:
                self.session.refresh(booking)
                if booking.status == BookingStatus.cancelled:
                    if booking.payment_status == PaymentStatus.failed:
                        logger.info("Payment for booking %s already marked failed", booking.id)
                        return booking
                    booking.payment_status = PaymentStatus.failed.value
                elif booking.status == BookingStatus.pending:
                    booking.status = BookingStatus.cancelled.value
                    booking.payment_status = PaymentStatus.failed.value
                else:
                    raise InvalidTransition(
                        f"Cannot fail payment for a {booking.status} booking"
                    )
                booking.updated_at = utcnow()
                self.session.add(booking)
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise
            self.session.refresh(booking)

        logger.info("Payment failed for booking %s, slot released", booking.id)
        return booking

    def cancel(self, booking_id: int, provider_id: Optional[int] = None) -> Booking:
        booking = self.get_booking(booking_id, provider_id)
        if booking.status == BookingStatus.cancelled:
            raise InvalidTransition("Booking already cancelled")
        return self.update_status(booking_id, BookingStatus.cancelled.value, provider_id)

    def update_status(
        self, booking_id: int, status: str, provider_id: Optional[int] = None
    ) -> Booking:
        return self.update(booking_id, provider_id, status=status)

    def attach_payment_reference(self, booking_id: int, reference: str) -> Booking:
        booking = self.get_booking(booking_id)
        booking.payment_intent_id = reference
        booking.updated_at = utcnow()
        self.session.add(booking)
        self.session.commit()
        self.session.refresh(booking)
        return booking

    # -- notifications -----------------------------------------------------

    def _emit_confirmed(self, booking: Booking, service=None, provider=None) -> None:
        if self.notify is None:
            return
        try:
            service = service or self.session.get(Service, booking.service_id)
            provider = provider or self.session.get(User, booking.user_id)
            self.notify(build_notice(booking, service, provider))
        except Exception:
            logger.exception("Could not queue confirmation for booking %s", booking.id)
