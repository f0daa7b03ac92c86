# comebookus/core.py

from datetime import datetime, timedelta, timezone
from enum import Enum


class BookingStatus(str, Enum):
    pending = "PENDING"
    confirmed = "CONFIRMED"
    cancelled = "CANCELLED"
    completed = "COMPLETED"
    no_show = "NO_SHOW"


class PaymentStatus(str, Enum):
    pending = "PENDING"
    paid = "PAID"
    failed = "FAILED"
    refunded = "REFUNDED"


# statuses that occupy the provider's calendar
HOLDING_STATUSES = (BookingStatus.pending.value, BookingStatus.confirmed.value)

TERMINAL_STATUSES = (
    BookingStatus.cancelled.value,
    BookingStatus.completed.value,
    BookingStatus.no_show.value,
)

# PENDING -> CONFIRMED happens only when the payment is confirmed
ALLOWED_TRANSITIONS = {
    BookingStatus.pending.value: {
        BookingStatus.cancelled.value,
        BookingStatus.no_show.value,
    },
    BookingStatus.confirmed.value: {
        BookingStatus.cancelled.value,
        BookingStatus.completed.value,
        BookingStatus.no_show.value,
    },
}


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, set())


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """Half-open interval overlap: [start_a, end_a) and [start_b, end_b).

    Touching intervals (end_a == start_b) do not overlap.
    """
    return start_a < end_b and end_a > start_b


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value: datetime) -> datetime:
    """Normalize an instant to naive UTC. Naive input is taken as UTC already."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def appointment_end(start: datetime, duration_minutes: int) -> datetime:
    return start + timedelta(minutes=duration_minutes)


def effective_end(end: datetime, buffer_minutes: int) -> datetime:
    """End of the interval that is blocked for conflict checks."""
    return end + timedelta(minutes=buffer_minutes)
