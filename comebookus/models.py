# comebookus/models.py

from typing import Optional
from datetime import datetime

from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import SQLModel, Field

from comebookus.core import BookingStatus, PaymentStatus, utcnow


class User(SQLModel, table=True):
    """A provider: the business whose calendar is protected."""

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    password_hash: str
    name: Optional[str] = None
    phone: Optional[str] = None
    timezone: str = "UTC"

    business_name: Optional[str] = None
    business_address: Optional[str] = None
    business_phone: Optional[str] = None

    booking_page_slug: Optional[str] = Field(default=None, index=True, unique=True)
    booking_page_enabled: bool = True
    booking_page_title: Optional[str] = None
    booking_page_bio: Optional[str] = None

    email_notifications: bool = True
    sms_notifications: bool = False

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)


class Service(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)

    name: str
    description: Optional[str] = None
    duration: int                 # minutes
    price: int                    # minor units (cents)
    color: str = "#3B82F6"
    buffer_time: int = 0          # minutes blocked after the appointment
    max_advance_book: int = 30    # days
    is_active: bool = True

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)


class Client(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("email", "user_id", name="uq_client_email_user"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    email: str
    name: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)


class Booking(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    user_id: int = Field(foreign_key="user.id", index=True)
    service_id: int = Field(foreign_key="service.id", index=True)
    client_id: Optional[int] = Field(default=None, foreign_key="client.id")

    # naive UTC in plain DATETIME columns; end_time is exclusive
    start_time: datetime = Field(index=True, sa_type=DateTime)
    end_time: datetime = Field(sa_type=DateTime)
    # snapshot of the service buffer; blocked_until = end_time + buffer
    buffer_minutes: int = 0
    blocked_until: datetime = Field(index=True, sa_type=DateTime)

    status: str = Field(default=BookingStatus.pending.value, index=True)
    payment_status: str = PaymentStatus.pending.value
    total_amount: int = 0
    payment_intent_id: Optional[str] = Field(default=None, index=True)

    client_email: str
    client_name: Optional[str] = None
    client_phone: Optional[str] = None
    notes: Optional[str] = None

    reminder_sent: bool = False

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
