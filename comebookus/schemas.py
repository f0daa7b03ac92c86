# comebookus/schemas.py

from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime, date
from typing import List, Optional

from comebookus.core import BookingStatus, PaymentStatus

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"
COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserCreate(BaseModel):
    email: str = Field(pattern=EMAIL_PATTERN)
    password: str = Field(min_length=8, max_length=72)
    name: Optional[str] = Field(default=None, max_length=100)
    business_name: Optional[str] = Field(default=None, max_length=100)
    business_address: Optional[str] = None
    booking_page_slug: Optional[str] = Field(default=None, pattern=SLUG_PATTERN, max_length=60)


class UserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = None
    timezone: Optional[str] = None
    business_name: Optional[str] = Field(default=None, max_length=100)
    business_address: Optional[str] = None
    business_phone: Optional[str] = None
    booking_page_slug: Optional[str] = Field(default=None, pattern=SLUG_PATTERN, max_length=60)
    booking_page_enabled: Optional[bool] = None
    booking_page_title: Optional[str] = None
    booking_page_bio: Optional[str] = None
    email_notifications: Optional[bool] = None
    sms_notifications: Optional[bool] = None


class UserPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: Optional[str] = None
    timezone: str
    business_name: Optional[str] = None
    business_address: Optional[str] = None
    booking_page_slug: Optional[str] = None
    booking_page_enabled: bool
    email_notifications: bool
    sms_notifications: bool


class ServiceCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    duration: int = Field(ge=15, le=480)         # minutes
    price: int = Field(ge=0, le=100000)          # cents
    color: str = Field(default="#3B82F6", pattern=COLOR_PATTERN)
    buffer_time: int = Field(default=0, ge=0, le=240)
    max_advance_book: int = Field(default=30, ge=1, le=365)


class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    duration: Optional[int] = Field(default=None, ge=15, le=480)
    price: Optional[int] = Field(default=None, ge=0, le=100000)
    color: Optional[str] = Field(default=None, pattern=COLOR_PATTERN)
    buffer_time: Optional[int] = Field(default=None, ge=0, le=240)
    max_advance_book: Optional[int] = Field(default=None, ge=1, le=365)
    is_active: Optional[bool] = None


class ServicePublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    duration: int
    price: int
    color: str
    buffer_time: int
    max_advance_book: int
    is_active: bool


class ClientCreate(BaseModel):
    email: str = Field(pattern=EMAIL_PATTERN)
    name: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=500)


class ClientPublic(BaseModel):
    id: int
    email: str
    name: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None
    total_bookings: int = 0
    total_spent: int = 0
    last_booking: Optional[datetime] = None
    created_at: datetime


class BookingCreate(BaseModel):
    service_id: int
    start_time: datetime
    client_email: str = Field(pattern=EMAIL_PATTERN)
    client_name: Optional[str] = Field(default=None, max_length=100)
    client_phone: Optional[str] = Field(default=None, max_length=30)
    notes: Optional[str] = Field(default=None, max_length=1000)
    requires_payment: bool = False


class BookingUpdate(BaseModel):
    status: Optional[BookingStatus] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
    client_name: Optional[str] = Field(default=None, max_length=100)
    client_phone: Optional[str] = Field(default=None, max_length=30)


class BookingPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    service_id: int
    client_id: Optional[int] = None
    start_time: datetime
    end_time: datetime
    status: BookingStatus
    payment_status: PaymentStatus
    total_amount: int
    payment_intent_id: Optional[str] = None
    client_email: str
    client_name: Optional[str] = None
    client_phone: Optional[str] = None
    notes: Optional[str] = None
    reminder_sent: bool
    created_at: datetime


class PaymentIntentPublic(BaseModel):
    id: str
    client_secret: Optional[str] = None


class BookingCreated(BaseModel):
    booking: BookingPublic
    payment_intent: Optional[PaymentIntentPublic] = None


class ClientUpdate(BaseModel):
    email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN)
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=30)
    notes: Optional[str] = Field(default=None, max_length=500)


class ClientDetail(ClientPublic):
    bookings: List[BookingPublic] = []


class PaymentEventObject(BaseModel):
    id: str


class PaymentEventData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    payment_object: PaymentEventObject = Field(alias="object")


class PaymentEvent(BaseModel):
    type: str
    data: PaymentEventData


class PublicServicePublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    duration: int
    price: int
    color: str
    max_advance_book: int


class PublicPage(BaseModel):
    id: int
    name: Optional[str] = None
    business_name: Optional[str] = None
    business_address: Optional[str] = None
    business_phone: Optional[str] = None
    booking_page_title: Optional[str] = None
    booking_page_bio: Optional[str] = None
    timezone: str
    services: List[PublicServicePublic]


class AvailabilityResponse(BaseModel):
    service_id: int
    date: date
    available_starts: List[str]


class ReminderSummary(BaseModel):
    processed: int
    sent: int
    errors: int
    error_details: List[str] = []


class PeriodTotals(BaseModel):
    bookings: int
    revenue: int


class Growth(BaseModel):
    bookings: float
    revenue: float


class ServicePerformance(BaseModel):
    service_name: str
    bookings: int
    revenue: int


class DashboardStats(BaseModel):
    this_month: PeriodTotals
    last_month: PeriodTotals
    growth: Growth
    upcoming_bookings: List[BookingPublic]
    recent_bookings: List[BookingPublic]
    service_performance: List[ServicePerformance]
