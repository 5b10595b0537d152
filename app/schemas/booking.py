from typing import Optional, List
from decimal import Decimal
from datetime import date, datetime

from pydantic import BaseModel, Field, UUID4, field_validator

from app.models.service_booking import BookingStatus
from app.models.service_payment import PaymentStatus
from app.schemas.common import normalize_hhmm
from app.schemas.service import HotelServiceSummary
from app.schemas.user import UserSummary


# Availability check (POST /services/{id}/check-availability)
class AvailabilityCheck(BaseModel):
    booking_date: date
    booking_time: str
    participants: int = Field(ge=1)

    @field_validator("booking_time")
    @classmethod
    def check_time(cls, v):
        return normalize_hhmm(v)


class AvailabilityResponse(BaseModel):
    available: bool
    message: Optional[str] = None
    reason: Optional[str] = None
    spots_left: Optional[int] = None
    total_price: Optional[Decimal] = None


# Service booking — Create (POST /services/book)
class ServiceBookingCreate(AvailabilityCheck):
    service_id: UUID4
    reservation_id: Optional[UUID4] = None
    special_requests: Optional[str] = None

    @field_validator("reservation_id", mode="before")
    @classmethod
    def parse_empty_str_to_none(cls, v):
        if v == "":
            return None
        return v


class ServiceBookingPayment(BaseModel):
    id: UUID4
    amount: Decimal
    currency: str
    status: PaymentStatus

    class Config:
        from_attributes = True


# Service booking — Full response
class ServiceBooking(BaseModel):
    id: UUID4
    service_id: UUID4
    time_slot_id: Optional[UUID4] = None
    reservation_id: Optional[UUID4] = None
    booking_date: date
    booking_time: str
    participants: int
    total_price: Decimal
    status: BookingStatus
    special_requests: Optional[str] = None
    created_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    no_show_at: Optional[datetime] = None
    service: Optional[HotelServiceSummary] = None
    payment: Optional[ServiceBookingPayment] = None

    class Config:
        from_attributes = True


# Service booking — Admin view (includes guest and staff notes)
class AdminServiceBooking(ServiceBooking):
    staff_notes: Optional[str] = None
    user: Optional[UserSummary] = None

    class Config:
        from_attributes = True


# Service booking — Admin status change (PATCH /admin/service-bookings/{id})
class ServiceBookingUpdate(BaseModel):
    status: Optional[BookingStatus] = None
    staff_notes: Optional[str] = None


class BookingCancelResponse(BaseModel):
    id: UUID4
    status: BookingStatus
    cancelled_at: datetime
