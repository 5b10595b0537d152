from typing import Optional
from decimal import Decimal
from datetime import datetime

from pydantic import BaseModel, UUID4

from app.models.service_payment import PaymentStatus
from app.schemas.booking import ServiceBooking


class ServicePayment(BaseModel):
    id: UUID4
    booking_id: UUID4
    amount: Decimal
    currency: str
    status: PaymentStatus
    gateway_payment_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    booking: Optional[ServiceBooking] = None

    class Config:
        from_attributes = True


# Gateway notification (POST /payments/services/{id}/status)
class PaymentStatusUpdate(BaseModel):
    status: PaymentStatus
    gateway_payment_id: Optional[str] = None
