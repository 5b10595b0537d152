import logging
import secrets
from uuid import UUID

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session, joinedload

from app.core.config import settings
from app.db.session import get_db
from app.api.deps import get_current_user
from app.models.user import User
from app.models.service_booking import BookingStatus, ServiceBooking
from app.models.service_payment import PaymentStatus, ServicePayment
from app.schemas.payment import ServicePayment as ServicePaymentSchema, PaymentStatusUpdate
from app.utils.bookings import can_transition, transition_booking
from app.utils.exceptions import InvalidTransitionError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments/services", tags=["Payments"])

# Booking status implied by a gateway outcome. PENDING leaves the booking alone.
PAYMENT_BOOKING_STATUS = {
    PaymentStatus.APPROVED: BookingStatus.CONFIRMED,
    PaymentStatus.REJECTED: BookingStatus.CANCELLED,
    PaymentStatus.CANCELLED: BookingStatus.CANCELLED,
    PaymentStatus.REFUNDED: BookingStatus.CANCELLED,
}


@router.get("/{payment_id}", response_model=ServicePaymentSchema)
def get_service_payment(
    payment_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Payment details for a service booking. Only the paying guest can see it."""
    payment = (
        db.query(ServicePayment)
        .options(joinedload(ServicePayment.booking).joinedload(ServiceBooking.service))
        .filter(ServicePayment.id == payment_id)
        .first()
    )
    if not payment:
        raise HTTPException(status_code=404, detail="Payment not found")
    if payment.user_id != current_user.id:
        raise HTTPException(status_code=403, detail="You cannot view this payment")
    return payment


@router.post("/{payment_id}/status", response_model=ServicePaymentSchema)
def record_payment_status(
    payment_id: UUID,
    data: PaymentStatusUpdate,
    db: Session = Depends(get_db),
    x_gateway_secret: str = Header(..., alias="X-Gateway-Secret"),
):
    """
    Record the outcome reported by the payment gateway.

    Charging happens entirely at the gateway; this only stores the resulting
    status and the gateway's payment reference.
    """
    if not secrets.compare_digest(x_gateway_secret.encode(), settings.PAYMENT_GATEWAY_SECRET.encode()):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid gateway secret")

    payment = (
        db.query(ServicePayment)
        .options(joinedload(ServicePayment.booking))
        .filter(ServicePayment.id == payment_id)
        .first()
    )
    if not payment:
        raise HTTPException(status_code=404, detail="Payment not found")

    previous = payment.status
    payment.status = data.status
    if data.gateway_payment_id:
        payment.gateway_payment_id = data.gateway_payment_id

    # Follow the payment outcome on the booking when the state machine allows it
    booking = payment.booking
    target = PAYMENT_BOOKING_STATUS.get(data.status)
    if booking is not None and target is not None and can_transition(booking.status, target):
        try:
            transition_booking(db, booking, target)
        except InvalidTransitionError:
            logger.info(
                "Booking %s changed before payment %s could move it to %s.",
                booking.id, payment.id, target.value,
            )

    db.commit()
    db.refresh(payment)

    logger.info("Payment %s status %s -> %s.", payment.id, previous.value, payment.status.value)
    return payment
