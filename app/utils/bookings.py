import logging
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session, joinedload

from app.core.config import settings
from app.models.hotel_service import HotelService
from app.models.reservation import Reservation, ReservationStatus
from app.models.service_booking import (
    BOOKING_TRANSITIONS,
    STATUS_TIMESTAMPS,
    BookingStatus,
    ServiceBooking,
)
from app.models.service_payment import PaymentStatus, ServicePayment
from app.models.service_time_slot import ServiceTimeSlot
from app.models.user import User
from app.schemas.booking import ServiceBookingCreate
from app.utils.availability import (
    AvailabilityResult,
    RejectionReason,
    booked_at,
    calculate_service_price,
    check_availability,
)
from app.utils.exceptions import (
    BookingRejectedError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ReservationInvalidError,
    ServiceInactiveError,
    SlotUnavailableError,
)
from app.utils.timeslots import (
    create_slot,
    find_slot,
    is_slot_start,
    release_slot_capacity,
    reserve_slot_capacity,
)

logger = logging.getLogger(__name__)

# Statuses that hold capacity on a slot. NO_SHOW keeps its spots: the slot was held.
CAPACITY_HOLDING = (
    BookingStatus.PENDING,
    BookingStatus.CONFIRMED,
    BookingStatus.IN_PROGRESS,
    BookingStatus.COMPLETED,
    BookingStatus.NO_SHOW,
)


def live_bookings(db: Session, service_id, booking_date: date) -> list[ServiceBooking]:
    """Bookings of a service on a day that still consume capacity."""
    return db.query(ServiceBooking).filter(
        ServiceBooking.service_id == service_id,
        ServiceBooking.booking_date == booking_date,
        ServiceBooking.status.in_(CAPACITY_HOLDING),
    ).all()


def get_active_service(db: Session, service_id) -> HotelService:
    service = db.query(HotelService).filter(HotelService.id == service_id).first()
    if not service:
        raise NotFoundError("Service", service_id)
    if not service.is_active:
        raise ServiceInactiveError(service_id)
    return service


def _check_reservation(
    db: Session,
    user: User,
    service: HotelService,
    reservation_id,
    booking_date: date,
) -> Optional[Reservation]:
    if reservation_id is None:
        if service.requires_reservation:
            raise ReservationInvalidError("This service requires an active room reservation")
        return None

    reservation = db.query(Reservation).filter(Reservation.id == reservation_id).first()
    if not reservation:
        raise NotFoundError("Reservation", reservation_id)
    if reservation.user_id != user.id:
        raise PermissionDeniedError("You cannot use this reservation")
    if reservation.status == ReservationStatus.CANCELLED:
        raise ReservationInvalidError("Services cannot be booked on a cancelled reservation")
    if not reservation.covers(booking_date):
        raise ReservationInvalidError("The service date must fall within your stay")
    return reservation


def evaluate_request(
    db: Session,
    service: HotelService,
    booking_date: date,
    booking_time: str,
    participants: int,
    now: Optional[datetime] = None,
) -> tuple[AvailabilityResult, Optional[ServiceTimeSlot], list[ServiceBooking]]:
    """
    Run the admission rules against live data.

    When a generated slot exists its counter is authoritative; otherwise
    spots are counted from the bookings at that time.
    """
    slot = find_slot(db, service.id, booking_date, booking_time)
    existing = live_bookings(db, service.id, booking_date)
    result = check_availability(
        service,
        booking_date,
        booking_time,
        participants,
        existing,
        now=now,
        spots_left=slot.available if slot else None,
    )
    if result.available and slot is not None and not slot.is_available:
        result = AvailabilityResult.reject(
            RejectionReason.SLOT_DISABLED,
            "This time slot is not available",
        )
    if result.available and slot is None and not is_slot_start(service, booking_time):
        result = AvailabilityResult.reject(
            RejectionReason.SLOT_DISABLED,
            f"{booking_time} is not a start time offered by this service",
        )
    return result, slot, existing


def admit_service_booking(
    db: Session,
    user: User,
    data: ServiceBookingCreate,
    now: Optional[datetime] = None,
) -> ServiceBooking:
    """
    Validate and commit a service booking.

    Reserving the spots, inserting the booking and its pending payment
    happen in one transaction. The spots are taken with a guarded UPDATE,
    so a request that validated against a stale count is turned away with
    SlotUnavailableError instead of overbooking the slot.
    """
    service = get_active_service(db, data.service_id)
    reservation = _check_reservation(db, user, service, data.reservation_id, data.booking_date)

    result, slot, existing = evaluate_request(
        db, service, data.booking_date, data.booking_time, data.participants, now=now,
    )
    if not result.available:
        raise BookingRejectedError(result)

    if slot is None:
        # Bookings made before slots existed for this time still hold spots.
        legacy = [b for b in existing if b.time_slot_id is None]
        slot = create_slot(
            db, service, data.booking_date, data.booking_time,
            already_booked=booked_at(legacy, data.booking_time),
        )

    if not reserve_slot_capacity(db, slot.id, data.participants):
        db.rollback()
        db.refresh(slot)
        logger.info(
            "Slot %s filled before booking for user %s could commit (%d requested, %d left).",
            slot.id, user.id, data.participants, slot.available,
        )
        raise SlotUnavailableError(spots_left=max(slot.available, 0))

    total_price = calculate_service_price(service, data.participants)
    booking = ServiceBooking(
        service_id=service.id,
        time_slot_id=slot.id,
        user_id=user.id,
        reservation_id=reservation.id if reservation else None,
        booking_date=data.booking_date,
        booking_time=data.booking_time,
        participants=data.participants,
        total_price=total_price,
        status=BookingStatus.PENDING,
        special_requests=data.special_requests or None,
    )
    db.add(booking)
    db.flush()

    db.add(ServicePayment(
        booking_id=booking.id,
        user_id=user.id,
        amount=total_price,
        currency=settings.PAYMENT_CURRENCY,
        status=PaymentStatus.PENDING,
    ))
    db.commit()

    logger.info(
        "Service booking %s created: service=%s slot=%s participants=%d total=%s",
        booking.id, service.id, slot.id, data.participants, total_price,
    )
    return load_booking(db, booking.id)


def load_booking(db: Session, booking_id) -> Optional[ServiceBooking]:
    """Load a booking with service, payment and guest eager-loaded."""
    return (
        db.query(ServiceBooking)
        .options(
            joinedload(ServiceBooking.service),
            joinedload(ServiceBooking.payment),
            joinedload(ServiceBooking.user),
        )
        .filter(ServiceBooking.id == booking_id)
        .first()
    )


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in BOOKING_TRANSITIONS.get(current, set())


def transition_booking(db: Session, booking: ServiceBooking, target: BookingStatus) -> ServiceBooking:
    """
    Move a booking to `target`, stamping the matching timestamp.

    The status column is only moved while the row still holds one of the
    statuses `target` can be reached from, so when two requests race on the
    same booking exactly one wins; the other gets InvalidTransitionError.

    Cancelling gives the participants back to the slot and voids a pending
    payment. A no-show keeps the spots consumed. The caller commits.
    """
    current = BookingStatus(booking.status)
    if not can_transition(current, target):
        raise InvalidTransitionError(current, target)

    sources = [status for status, targets in BOOKING_TRANSITIONS.items() if target in targets]
    stamp = STATUS_TIMESTAMPS[target]
    result = db.execute(
        update(ServiceBooking)
        .where(ServiceBooking.id == booking.id, ServiceBooking.status.in_(sources))
        .values({"status": target, stamp: datetime.now(timezone.utc)})
        .execution_options(synchronize_session=False)
    )
    db.expire(booking, ["status", stamp])
    if result.rowcount != 1:
        # Another request moved the booking after it was loaded
        raise InvalidTransitionError(BookingStatus(booking.status), target)

    if target == BookingStatus.CANCELLED:
        if booking.time_slot_id:
            release_slot_capacity(db, booking.time_slot_id, booking.participants)
        if booking.payment and booking.payment.status == PaymentStatus.PENDING:
            booking.payment.status = PaymentStatus.CANCELLED
        logger.info(
            "Service booking %s cancelled, %d spot(s) released.",
            booking.id, booking.participants,
        )
    else:
        logger.info("Service booking %s moved %s -> %s.", booking.id, current.value, target.value)
    return booking
