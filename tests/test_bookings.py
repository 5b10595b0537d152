from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker

import app.utils.bookings as bookings_module
from app.db.base import Base
from app.models.hotel_service import HotelService
from app.models.reservation import Reservation, ReservationStatus
from app.models.service_booking import BookingStatus, ServiceBooking
from app.models.service_payment import PaymentStatus
from app.models.service_time_slot import ServiceTimeSlot
from app.models.user import User, UserRole
from app.schemas.booking import ServiceBookingCreate
from app.utils.availability import RejectionReason
from app.utils.bookings import admit_service_booking, can_transition, transition_booking
from app.utils.exceptions import (
    BookingRejectedError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ReservationInvalidError,
    ServiceInactiveError,
    SlotUnavailableError,
)
from app.utils.timeslots import persist_generated_slots

from conftest import MONDAY, TUESDAY, service_config


def request(service, reservation=None, **overrides) -> ServiceBookingCreate:
    fields = {
        "service_id": service.id,
        "reservation_id": reservation.id if reservation else None,
        "booking_date": MONDAY,
        "booking_time": "09:00",
        "participants": 2,
    }
    fields.update(overrides)
    return ServiceBookingCreate(**fields)


def slot_at(db, service, time="09:00") -> ServiceTimeSlot:
    return db.query(ServiceTimeSlot).filter(
        ServiceTimeSlot.service_id == service.id,
        ServiceTimeSlot.start_time == time,
    ).one()


# =============================================================================
# Admission
# =============================================================================

def test_admission_creates_booking_payment_and_consumes_slot(db, service, guest, reservation):
    persist_generated_slots(db, service, MONDAY, MONDAY)

    booking = admit_service_booking(db, guest, request(service, reservation, participants=3))

    assert booking.status == BookingStatus.PENDING
    assert booking.total_price == Decimal("300.00")
    assert booking.payment.status == PaymentStatus.PENDING
    assert booking.payment.amount == Decimal("300.00")
    assert booking.payment.currency == "ARS"
    slot = slot_at(db, service)
    assert booking.time_slot_id == slot.id
    assert slot.booked == 3


def test_admission_creates_missing_slot_on_demand(db, service, guest, reservation):
    booking = admit_service_booking(db, guest, request(service, reservation, booking_time="10:00"))

    slot = slot_at(db, service, "10:00")
    assert booking.time_slot_id == slot.id
    assert slot.end_time == "11:00"
    assert slot.booked == 2


def test_on_demand_slot_counts_bookings_made_without_slot(db, service, guest, reservation):
    db.add(ServiceBooking(
        service_id=service.id, user_id=guest.id, reservation_id=reservation.id,
        booking_date=MONDAY, booking_time="09:00", participants=7,
        total_price=Decimal("700.00"), status=BookingStatus.CONFIRMED,
    ))
    db.commit()

    admit_service_booking(db, guest, request(service, reservation, participants=3))
    assert slot_at(db, service).booked == 10

    with pytest.raises(BookingRejectedError) as exc:
        admit_service_booking(db, guest, request(service, reservation, participants=1))
    assert exc.value.result.reason == RejectionReason.INSUFFICIENT_SPOTS
    assert exc.value.result.spots_left == 0


def test_admission_uses_slot_capacity_when_slot_exists(db, service, guest, reservation):
    persist_generated_slots(db, service, MONDAY, MONDAY)
    slot = slot_at(db, service)
    slot.capacity = 4
    db.commit()

    with pytest.raises(BookingRejectedError) as exc:
        admit_service_booking(db, guest, request(service, reservation, participants=5))
    assert exc.value.result.spots_left == 4


def test_admission_rejects_off_grid_time(db, service, guest, reservation):
    with pytest.raises(BookingRejectedError) as exc:
        admit_service_booking(db, guest, request(service, reservation, booking_time="09:30"))
    assert exc.value.result.reason == RejectionReason.SLOT_DISABLED
    assert db.query(ServiceTimeSlot).count() == 0


def test_admission_rejects_disabled_slot(db, service, guest, reservation):
    persist_generated_slots(db, service, MONDAY, MONDAY)
    slot_at(db, service).is_available = False
    db.commit()

    with pytest.raises(BookingRejectedError) as exc:
        admit_service_booking(db, guest, request(service, reservation))
    assert exc.value.result.reason == RejectionReason.SLOT_DISABLED


def test_admission_rule_failures(db, service, guest, reservation):
    with pytest.raises(BookingRejectedError) as exc:
        admit_service_booking(db, guest, request(service, reservation, booking_date=TUESDAY))
    assert exc.value.result.reason == RejectionReason.WEEKDAY_UNAVAILABLE

    with pytest.raises(BookingRejectedError) as exc:
        admit_service_booking(db, guest, request(service, reservation, participants=11))
    assert exc.value.result.reason == RejectionReason.ABOVE_MAX_PARTICIPANTS

    assert db.query(ServiceBooking).count() == 0


def test_admission_lost_race_is_retryable_and_leaves_no_booking(db, service, guest, reservation, monkeypatch):
    persist_generated_slots(db, service, MONDAY, MONDAY)
    slot = slot_at(db, service)
    slot.booked = 7
    db.commit()

    real_reserve = bookings_module.reserve_slot_capacity

    def racing_reserve(session, slot_id, participants):
        # A competing request commits 2 spots between validation and reservation
        session.execute(text("UPDATE service_time_slots SET booked = booked + 2"))
        session.commit()
        return real_reserve(session, slot_id, participants)

    monkeypatch.setattr(bookings_module, "reserve_slot_capacity", racing_reserve)

    with pytest.raises(SlotUnavailableError) as exc:
        admit_service_booking(db, guest, request(service, reservation, participants=3))

    assert exc.value.status_code == 409
    assert exc.value.details["retryable"] is True
    assert exc.value.result.spots_left == 1
    assert db.query(ServiceBooking).count() == 0
    assert slot_at(db, service).booked == 9


def test_admission_unknown_or_inactive_service(db, make_service, guest, reservation):
    inactive = make_service(is_active=False)

    with pytest.raises(ServiceInactiveError):
        admit_service_booking(db, guest, request(inactive, reservation))

    missing = request(inactive, reservation)
    missing.service_id = reservation.id
    with pytest.raises(NotFoundError):
        admit_service_booking(db, guest, missing)


def test_admission_reservation_rules(db, service, guest, other_guest, reservation):
    with pytest.raises(ReservationInvalidError):
        admit_service_booking(db, guest, request(service, None))

    with pytest.raises(PermissionDeniedError):
        admit_service_booking(db, other_guest, request(service, reservation))

    outside = request(service, reservation, booking_date=date(2030, 1, 14))
    with pytest.raises(ReservationInvalidError):
        admit_service_booking(db, guest, outside)

    reservation.status = ReservationStatus.CANCELLED
    db.commit()
    with pytest.raises(ReservationInvalidError):
        admit_service_booking(db, guest, request(service, reservation))


def test_admission_without_reservation_when_not_required(db, make_service, guest):
    service = make_service(requires_reservation=False, price=Decimal("80.00"), price_per_person=False)

    booking = admit_service_booking(db, guest, request(service, None, participants=4))

    assert booking.reservation_id is None
    assert booking.total_price == Decimal("80.00")


def test_checkout_day_is_outside_the_stay(db, make_service, guest):
    service = make_service(available_days=["MONDAY", "SATURDAY"])
    stay = Reservation(
        user_id=guest.id, check_in=date(2030, 1, 5), check_out=date(2030, 1, 7),
        status=ReservationStatus.CONFIRMED,
    )
    db.add(stay)
    db.commit()

    assert admit_service_booking(db, guest, request(service, stay, booking_date=date(2030, 1, 5)))
    with pytest.raises(ReservationInvalidError):
        admit_service_booking(db, guest, request(service, stay, booking_date=MONDAY))


# =============================================================================
# State machine
# =============================================================================

@pytest.mark.parametrize("current,target,allowed", [
    (BookingStatus.PENDING, BookingStatus.CONFIRMED, True),
    (BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS, True),
    (BookingStatus.IN_PROGRESS, BookingStatus.COMPLETED, True),
    (BookingStatus.PENDING, BookingStatus.CANCELLED, True),
    (BookingStatus.CONFIRMED, BookingStatus.NO_SHOW, True),
    (BookingStatus.PENDING, BookingStatus.IN_PROGRESS, False),
    (BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED, False),
    (BookingStatus.COMPLETED, BookingStatus.CANCELLED, False),
    (BookingStatus.CANCELLED, BookingStatus.CONFIRMED, False),
    (BookingStatus.CANCELLED, BookingStatus.CANCELLED, False),
    (BookingStatus.NO_SHOW, BookingStatus.CONFIRMED, False),
])
def test_can_transition(current, target, allowed):
    assert can_transition(current, target) is allowed


def test_cancel_releases_spots_and_voids_payment(db, service, guest, reservation):
    booking = admit_service_booking(db, guest, request(service, reservation, participants=4))

    transition_booking(db, booking, BookingStatus.CANCELLED)
    db.commit()

    assert booking.status == BookingStatus.CANCELLED
    assert booking.cancelled_at is not None
    assert booking.payment.status == PaymentStatus.CANCELLED
    assert slot_at(db, service).booked == 0


def test_no_show_keeps_spots(db, service, guest, reservation):
    booking = admit_service_booking(db, guest, request(service, reservation, participants=4))

    transition_booking(db, booking, BookingStatus.CONFIRMED)
    transition_booking(db, booking, BookingStatus.NO_SHOW)
    db.commit()

    assert booking.confirmed_at is not None
    assert booking.no_show_at is not None
    assert slot_at(db, service).booked == 4


def test_full_lifecycle_and_terminal_state(db, service, guest, reservation):
    booking = admit_service_booking(db, guest, request(service, reservation))

    for status in (BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS, BookingStatus.COMPLETED):
        transition_booking(db, booking, status)
    db.commit()

    assert booking.started_at is not None
    assert booking.completed_at is not None
    with pytest.raises(InvalidTransitionError):
        transition_booking(db, booking, BookingStatus.CANCELLED)
    assert slot_at(db, service).booked == 2


def test_same_status_is_not_a_transition(db, service, guest, reservation):
    booking = admit_service_booking(db, guest, request(service, reservation))

    with pytest.raises(InvalidTransitionError):
        transition_booking(db, booking, BookingStatus.PENDING)


def test_concurrent_cancellations_release_spots_once(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'cancel.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine, autocommit=False, autoflush=False)

    with Session() as setup:
        guest = User(email="guest@example.com", password_hash="x", full_name="Guest", role=UserRole.GUEST)
        service = HotelService(**service_config(requires_reservation=False))
        setup.add_all([guest, service])
        setup.commit()
        cancelled = admit_service_booking(setup, guest, request(service, participants=3))
        admit_service_booking(setup, guest, request(service, participants=2))
        booking_id, slot_id = cancelled.id, cancelled.time_slot_id

    # Both sides load the booking while it is still PENDING
    by_guest, by_gateway = Session(), Session()
    try:
        guest_copy = by_guest.get(ServiceBooking, booking_id)
        gateway_copy = by_gateway.get(ServiceBooking, booking_id)
        assert guest_copy.status == gateway_copy.status == BookingStatus.PENDING

        transition_booking(by_guest, guest_copy, BookingStatus.CANCELLED)
        by_guest.commit()

        with pytest.raises(InvalidTransitionError) as exc:
            transition_booking(by_gateway, gateway_copy, BookingStatus.CANCELLED)
        by_gateway.rollback()
        assert exc.value.status_code == 409
        assert exc.value.details["current"] == "CANCELLED"
    finally:
        by_guest.close()
        by_gateway.close()

    with Session() as check:
        assert check.get(ServiceTimeSlot, slot_id).booked == 2
        assert check.get(ServiceBooking, booking_id).cancelled_at is not None
    engine.dispose()
