from uuid import UUID
from typing import List, Optional
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session, joinedload

from app.db.session import get_db
from app.api.deps import get_current_user
from app.models.user import User
from app.models.hotel_service import HotelService, ServiceType
from app.models.service_booking import BookingStatus, ServiceBooking
from app.models.service_time_slot import ServiceTimeSlot
from app.schemas.booking import (
    AvailabilityCheck,
    AvailabilityResponse,
    BookingCancelResponse,
    ServiceBooking as ServiceBookingSchema,
    ServiceBookingCreate,
)
from app.schemas.common import PaginatedResponse
from app.schemas.service import HotelService as HotelServiceSchema
from app.schemas.time_slot import SlotOption, SlotPickerResponse
from app.utils.availability import (
    calculate_service_price,
    generate_time_slots,
    is_date_in_past,
    slot_views_from_rows,
    weekday_name,
)
from app.utils.bookings import (
    admit_service_booking,
    evaluate_request,
    get_active_service,
    live_bookings,
    transition_booking,
)

router = APIRouter(prefix="/services", tags=["Services"])


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------


@router.get("/", response_model=List[HotelServiceSchema])
def list_services(
    type: Optional[ServiceType] = Query(None, description="SPA or EXPERIENCE"),
    category: Optional[str] = Query(None, description="e.g. WELLNESS, CULINARY, NATURE"),
    db: Session = Depends(get_db),
):
    """Active services, cheapest first."""
    query = db.query(HotelService).filter(HotelService.is_active == True)  # noqa: E712
    if type:
        query = query.filter(HotelService.type == type)
    if category:
        query = query.filter(HotelService.category == category.upper())
    return query.order_by(HotelService.price, HotelService.name).all()


@router.get("/my-bookings", response_model=PaginatedResponse[ServiceBookingSchema])
def list_my_bookings(
    status: Optional[BookingStatus] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Return the authenticated guest's service bookings, soonest first."""
    query = (
        db.query(ServiceBooking)
        .options(joinedload(ServiceBooking.service), joinedload(ServiceBooking.payment))
        .filter(ServiceBooking.user_id == current_user.id)
    )
    if status:
        query = query.filter(ServiceBooking.status == status)

    total = query.count()
    bookings = (
        query.order_by(ServiceBooking.booking_date, ServiceBooking.booking_time)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return PaginatedResponse(
        data=[ServiceBookingSchema.model_validate(b) for b in bookings],
        total=total,
        page=page,
        limit=limit,
        total_pages=-(-total // limit) if total else 0,
    )


@router.get("/{service_id}", response_model=HotelServiceSchema)
def get_service(service_id: UUID, db: Session = Depends(get_db)):
    return get_active_service(db, service_id)


# ---------------------------------------------------------------------------
# Slot picker
# ---------------------------------------------------------------------------


@router.get("/{service_id}/time-slots", response_model=SlotPickerResponse)
def get_service_time_slots(
    service_id: UUID,
    date: date = Query(..., description="Day to list (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
):
    """
    Times a guest can pick on a day, with spots left.

    The schedule is expanded on the fly with spots counted from bookings;
    any time that has a slot row reports that row instead. Past days list
    nothing.
    """
    service = get_active_service(db, service_id)
    if is_date_in_past(date):
        return SlotPickerResponse(
            service_id=service.id,
            date=date,
            weekday=weekday_name(date),
            source="schedule",
            time_slots=[],
        )

    rows = db.query(ServiceTimeSlot).filter(
        ServiceTimeSlot.service_id == service_id,
        ServiceTimeSlot.date == date,
    ).all()
    by_time = {
        v.time: v for v in generate_time_slots(service, date, live_bookings(db, service_id, date))
    }
    by_time.update((v.time, v) for v in slot_views_from_rows(rows))
    views = [by_time[t] for t in sorted(by_time)]
    source = "slots" if rows else "schedule"

    return SlotPickerResponse(
        service_id=service.id,
        date=date,
        weekday=weekday_name(date),
        source=source,
        time_slots=[SlotOption.model_validate(v) for v in views],
    )


@router.post("/{service_id}/check-availability", response_model=AvailabilityResponse)
def check_service_availability(
    service_id: UUID,
    data: AvailabilityCheck,
    db: Session = Depends(get_db),
):
    """Dry run of the booking rules. Nothing is reserved."""
    service = get_active_service(db, service_id)

    result, _, _ = evaluate_request(
        db, service, data.booking_date, data.booking_time, data.participants,
    )
    return AvailabilityResponse(
        available=result.available,
        message=result.message,
        reason=result.reason.value if result.reason else None,
        spots_left=result.spots_left,
        total_price=calculate_service_price(service, data.participants) if result.available else None,
    )


# ---------------------------------------------------------------------------
# Booking
# ---------------------------------------------------------------------------


@router.post("/book", response_model=ServiceBookingSchema, status_code=status.HTTP_201_CREATED)
def book_service(
    data: ServiceBookingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Book a service for a day and time.

    - 400 when a booking rule fails (weekday, participants, spots, notice).
    - 409 when the slot filled up while the request was in flight; retrying
      shows the fresh availability.
    """
    return admit_service_booking(db, current_user, data)


@router.patch("/bookings/{booking_id}/cancel", response_model=BookingCancelResponse)
def cancel_my_booking(
    booking_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Cancel a pending or confirmed booking and free its spots."""
    booking = db.query(ServiceBooking).filter(
        ServiceBooking.id == booking_id,
        ServiceBooking.user_id == current_user.id,
    ).first()
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")

    transition_booking(db, booking, BookingStatus.CANCELLED)

    db.commit()
    db.refresh(booking)
    return BookingCancelResponse(
        id=booking.id,
        status=booking.status,
        cancelled_at=booking.cancelled_at,
    )
