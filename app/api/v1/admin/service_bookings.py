from uuid import UUID
from typing import Optional
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session, joinedload

from app.db.session import get_db
from app.api.deps import get_current_staff_user
from app.models.user import User
from app.models.service_booking import BookingStatus, ServiceBooking
from app.schemas.booking import AdminServiceBooking, ServiceBookingUpdate
from app.schemas.common import PaginatedResponse
from app.utils.bookings import load_booking, transition_booking

router = APIRouter(prefix="/admin/service-bookings", tags=["Admin - Service Bookings"])


@router.get("/", response_model=PaginatedResponse[AdminServiceBooking])
def list_service_bookings(
    # --- Filters ---
    status: Optional[BookingStatus] = Query(None, description="Filter by booking status"),
    service_id: Optional[UUID] = Query(None, description="Filter by service"),
    date: Optional[date] = Query(None, description="Filter by booking date (YYYY-MM-DD)"),
    # --- Pagination ---
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user),
):
    """Every service booking, newest first, with guest and payment."""
    query = db.query(ServiceBooking).options(
        joinedload(ServiceBooking.user),
        joinedload(ServiceBooking.service),
        joinedload(ServiceBooking.payment),
    )

    if status:
        query = query.filter(ServiceBooking.status == status)
    if service_id:
        query = query.filter(ServiceBooking.service_id == service_id)
    if date:
        query = query.filter(ServiceBooking.booking_date == date)

    total = query.count()
    bookings = (
        query.order_by(ServiceBooking.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return PaginatedResponse(
        data=[AdminServiceBooking.model_validate(b) for b in bookings],
        total=total,
        page=page,
        limit=limit,
        total_pages=-(-total // limit) if total else 0,
    )


@router.patch("/{booking_id}", response_model=AdminServiceBooking)
def update_service_booking(
    booking_id: UUID,
    data: ServiceBookingUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user),
):
    """
    Move a booking through its lifecycle and/or edit staff notes.

    PENDING -> CONFIRMED -> IN_PROGRESS -> COMPLETED, with CANCELLED and
    NO_SHOW reachable from PENDING or CONFIRMED. Cancelling frees the spots.
    """
    booking = load_booking(db, booking_id)
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")

    if data.status is not None:
        transition_booking(db, booking, data.status)

    if data.staff_notes is not None:
        booking.staff_notes = data.staff_notes

    db.commit()
    return load_booking(db, booking_id)
