import logging
from uuid import UUID
from typing import List, Optional
from datetime import date, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import ValidationError
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import get_db
from app.api.deps import get_current_staff_user
from app.models.user import User
from app.models.hotel_service import HotelService
from app.models.service_booking import ServiceBooking
from app.models.service_time_slot import ServiceTimeSlot
from app.schemas.service import (
    HotelService as HotelServiceSchema,
    HotelServiceCreate,
    HotelServiceUpdate,
)
from app.schemas.time_slot import (
    AvailableSlot,
    AvailableSlotsResponse,
    GenerateSlotsRequest,
    GenerateSlotsResult,
    SlotStats,
    TimeSlotAdmin,
    TimeSlotListResponse,
    TimeSlotUpdate,
)
from app.utils.availability import slot_status, summarize_slots, utilization_percent
from app.utils.timeslots import persist_generated_slots

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/services", tags=["Admin - Services"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_service(service_id: UUID, db: Session) -> HotelService:
    service = db.query(HotelService).filter(HotelService.id == service_id).first()
    if not service:
        raise HTTPException(status_code=404, detail="Service not found")
    return service


def _get_slot(service_id: UUID, slot_id: UUID, db: Session) -> ServiceTimeSlot:
    slot = db.query(ServiceTimeSlot).filter(
        ServiceTimeSlot.id == slot_id,
        ServiceTimeSlot.service_id == service_id,
    ).first()
    if not slot:
        raise HTTPException(status_code=404, detail="Slot not found")
    return slot


def _serialize_slot(slot: ServiceTimeSlot, bookings_count: int = 0) -> TimeSlotAdmin:
    return TimeSlotAdmin(
        id=slot.id,
        service_id=slot.service_id,
        date=slot.date,
        start_time=slot.start_time,
        end_time=slot.end_time,
        capacity=slot.capacity,
        booked=slot.booked,
        available=slot.available,
        is_available=slot.is_available,
        status=slot_status(slot.capacity, slot.booked),
        utilization_percent=utilization_percent(slot.capacity, slot.booked),
        bookings_count=bookings_count,
    )


def _validation_error(e: ValidationError) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail=e.errors(include_url=False, include_context=False, include_input=False),
    )


# ---------------------------------------------------------------------------
# Service CRUD
# ---------------------------------------------------------------------------


@router.post("/", response_model=HotelServiceSchema, status_code=status.HTTP_201_CREATED)
def create_service(
    data: HotelServiceCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user),
):
    service = HotelService(**data.model_dump())
    db.add(service)
    db.commit()
    db.refresh(service)
    logger.info("Service %s (%s) created by %s.", service.id, service.name, current_user.email)
    return service


@router.get("/", response_model=List[HotelServiceSchema])
def list_services(
    include_inactive: bool = Query(True),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user),
):
    query = db.query(HotelService)
    if not include_inactive:
        query = query.filter(HotelService.is_active == True)  # noqa: E712
    return query.order_by(HotelService.type, HotelService.name).all()


@router.get("/{service_id}", response_model=HotelServiceSchema)
def get_service(
    service_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user),
):
    return _get_service(service_id, db)


@router.patch("/{service_id}", response_model=HotelServiceSchema)
def update_service(
    service_id: UUID,
    data: HotelServiceUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user),
):
    """
    Partial update. The merged service is validated as a whole, so a new
    duration must still fit the existing operating window and so on.
    Already generated slots keep their times and capacity.
    """
    service = _get_service(service_id, db)

    current = {
        field: getattr(service, field)
        for field in HotelServiceCreate.model_fields
    }
    current.update(data.model_dump(exclude_unset=True))
    try:
        validated = HotelServiceCreate.model_validate(current)
    except ValidationError as e:
        raise _validation_error(e)

    for field, value in validated.model_dump().items():
        setattr(service, field, value)

    db.commit()
    db.refresh(service)
    return service


@router.delete("/{service_id}", status_code=status.HTTP_200_OK)
def deactivate_service(
    service_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user),
):
    """Soft delete: the service disappears from the catalogue, bookings stay."""
    service = _get_service(service_id, db)
    service.is_active = False
    db.commit()
    return {"id": str(service_id), "is_active": False}


# ---------------------------------------------------------------------------
# Slot generation and management
# ---------------------------------------------------------------------------


@router.post("/{service_id}/generate-slots", response_model=GenerateSlotsResult)
def generate_service_slots(
    service_id: UUID,
    data: GenerateSlotsRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user),
):
    """
    Create slot rows for every scheduled time between start_date and
    end_date (inclusive). Existing slots are kept and counted as skipped.
    """
    service = _get_service(service_id, db)

    max_end = data.start_date + timedelta(days=settings.MAX_SLOT_GENERATION_DAYS - 1)
    if data.end_date > max_end:
        raise HTTPException(
            status_code=400,
            detail=f"Slots can be generated for at most {settings.MAX_SLOT_GENERATION_DAYS} days at a time",
        )

    created, skipped = persist_generated_slots(db, service, data.start_date, data.end_date)
    return GenerateSlotsResult(created=created, skipped=skipped)


@router.get("/{service_id}/slots", response_model=TimeSlotListResponse)
def list_service_slots(
    service_id: UUID,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    only_available: bool = Query(False, description="Only slots enabled for booking"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user),
):
    """All slots of a service with occupancy, plus totals for the dashboard."""
    _get_service(service_id, db)

    query = db.query(ServiceTimeSlot).filter(ServiceTimeSlot.service_id == service_id)
    if start_date:
        query = query.filter(ServiceTimeSlot.date >= start_date)
    if end_date:
        query = query.filter(ServiceTimeSlot.date <= end_date)
    if only_available:
        query = query.filter(ServiceTimeSlot.is_available == True)  # noqa: E712

    slots = query.order_by(ServiceTimeSlot.date, ServiceTimeSlot.start_time).all()

    counts = dict(
        db.query(ServiceBooking.time_slot_id, func.count(ServiceBooking.id))
        .filter(ServiceBooking.time_slot_id.in_([s.id for s in slots]))
        .group_by(ServiceBooking.time_slot_id)
        .all()
    ) if slots else {}

    return TimeSlotListResponse(
        slots=[_serialize_slot(s, counts.get(s.id, 0)) for s in slots],
        stats=SlotStats.model_validate(summarize_slots(slots)),
    )


@router.get("/{service_id}/available-slots", response_model=AvailableSlotsResponse)
def list_available_slots(
    service_id: UUID,
    date: date = Query(..., description="Day to list (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user),
):
    """Enabled slots on a day that still have room."""
    _get_service(service_id, db)

    slots = (
        db.query(ServiceTimeSlot)
        .filter(
            ServiceTimeSlot.service_id == service_id,
            ServiceTimeSlot.date == date,
            ServiceTimeSlot.is_available == True,  # noqa: E712
            ServiceTimeSlot.booked < ServiceTimeSlot.capacity,
        )
        .order_by(ServiceTimeSlot.start_time)
        .all()
    )
    return AvailableSlotsResponse(
        date=date,
        slots=[AvailableSlot.model_validate(s) for s in slots],
        total=len(slots),
    )


@router.patch("/{service_id}/slots/{slot_id}", response_model=TimeSlotAdmin)
def update_slot(
    service_id: UUID,
    slot_id: UUID,
    data: TimeSlotUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user),
):
    """
    Change a slot's capacity or enable/disable it.

    Capacity may be cut below what is already booked; existing bookings are
    kept and the slot reports a negative `available` until it drains.
    """
    slot = _get_slot(service_id, slot_id, db)

    updates = data.model_dump(exclude_unset=True)
    if "capacity" in updates and updates["capacity"] is not None:
        if updates["capacity"] < slot.booked:
            logger.warning(
                "Slot %s capacity set to %d below %d booked by %s.",
                slot.id, updates["capacity"], slot.booked, current_user.email,
            )
        slot.capacity = updates["capacity"]
    if "is_available" in updates and updates["is_available"] is not None:
        slot.is_available = updates["is_available"]

    db.commit()
    db.refresh(slot)
    return _serialize_slot(slot, len(slot.bookings))


@router.delete("/{service_id}/slots/{slot_id}", status_code=status.HTTP_200_OK)
def delete_slot(
    service_id: UUID,
    slot_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user),
):
    """Delete a slot nobody ever booked. Other slots must be disabled instead."""
    slot = _get_slot(service_id, slot_id, db)
    if slot.booked > 0:
        raise HTTPException(
            status_code=400,
            detail=f"This slot has {slot.booked} booked spot(s); disable it instead",
        )
    if slot.bookings:
        raise HTTPException(
            status_code=400,
            detail="This slot has booking history; disable it instead",
        )
    db.delete(slot)
    db.commit()
    return {"id": str(slot_id), "deleted": True}
