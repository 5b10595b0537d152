import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy import and_, or_, case, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.hotel_service import HotelService
from app.models.service_time_slot import ServiceTimeSlot
from app.utils.availability import generate_slots, iter_slot_windows, format_hhmm, parse_hhmm

logger = logging.getLogger(__name__)


def persist_generated_slots(
    db: Session,
    service: HotelService,
    start_date: date,
    end_date: date,
) -> tuple[int, int]:
    """
    Materialize the service schedule for start_date..end_date.

    Slots that already exist for the same service/date/start time are left
    alone, so generation can be re-run over an overlapping range.

    Returns (created, skipped).
    """
    generated = generate_slots(service, start_date, end_date)
    if not generated:
        return 0, 0

    existing = {
        (row.date, row.start_time)
        for row in db.query(ServiceTimeSlot.date, ServiceTimeSlot.start_time).filter(
            ServiceTimeSlot.service_id == service.id,
            ServiceTimeSlot.date >= start_date,
            ServiceTimeSlot.date <= end_date,
        )
    }

    created = 0
    for slot in generated:
        if (slot.date, slot.start_time) in existing:
            continue
        db.add(ServiceTimeSlot(
            service_id=service.id,
            date=slot.date,
            start_time=slot.start_time,
            end_time=slot.end_time,
            capacity=slot.capacity,
            booked=slot.booked,
            is_available=slot.is_available,
        ))
        created += 1

    db.commit()
    skipped = len(generated) - created
    logger.info(
        "Generated %d slot(s) for service %s between %s and %s (%d already existed).",
        created, service.id, start_date, end_date, skipped,
    )
    return created, skipped


def find_slot(db: Session, service_id, slot_date: date, start_time: str) -> Optional[ServiceTimeSlot]:
    return db.query(ServiceTimeSlot).filter(
        ServiceTimeSlot.service_id == service_id,
        ServiceTimeSlot.date == slot_date,
        ServiceTimeSlot.start_time == start_time,
    ).first()


def is_slot_start(service: HotelService, start_time: str) -> bool:
    """True when start_time is one of the times the schedule produces."""
    minutes = parse_hhmm(start_time)
    return any(start == minutes for start, _ in iter_slot_windows(service))


def create_slot(
    db: Session,
    service: HotelService,
    slot_date: date,
    start_time: str,
    already_booked: int = 0,
) -> ServiceTimeSlot:
    """
    Create the slot row for a booking that arrives before generation ran.

    `already_booked` seeds the counter with bookings made without a slot.
    When a concurrent request created the same row first, that row is
    returned instead.
    """
    start = parse_hhmm(start_time)
    slot = ServiceTimeSlot(
        service_id=service.id,
        date=slot_date,
        start_time=format_hhmm(start),
        end_time=format_hhmm(start + service.duration),
        capacity=service.max_capacity,
        booked=already_booked,
        is_available=True,
    )
    db.add(slot)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        slot = find_slot(db, service.id, slot_date, start_time)
        if slot is None:
            raise
        return slot

    logger.warning(
        "Slot %s %s for service %s created on demand (no generated slot).",
        slot_date, start_time, service.id,
    )
    db.refresh(slot)
    return slot


def reserve_slot_capacity(db: Session, slot_id, participants: int) -> bool:
    """
    Atomically add `participants` to a slot's booked counter.

    The increment only applies while the slot is enabled and the new total
    stays within capacity, so two requests racing for the last spots cannot
    both win. Returns False when the guard rejected the update. The caller
    owns the transaction.
    """
    result = db.execute(
        update(ServiceTimeSlot)
        .where(
            ServiceTimeSlot.id == slot_id,
            ServiceTimeSlot.is_available == True,  # noqa: E712
            ServiceTimeSlot.booked + participants <= ServiceTimeSlot.capacity,
        )
        .values(booked=ServiceTimeSlot.booked + participants)
        .execution_options(synchronize_session=False)
    )
    _expire_cached_slot(db, slot_id)
    return result.rowcount == 1


def release_slot_capacity(db: Session, slot_id, participants: int) -> None:
    """Give `participants` back to a slot; the counter never drops below zero."""
    db.execute(
        update(ServiceTimeSlot)
        .where(ServiceTimeSlot.id == slot_id)
        .values(
            booked=case(
                (ServiceTimeSlot.booked >= participants, ServiceTimeSlot.booked - participants),
                else_=0,
            )
        )
        .execution_options(synchronize_session=False)
    )
    _expire_cached_slot(db, slot_id)


def _expire_cached_slot(db: Session, slot_id) -> None:
    cached = db.identity_map.get(db.identity_key(ServiceTimeSlot, slot_id))
    if cached is not None:
        db.expire(cached, ["booked"])


def disable_past_slots(db: Session) -> int:
    """
    Mark as unavailable every enabled slot whose start has already passed.

    A slot is past when:
      - date  < today                                 (entire day is gone), or
      - date == today  AND  start_time < now "HH:MM"  (already started today)

    Returns the number of slots disabled. Booked counts are left untouched.
    """
    # Use local time, date/start_time are stored as timezone-naive local values
    now = datetime.now()
    today = now.date()
    current_time = format_hhmm(now.hour * 60 + now.minute)

    count = (
        db.query(ServiceTimeSlot)
        .filter(
            ServiceTimeSlot.is_available == True,  # noqa: E712
            or_(
                ServiceTimeSlot.date < today,
                and_(
                    ServiceTimeSlot.date == today,
                    ServiceTimeSlot.start_time < current_time,
                ),
            ),
        )
        .update({"is_available": False}, synchronize_session="fetch")
    )
    db.commit()
    return count
