"""
Availability engine for hotel services.

Pure functions over a service's schedule configuration. Nothing in here
touches the database: callers load the service and its bookings/slots and
persist whatever comes back.

A service is any object exposing the HotelService attributes:
  available_days, start_time, end_time, duration, slot_interval,
  min_capacity, max_capacity, advance_booking_hours, price, price_per_person

Times are "HH:MM" 24-hour strings, weekdays are uppercase English names.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Iterable, Iterator, Optional

WEEKDAYS = (
    "MONDAY",
    "TUESDAY",
    "WEDNESDAY",
    "THURSDAY",
    "FRIDAY",
    "SATURDAY",
    "SUNDAY",
)

MINUTES_PER_DAY = 24 * 60


class ServiceConfigError(ValueError):
    """Service schedule configuration is unusable (bad times, zero duration...)."""


class RejectionReason(str, enum.Enum):
    WEEKDAY_UNAVAILABLE = "WEEKDAY_UNAVAILABLE"
    BELOW_MIN_PARTICIPANTS = "BELOW_MIN_PARTICIPANTS"
    ABOVE_MAX_PARTICIPANTS = "ABOVE_MAX_PARTICIPANTS"
    INSUFFICIENT_SPOTS = "INSUFFICIENT_SPOTS"
    INSUFFICIENT_NOTICE = "INSUFFICIENT_NOTICE"
    SLOT_DISABLED = "SLOT_DISABLED"
    SLOT_TAKEN = "SLOT_TAKEN"


class SlotStatus(str, enum.Enum):
    EMPTY = "EMPTY"
    PARTIAL = "PARTIAL"
    FULL = "FULL"


@dataclass(frozen=True)
class AvailabilityResult:
    available: bool
    message: Optional[str] = None
    reason: Optional[RejectionReason] = None
    spots_left: Optional[int] = None

    @classmethod
    def reject(cls, reason: RejectionReason, message: str, spots_left: Optional[int] = None):
        return cls(available=False, message=message, reason=reason, spots_left=spots_left)


@dataclass(frozen=True)
class GeneratedSlot:
    """A slot row ready to be persisted as a ServiceTimeSlot."""
    date: date
    start_time: str
    end_time: str
    capacity: int
    booked: int = 0
    is_available: bool = True


@dataclass(frozen=True)
class SlotView:
    """What a customer sees when picking a time."""
    time: str
    available: bool
    spots_left: int
    end_time: Optional[str] = None
    slot_id: Optional[Any] = None


@dataclass(frozen=True)
class SlotStats:
    total: int = 0
    available: int = 0
    disabled: int = 0
    full: int = 0
    partial: int = 0
    empty: int = 0
    total_capacity: int = 0
    total_booked: int = 0
    overbooked: int = 0


# ── Time helpers ─────────────────────────────────────────────────────────


def parse_hhmm(value: str) -> int:
    """Convert "HH:MM" to minutes since midnight."""
    try:
        hours_str, minutes_str = value.split(":")
        hours, minutes = int(hours_str), int(minutes_str)
    except (AttributeError, ValueError):
        raise ServiceConfigError(f"Invalid time {value!r}, expected HH:MM")
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        raise ServiceConfigError(f"Invalid time {value!r}, expected HH:MM")
    return hours * 60 + minutes


def format_hhmm(minutes: int) -> str:
    """Convert minutes since midnight to zero-padded "HH:MM"."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def weekday_name(day: date) -> str:
    if isinstance(day, datetime):
        day = day.date()
    return WEEKDAYS[day.weekday()]


def is_offered_on(service, day: date) -> bool:
    return weekday_name(day) in (service.available_days or [])


def is_date_in_past(day: date, today: Optional[date] = None) -> bool:
    """Compare calendar days only; today is not in the past."""
    today = today or date.today()
    if isinstance(day, datetime):
        day = day.date()
    return day < today


def iter_slot_windows(service) -> Iterator[tuple[int, int]]:
    """
    Yield (start, end) minute pairs for one operating day.

    The cursor starts at start_time and advances by slot_interval; a window
    is emitted only while it ends at or before end_time, so the last slot is
    never truncated.
    """
    duration = service.duration or 0
    interval = service.slot_interval or 0
    if duration <= 0:
        raise ServiceConfigError(f"Service duration must be positive, got {service.duration}")
    if interval <= 0:
        raise ServiceConfigError(f"Service slot interval must be positive, got {service.slot_interval}")

    day_start = parse_hhmm(service.start_time)
    day_end = parse_hhmm(service.end_time)

    t = day_start
    while t + duration <= day_end:
        yield t, t + duration
        t += interval


def _field(obj, name: str):
    if isinstance(obj, dict):
        return obj[name]
    return getattr(obj, name)


def booked_at(existing_bookings: Iterable, time: str) -> int:
    """Participants already committed at exactly `time`."""
    return sum(
        _field(b, "participants")
        for b in existing_bookings
        if _field(b, "booking_time") == time
    )


# ── Slot generation ──────────────────────────────────────────────────────


def generate_slots(service, start_date: date, end_date: date) -> list[GeneratedSlot]:
    """
    Expand the weekly schedule into slot rows for start_date..end_date
    (inclusive), ordered by date then start time.
    """
    # Validate once up front so a bad config fails even when no day qualifies.
    windows = list(iter_slot_windows(service))

    slots: list[GeneratedSlot] = []
    day = start_date
    while day <= end_date:
        if is_offered_on(service, day):
            for start, end in windows:
                slots.append(
                    GeneratedSlot(
                        date=day,
                        start_time=format_hhmm(start),
                        end_time=format_hhmm(end),
                        capacity=service.max_capacity,
                    )
                )
        day += timedelta(days=1)
    return slots


def generate_time_slots(service, day: date, existing_bookings: Iterable) -> list[SlotView]:
    """
    On-the-fly slot picker for a day, counting spots from bookings rather
    than persisted slot rows. Empty when the service is not offered that day.
    """
    if not is_offered_on(service, day):
        return []

    bookings = list(existing_bookings)
    views = []
    for start, end in iter_slot_windows(service):
        time = format_hhmm(start)
        spots_left = service.max_capacity - booked_at(bookings, time)
        views.append(
            SlotView(
                time=time,
                available=spots_left > 0,
                spots_left=spots_left,
                end_time=format_hhmm(end),
            )
        )
    return views


def slot_views_from_rows(rows: Iterable) -> list[SlotView]:
    """Same view as generate_time_slots, read off persisted ServiceTimeSlot rows."""
    views = []
    for row in sorted(rows, key=lambda r: r.start_time):
        spots_left = row.capacity - row.booked
        views.append(
            SlotView(
                time=row.start_time,
                available=bool(row.is_available) and spots_left > 0,
                spots_left=spots_left,
                end_time=row.end_time,
                slot_id=row.id,
            )
        )
    return views


# ── Admission ────────────────────────────────────────────────────────────


def check_availability(
    service,
    day: date,
    time: str,
    participants: int,
    existing_bookings: Iterable,
    now: Optional[datetime] = None,
    spots_left: Optional[int] = None,
) -> AvailabilityResult:
    """
    Decide whether `participants` may book `service` at `day` `time`.

    Gates run in a fixed order and the first failing one is reported:
    weekday, participant bounds, spots left at that time, advance notice.
    `existing_bookings` are the live (non-cancelled) bookings of the service
    on that day. When the time has a persisted slot, pass its remaining
    capacity as `spots_left` and the bookings are not counted.
    """
    if not is_offered_on(service, day):
        return AvailabilityResult.reject(
            RejectionReason.WEEKDAY_UNAVAILABLE,
            "This service is not offered on this day of the week",
        )

    if participants < service.min_capacity:
        return AvailabilityResult.reject(
            RejectionReason.BELOW_MIN_PARTICIPANTS,
            f"At least {service.min_capacity} participants are required",
        )

    if participants > service.max_capacity:
        return AvailabilityResult.reject(
            RejectionReason.ABOVE_MAX_PARTICIPANTS,
            f"The maximum number of participants is {service.max_capacity}",
        )

    if spots_left is None:
        spots_left = service.max_capacity - booked_at(existing_bookings, time)
    if spots_left < participants:
        return AvailabilityResult.reject(
            RejectionReason.INSUFFICIENT_SPOTS,
            f"Only {spots_left} spots left at this time",
            spots_left=spots_left,
        )

    # Naive local time, same as the stored booking_date/booking_time.
    now = now or datetime.now()
    if isinstance(day, datetime):
        day = day.date()
    starts_at = datetime.combine(day, datetime.min.time()) + timedelta(minutes=parse_hhmm(time))
    hours_until = (starts_at - now).total_seconds() / 3600
    if hours_until < service.advance_booking_hours:
        return AvailabilityResult.reject(
            RejectionReason.INSUFFICIENT_NOTICE,
            f"Bookings require at least {service.advance_booking_hours} hours advance notice",
            spots_left=spots_left,
        )

    return AvailabilityResult(available=True, spots_left=spots_left)


# ── Price / display helpers ──────────────────────────────────────────────


def calculate_service_price(service, participants: int):
    if service.price_per_person:
        return service.price * participants
    return service.price


def format_duration(minutes: int) -> str:
    if minutes < 60:
        return f"{minutes} min"
    hours, mins = divmod(minutes, 60)
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}min"


# ── Slot rollups ─────────────────────────────────────────────────────────


def slot_status(capacity: int, booked: int) -> SlotStatus:
    if booked >= capacity:
        return SlotStatus.FULL
    if booked > 0:
        return SlotStatus.PARTIAL
    return SlotStatus.EMPTY


def utilization_percent(capacity: int, booked: int) -> int:
    if capacity <= 0:
        return 0
    return round(booked / capacity * 100)


def summarize_slots(rows: Iterable) -> SlotStats:
    """
    Dashboard totals for a set of slot rows. Slots whose capacity was cut
    below their bookings are counted in `overbooked`, not clamped.
    """
    total = available = disabled = full = partial = empty = 0
    total_capacity = total_booked = overbooked = 0
    for row in rows:
        total += 1
        if row.is_available:
            available += 1
        else:
            disabled += 1
        status = slot_status(row.capacity, row.booked)
        if status is SlotStatus.FULL:
            full += 1
        elif status is SlotStatus.PARTIAL:
            partial += 1
        else:
            empty += 1
        if row.capacity - row.booked < 0:
            overbooked += 1
        total_capacity += row.capacity
        total_booked += row.booked

    return SlotStats(
        total=total,
        available=available,
        disabled=disabled,
        full=full,
        partial=partial,
        empty=empty,
        total_capacity=total_capacity,
        total_booked=total_booked,
        overbooked=overbooked,
    )
