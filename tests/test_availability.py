from datetime import date, datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.models.hotel_service import HotelService
from app.utils.availability import (
    RejectionReason,
    ServiceConfigError,
    SlotStatus,
    calculate_service_price,
    check_availability,
    format_duration,
    format_hhmm,
    generate_slots,
    generate_time_slots,
    is_date_in_past,
    parse_hhmm,
    slot_status,
    slot_views_from_rows,
    summarize_slots,
    utilization_percent,
    weekday_name,
)

from conftest import MONDAY, TUESDAY, service_config

# Far enough from the test dates that lead time never interferes
EARLY = datetime(2029, 12, 1, 8, 0)


def make(**overrides) -> HotelService:
    return HotelService(**service_config(**overrides))


def booking(time: str, participants: int):
    return {"booking_time": time, "participants": participants}


# =============================================================================
# Time helpers
# =============================================================================

def test_parse_and_format_hhmm():
    assert parse_hhmm("09:30") == 570
    assert parse_hhmm("9:05") == 545
    assert format_hhmm(545) == "09:05"
    assert format_hhmm(0) == "00:00"


@pytest.mark.parametrize("value", ["", "24:00", "12:60", "noon", "12", None])
def test_parse_hhmm_rejects_garbage(value):
    with pytest.raises(ServiceConfigError):
        parse_hhmm(value)


def test_weekday_name():
    assert weekday_name(MONDAY) == "MONDAY"
    assert weekday_name(TUESDAY) == "TUESDAY"
    assert weekday_name(datetime(2030, 1, 13, 15, 0)) == "SUNDAY"


def test_is_date_in_past_ignores_time_of_day():
    today = date(2030, 1, 7)
    assert is_date_in_past(date(2030, 1, 6), today=today)
    assert not is_date_in_past(today, today=today)
    assert not is_date_in_past(datetime(2030, 1, 7, 0, 1), today=today)


# =============================================================================
# Slot generation
# =============================================================================

def test_generate_slots_single_monday():
    slots = generate_slots(make(), MONDAY, MONDAY)

    assert [(s.start_time, s.end_time) for s in slots] == [("09:00", "10:00"), ("10:00", "11:00")]
    assert all(s.capacity == 10 and s.booked == 0 and s.is_available for s in slots)


def test_generate_slots_never_emits_a_slot_past_the_window():
    service = make(slot_interval=30)
    slots = generate_slots(service, MONDAY, MONDAY)

    assert [s.start_time for s in slots] == ["09:00", "09:30", "10:00"]
    assert "10:30" not in [s.start_time for s in slots]


def test_generate_slots_skips_days_not_offered():
    assert generate_slots(make(), TUESDAY, TUESDAY) == []


def test_generate_slots_orders_by_date_then_time():
    service = make(available_days=["MONDAY", "WEDNESDAY"])
    slots = generate_slots(service, MONDAY, MONDAY + timedelta(days=7))

    assert [(s.date, s.start_time) for s in slots] == [
        (MONDAY, "09:00"),
        (MONDAY, "10:00"),
        (MONDAY + timedelta(days=2), "09:00"),
        (MONDAY + timedelta(days=2), "10:00"),
        (MONDAY + timedelta(days=7), "09:00"),
        (MONDAY + timedelta(days=7), "10:00"),
    ]


def test_generate_slots_with_gap_between_slots():
    service = make(duration=45, slot_interval=60, end_time="12:00")
    slots = generate_slots(service, MONDAY, MONDAY)

    assert [(s.start_time, s.end_time) for s in slots] == [
        ("09:00", "09:45"),
        ("10:00", "10:45"),
        ("11:00", "11:45"),
    ]


def test_generate_slots_empty_for_reversed_range():
    assert generate_slots(make(), TUESDAY, MONDAY) == []


@pytest.mark.parametrize("overrides", [
    {"duration": 0},
    {"slot_interval": 0},
    {"slot_interval": -15},
    {"start_time": "9am"},
])
def test_generate_slots_fails_fast_on_bad_config(overrides):
    with pytest.raises(ServiceConfigError):
        generate_slots(make(**overrides), TUESDAY, TUESDAY)


# =============================================================================
# Customer slot listing
# =============================================================================

def test_generate_time_slots_counts_spots_per_time():
    views = generate_time_slots(make(), MONDAY, [booking("09:00", 4), booking("09:00", 6), booking("10:00", 3)])

    assert [(v.time, v.available, v.spots_left) for v in views] == [
        ("09:00", False, 0),
        ("10:00", True, 7),
    ]


def test_generate_time_slots_empty_on_unoffered_weekday():
    assert generate_time_slots(make(), TUESDAY, []) == []


def test_slot_views_from_rows():
    rows = [
        SimpleNamespace(id=2, start_time="10:00", end_time="11:00", capacity=10, booked=2, is_available=False),
        SimpleNamespace(id=1, start_time="09:00", end_time="10:00", capacity=10, booked=4, is_available=True),
    ]
    views = slot_views_from_rows(rows)

    assert [(v.time, v.available, v.spots_left, v.slot_id) for v in views] == [
        ("09:00", True, 6, 1),
        ("10:00", False, 8, 2),
    ]


# =============================================================================
# Admission
# =============================================================================

def test_check_availability_admits_valid_request():
    result = check_availability(make(), MONDAY, "09:00", 2, [], now=EARLY)
    assert result.available
    assert result.message is None
    assert result.spots_left == 10


def test_check_availability_rejects_unoffered_weekday():
    result = check_availability(make(), TUESDAY, "09:00", 2, [], now=EARLY)
    assert not result.available
    assert result.reason == RejectionReason.WEEKDAY_UNAVAILABLE


def test_check_availability_participant_bounds():
    service = make(min_capacity=2, max_capacity=6)

    below = check_availability(service, MONDAY, "09:00", 1, [], now=EARLY)
    above = check_availability(service, MONDAY, "09:00", 7, [], now=EARLY)

    assert below.reason == RejectionReason.BELOW_MIN_PARTICIPANTS
    assert "2" in below.message
    assert above.reason == RejectionReason.ABOVE_MAX_PARTICIPANTS
    assert check_availability(service, MONDAY, "09:00", 2, [], now=EARLY).available
    assert check_availability(service, MONDAY, "09:00", 6, [], now=EARLY).available


def test_check_availability_occupancy():
    existing = [booking("10:00", 4), booking("10:00", 3), booking("09:00", 5)]

    assert check_availability(make(), MONDAY, "10:00", 3, existing, now=EARLY).available

    result = check_availability(make(), MONDAY, "10:00", 4, existing, now=EARLY)
    assert not result.available
    assert result.reason == RejectionReason.INSUFFICIENT_SPOTS
    assert result.spots_left == 3
    assert "3" in result.message


def test_check_availability_accepts_objects_as_bookings():
    existing = [SimpleNamespace(booking_time="10:00", participants=9)]
    result = check_availability(make(), MONDAY, "10:00", 2, existing, now=EARLY)
    assert result.spots_left == 1


def test_check_availability_spots_left_override_ignores_bookings():
    existing = [booking("10:00", 9)]
    result = check_availability(make(), MONDAY, "10:00", 5, existing, now=EARLY, spots_left=5)
    assert result.available


def test_check_availability_lead_time_boundary():
    service = make(advance_booking_hours=24)
    starts_at = datetime(2030, 1, 7, 9, 0)

    exactly = check_availability(service, MONDAY, "09:00", 1, [], now=starts_at - timedelta(hours=24))
    short = check_availability(service, MONDAY, "09:00", 1, [], now=starts_at - timedelta(hours=23))

    assert exactly.available
    assert not short.available
    assert short.reason == RejectionReason.INSUFFICIENT_NOTICE
    assert "24" in short.message


def test_check_availability_reports_first_failing_gate():
    service = make(min_capacity=2, advance_booking_hours=48)
    late = datetime(2030, 1, 7, 8, 0)

    # Wrong weekday beats everything else
    assert check_availability(service, TUESDAY, "09:00", 1, [], now=late).reason == RejectionReason.WEEKDAY_UNAVAILABLE
    # Bounds before occupancy and lead time
    assert check_availability(service, MONDAY, "09:00", 1, [booking("09:00", 10)], now=late).reason == RejectionReason.BELOW_MIN_PARTICIPANTS
    # Occupancy before lead time
    assert check_availability(service, MONDAY, "09:00", 2, [booking("09:00", 9)], now=late).reason == RejectionReason.INSUFFICIENT_SPOTS
    assert check_availability(service, MONDAY, "09:00", 2, [], now=late).reason == RejectionReason.INSUFFICIENT_NOTICE


# =============================================================================
# Price and duration
# =============================================================================

def test_flat_price_ignores_participants():
    service = make(price=Decimal("250.00"), price_per_person=False)
    assert calculate_service_price(service, 1) == Decimal("250.00")
    assert calculate_service_price(service, 8) == Decimal("250.00")


def test_per_person_price_is_linear():
    service = make(price=Decimal("40.50"), price_per_person=True)
    assert calculate_service_price(service, 1) == Decimal("40.50")
    assert calculate_service_price(service, 3) == Decimal("121.50")


@pytest.mark.parametrize("minutes,label", [
    (15, "15 min"),
    (45, "45 min"),
    (60, "1h"),
    (90, "1h 30min"),
    (120, "2h"),
    (135, "2h 15min"),
])
def test_format_duration(minutes, label):
    assert format_duration(minutes) == label


def test_service_duration_label():
    assert make(duration=90).duration_label == "1h 30min"


# =============================================================================
# Rollups
# =============================================================================

def test_slot_status():
    assert slot_status(10, 0) == SlotStatus.EMPTY
    assert slot_status(10, 3) == SlotStatus.PARTIAL
    assert slot_status(10, 10) == SlotStatus.FULL
    assert slot_status(4, 6) == SlotStatus.FULL


def test_utilization_percent():
    assert utilization_percent(10, 3) == 30
    assert utilization_percent(3, 1) == 33
    assert utilization_percent(0, 0) == 0


def test_summarize_slots_reports_overbooked_without_clamping():
    rows = [
        SimpleNamespace(capacity=10, booked=0, is_available=True),
        SimpleNamespace(capacity=10, booked=4, is_available=True),
        SimpleNamespace(capacity=10, booked=10, is_available=False),
        SimpleNamespace(capacity=3, booked=5, is_available=True),
    ]
    stats = summarize_slots(rows)

    assert stats.total == 4
    assert stats.available == 3
    assert stats.disabled == 1
    assert (stats.empty, stats.partial, stats.full) == (1, 1, 2)
    assert stats.total_capacity == 33
    assert stats.total_booked == 19
    assert stats.overbooked == 1
