from typing import Optional, List
from datetime import date

from pydantic import BaseModel, Field, UUID4, model_validator

from app.utils.availability import SlotStatus


# Slot generation request (POST /admin/services/{id}/generate-slots)
class GenerateSlotsRequest(BaseModel):
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def check_range(self):
        if self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date")
        return self


class GenerateSlotsResult(BaseModel):
    created: int
    skipped: int


# Time slot — admin edit (PATCH /admin/services/{id}/slots/{slot_id})
class TimeSlotUpdate(BaseModel):
    capacity: Optional[int] = Field(None, ge=0)
    is_available: Optional[bool] = None


# Time slot — admin response, with derived occupancy
class TimeSlotAdmin(BaseModel):
    id: UUID4
    service_id: UUID4
    date: date
    start_time: str
    end_time: str
    capacity: int
    booked: int
    available: int                 # may be negative after a capacity cut
    is_available: bool
    status: SlotStatus
    utilization_percent: int
    bookings_count: int = 0


class SlotStats(BaseModel):
    total: int
    available: int
    disabled: int
    full: int
    partial: int
    empty: int
    total_capacity: int
    total_booked: int
    overbooked: int

    class Config:
        from_attributes = True


class TimeSlotListResponse(BaseModel):
    slots: List[TimeSlotAdmin]
    stats: SlotStats


# Enabled slots with spots left (GET /admin/services/{id}/available-slots)
class AvailableSlot(BaseModel):
    id: UUID4
    date: date
    start_time: str
    end_time: str
    capacity: int
    booked: int
    available: int

    class Config:
        from_attributes = True


class AvailableSlotsResponse(BaseModel):
    date: date
    slots: List[AvailableSlot]
    total: int


# Customer slot picker (GET /services/{id}/time-slots)
class SlotOption(BaseModel):
    time: str
    end_time: Optional[str] = None
    available: bool
    spots_left: int
    slot_id: Optional[UUID4] = None

    class Config:
        from_attributes = True


class SlotPickerResponse(BaseModel):
    service_id: UUID4
    date: date
    weekday: str
    source: str          # "slots" when the day has slot rows, "schedule" otherwise
    time_slots: List[SlotOption]
