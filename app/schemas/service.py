from typing import Optional, List
from decimal import Decimal
from datetime import datetime

from pydantic import BaseModel, Field, UUID4, field_validator, model_validator

from app.models.hotel_service import ServiceType
from app.schemas.common import normalize_hhmm, normalize_weekdays
from app.utils.availability import parse_hhmm


class HotelServiceBase(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    images: List[str] = []
    type: ServiceType
    category: Optional[str] = None
    price: Decimal = Field(ge=0)
    price_per_person: bool = True
    duration: int = Field(ge=15)
    min_capacity: int = Field(1, ge=1)
    max_capacity: int = Field(ge=1)
    available_days: List[str] = Field(min_length=1)
    start_time: str
    end_time: str
    slot_interval: int = Field(gt=0)
    advance_booking_hours: int = Field(24, ge=0)
    requires_reservation: bool = True


# Hotel service — Create (POST /admin/services)
class HotelServiceCreate(HotelServiceBase):
    is_active: bool = True

    @field_validator("start_time", "end_time")
    @classmethod
    def check_time(cls, v):
        return normalize_hhmm(v)

    @field_validator("available_days")
    @classmethod
    def check_days(cls, v):
        return normalize_weekdays(v)

    @field_validator("category")
    @classmethod
    def upper_category(cls, v):
        return v.strip().upper() if v else v

    @model_validator(mode="after")
    def check_schedule(self):
        if self.max_capacity < self.min_capacity:
            raise ValueError("max_capacity must be greater than or equal to min_capacity")
        if parse_hhmm(self.start_time) + self.duration > parse_hhmm(self.end_time):
            raise ValueError("The operating window must fit at least one slot of the service duration")
        return self


# Hotel service — Update (PATCH /admin/services/{id}); merged with the
# stored row and re-validated as a whole in the router.
class HotelServiceUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    images: Optional[List[str]] = None
    type: Optional[ServiceType] = None
    category: Optional[str] = None
    price: Optional[Decimal] = None
    price_per_person: Optional[bool] = None
    duration: Optional[int] = None
    min_capacity: Optional[int] = None
    max_capacity: Optional[int] = None
    available_days: Optional[List[str]] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    slot_interval: Optional[int] = None
    advance_booking_hours: Optional[int] = None
    requires_reservation: Optional[bool] = None
    is_active: Optional[bool] = None


# Hotel service — DB response
class HotelService(HotelServiceBase):
    id: UUID4
    is_active: bool
    duration_label: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Compact service for booking responses
class HotelServiceSummary(BaseModel):
    id: UUID4
    name: str
    type: ServiceType
    duration: int

    class Config:
        from_attributes = True
