import uuid
import enum
from sqlalchemy import Column, String, Boolean, DateTime, func, Text, DECIMAL, Integer, Enum, JSON, Uuid
from sqlalchemy.orm import relationship
from app.db.session import Base
from app.utils.availability import format_duration

class ServiceType(str, enum.Enum):
    SPA = "SPA"
    EXPERIENCE = "EXPERIENCE"

class HotelService(Base):
    __tablename__ = "hotel_services"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    images = Column(JSON, nullable=False, default=list)
    type = Column(Enum(ServiceType, name="service_type"), nullable=False, index=True)
    category = Column(String(50), nullable=True, index=True)  # WELLNESS, CULINARY, NATURE...
    price = Column(DECIMAL(10, 2), nullable=False)
    price_per_person = Column(Boolean, default=True, nullable=False)
    duration = Column(Integer, nullable=False)  # minutes
    min_capacity = Column(Integer, default=1, nullable=False)
    max_capacity = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True, index=True)

    # Schedule
    available_days = Column(JSON, nullable=False, default=list)  # ["MONDAY", "FRIDAY"]
    start_time = Column(String(5), nullable=False)  # "HH:MM"
    end_time = Column(String(5), nullable=False)
    slot_interval = Column(Integer, nullable=False)  # minutes between slot starts
    advance_booking_hours = Column(Integer, default=24, nullable=False)
    requires_reservation = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    # Relationships
    time_slots = relationship("ServiceTimeSlot", back_populates="service", cascade="all, delete-orphan")
    bookings = relationship("ServiceBooking", back_populates="service")

    @property
    def duration_label(self) -> str:
        return format_duration(self.duration)
