import uuid
from sqlalchemy import Column, String, Boolean, Date, DateTime, Integer, ForeignKey, UniqueConstraint, func, Uuid
from sqlalchemy.orm import relationship
from app.db.session import Base

class ServiceTimeSlot(Base):
    __tablename__ = "service_time_slots"
    __table_args__ = (
        UniqueConstraint("service_id", "date", "start_time", name="uq_service_slot_start"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    service_id = Column(Uuid(as_uuid=True), ForeignKey("hotel_services.id"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    capacity = Column(Integer, nullable=False)
    booked = Column(Integer, default=0, nullable=False)
    is_available = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    # Relationships
    service = relationship("HotelService", back_populates="time_slots")
    bookings = relationship("ServiceBooking", back_populates="time_slot")

    @property
    def available(self) -> int:
        # Negative after an operator shrinks capacity below what is booked.
        return self.capacity - self.booked
