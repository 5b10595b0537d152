import uuid
import enum
from sqlalchemy import Column, String, DateTime, Date, func, DECIMAL, Integer, Enum, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship
from app.db.session import Base

class BookingStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"

# Allowed moves; anything missing here is terminal.
BOOKING_TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED, BookingStatus.NO_SHOW},
    BookingStatus.CONFIRMED: {BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED, BookingStatus.NO_SHOW},
    BookingStatus.IN_PROGRESS: {BookingStatus.COMPLETED},
}

# Timestamp column stamped when a booking enters the status.
STATUS_TIMESTAMPS = {
    BookingStatus.CONFIRMED: "confirmed_at",
    BookingStatus.IN_PROGRESS: "started_at",
    BookingStatus.COMPLETED: "completed_at",
    BookingStatus.CANCELLED: "cancelled_at",
    BookingStatus.NO_SHOW: "no_show_at",
}

class ServiceBooking(Base):
    __tablename__ = "service_bookings"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    service_id = Column(Uuid(as_uuid=True), ForeignKey("hotel_services.id"), nullable=False, index=True)
    time_slot_id = Column(Uuid(as_uuid=True), ForeignKey("service_time_slots.id"), nullable=True, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    reservation_id = Column(Uuid(as_uuid=True), ForeignKey("reservations.id"), nullable=True, index=True)
    booking_date = Column(Date, nullable=False, index=True)
    booking_time = Column(String(5), nullable=False)
    participants = Column(Integer, nullable=False)
    total_price = Column(DECIMAL(10, 2), nullable=False)
    status = Column(
        Enum(BookingStatus, name="service_booking_status"),
        default=BookingStatus.PENDING,
        nullable=False,
        index=True,
    )
    special_requests = Column(Text, nullable=True)
    staff_notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    no_show_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    service = relationship("HotelService", back_populates="bookings")
    time_slot = relationship("ServiceTimeSlot", back_populates="bookings")
    user = relationship("User", back_populates="service_bookings")
    reservation = relationship("Reservation", back_populates="service_bookings")
    payment = relationship("ServicePayment", back_populates="booking", uselist=False)
