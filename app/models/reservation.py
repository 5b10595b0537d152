import uuid
import enum
from sqlalchemy import Column, String, DateTime, Date, func, Enum, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from app.db.session import Base

class ReservationStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CHECKED_IN = "CHECKED_IN"
    CHECKED_OUT = "CHECKED_OUT"
    CANCELLED = "CANCELLED"

# Room reservation. Rooms themselves are managed elsewhere; service bookings
# only need the guest, the stay window and whether the stay is still live.
class Reservation(Base):
    __tablename__ = "reservations"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    room_number = Column(String(20), nullable=True)
    check_in = Column(Date, nullable=False)
    check_out = Column(Date, nullable=False)
    status = Column(
        Enum(ReservationStatus, name="reservation_status"),
        default=ReservationStatus.PENDING,
        nullable=False,
        index=True,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="reservations")
    service_bookings = relationship("ServiceBooking", back_populates="reservation")

    def covers(self, day) -> bool:
        """True when `day` falls inside the stay (check-out day excluded)."""
        return self.check_in <= day < self.check_out
