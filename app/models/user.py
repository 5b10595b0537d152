import uuid
import enum
from sqlalchemy import Column, String, Boolean, DateTime, func, Enum, Uuid
from sqlalchemy.orm import relationship
from app.db.session import Base

class UserRole(str, enum.Enum):
    GUEST = "GUEST"
    OPERATOR = "OPERATOR"
    ADMIN = "ADMIN"

class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=False)
    phone = Column(String(30), nullable=True)
    role = Column(Enum(UserRole, name="user_role"), default=UserRole.GUEST, nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    reservations = relationship("Reservation", back_populates="user")
    service_bookings = relationship("ServiceBooking", back_populates="user")

    @property
    def is_staff(self) -> bool:
        return self.role in (UserRole.OPERATOR, UserRole.ADMIN)
