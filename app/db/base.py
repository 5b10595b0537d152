from app.db.session import Base
from app.models.user import User
from app.models.reservation import Reservation
from app.models.hotel_service import HotelService
from app.models.service_time_slot import ServiceTimeSlot
from app.models.service_booking import ServiceBooking
from app.models.service_payment import ServicePayment
