from app.models.user import User, UserRole
from app.models.reservation import Reservation, ReservationStatus
from app.models.hotel_service import HotelService, ServiceType
from app.models.service_time_slot import ServiceTimeSlot
from app.models.service_booking import ServiceBooking, BookingStatus
from app.models.service_payment import ServicePayment, PaymentStatus
