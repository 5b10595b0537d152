from app.schemas.common import PaginatedResponse, ErrorResponse
from app.schemas.user import User, UserCreate, StaffCreate, UserSummary, Token, TokenRefresh
from app.schemas.service import (
    HotelService, HotelServiceCreate, HotelServiceUpdate, HotelServiceSummary,
)
from app.schemas.time_slot import (
    GenerateSlotsRequest, GenerateSlotsResult, TimeSlotUpdate, TimeSlotAdmin,
    SlotStats, TimeSlotListResponse, AvailableSlot, AvailableSlotsResponse,
    SlotOption, SlotPickerResponse,
)
from app.schemas.booking import (
    AvailabilityCheck, AvailabilityResponse, ServiceBookingCreate, ServiceBooking,
    AdminServiceBooking, ServiceBookingUpdate, BookingCancelResponse,
)
from app.schemas.payment import ServicePayment, PaymentStatusUpdate
