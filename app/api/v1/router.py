from fastapi import APIRouter

# Auth
from app.api.v1.public.auth import router as auth_router

# Public — service catalogue, slot picker, booking
from app.api.v1.public.services import router as services_router

# Public — payments (guest view + gateway notifications)
from app.api.v1.public.payments import router as payments_router

# Admin
from app.api.v1.admin.services import router as admin_services_router
from app.api.v1.admin.service_bookings import router as admin_service_bookings_router

api_router = APIRouter()

# --- Auth ---
api_router.include_router(auth_router)

# --- Public ---
api_router.include_router(services_router)
api_router.include_router(payments_router)

# --- Admin ---
api_router.include_router(admin_services_router)
api_router.include_router(admin_service_bookings_router)
