"""
Shared fixtures.

The app runs against an in-memory SQLite database; get_db is overridden so
requests and tests share one session.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.security import create_access_token, get_password_hash
from app.db.base import Base
from app.db.session import get_db
from app.main import app
from app.models.hotel_service import HotelService, ServiceType
from app.models.reservation import Reservation, ReservationStatus
from app.models.user import User, UserRole

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# 2030-01-07 is a Monday
MONDAY = date(2030, 1, 7)
TUESDAY = date(2030, 1, 8)


def service_config(**overrides) -> dict:
    config = {
        "name": "Hot Stone Massage",
        "description": "Volcanic stone massage",
        "images": [],
        "type": ServiceType.SPA,
        "category": "WELLNESS",
        "price": Decimal("100.00"),
        "price_per_person": True,
        "duration": 60,
        "min_capacity": 1,
        "max_capacity": 10,
        "is_active": True,
        "available_days": ["MONDAY"],
        "start_time": "09:00",
        "end_time": "11:00",
        "slot_interval": 60,
        "advance_booking_hours": 24,
        "requires_reservation": True,
    }
    config.update(overrides)
    return config


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_service(db):
    def _make(**overrides) -> HotelService:
        service = HotelService(**service_config(**overrides))
        db.add(service)
        db.commit()
        db.refresh(service)
        return service
    return _make


@pytest.fixture
def service(make_service):
    return make_service()


def _make_user(db, email: str, role: UserRole) -> User:
    user = User(
        email=email,
        password_hash=get_password_hash("secret123"),
        full_name=email.split("@")[0].title(),
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def guest(db):
    return _make_user(db, "guest@example.com", UserRole.GUEST)


@pytest.fixture
def other_guest(db):
    return _make_user(db, "other@example.com", UserRole.GUEST)


@pytest.fixture
def operator(db):
    return _make_user(db, "operator@example.com", UserRole.OPERATOR)


@pytest.fixture
def guest_headers(guest):
    return {"Authorization": f"Bearer {create_access_token(str(guest.id))}"}


@pytest.fixture
def operator_headers(operator):
    return {"Authorization": f"Bearer {create_access_token(str(operator.id))}"}


@pytest.fixture
def reservation(db, guest):
    stay = Reservation(
        user_id=guest.id,
        room_number="204",
        check_in=date(2030, 1, 5),
        check_out=date(2030, 1, 12),
        status=ReservationStatus.CONFIRMED,
    )
    db.add(stay)
    db.commit()
    db.refresh(stay)
    return stay
