from typing import Optional
from pydantic import BaseModel, EmailStr, UUID4
from datetime import datetime

from app.models.user import UserRole


# Shared properties
class UserBase(BaseModel):
    email: EmailStr
    full_name: str
    phone: Optional[str] = None


# Properties to receive via API on creation (POST /auth/register)
class UserCreate(UserBase):
    password: str


# Staff registration (POST /auth/staff/register), guarded by ADMIN_SECRET_KEY
class StaffCreate(UserCreate):
    admin_secret: str
    role: UserRole = UserRole.OPERATOR


class User(UserBase):
    id: UUID4
    role: UserRole
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Compact user for nested responses (admin booking view)
class UserSummary(BaseModel):
    id: UUID4
    full_name: str
    email: str

    class Config:
        from_attributes = True


class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str
    user: User


# Token refresh (POST /auth/refresh)
class TokenRefresh(BaseModel):
    refresh_token: str
