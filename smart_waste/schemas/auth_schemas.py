from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from smart_waste.db.models import IndustryType, User, UserType
from .camel_base_model import CamelCaseBaseModel as BaseModel

PHONE_PATTERN = r"^\d{10}$"


class AddressSchema(BaseModel):
    """Postal address with optional coordinates"""

    street: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    pincode: Optional[str] = Field(None, max_length=10)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class RegisterRequest(BaseModel):
    """Registration request schema"""

    name: str = Field(..., min_length=1, max_length=100, description="Full name")
    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., min_length=6, max_length=72, description="Password")
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN, description="10 digit phone")
    user_type: UserType = Field(UserType.CITIZEN, description="Account type")
    address: Optional[AddressSchema] = None
    company_name: Optional[str] = Field(None, max_length=200)
    industry_type: Optional[IndustryType] = None
    waste_generation_capacity: Optional[float] = Field(
        None, ge=0, description="Tons per month"
    )


class LoginRequest(BaseModel):
    """Login request schema"""

    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., min_length=1, description="Password")


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    password: str = Field(..., min_length=6, max_length=72)


class UpdateProfileRequest(BaseModel):
    """Partial profile update; omitted fields are left unchanged"""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    address: Optional[AddressSchema] = None
    company_name: Optional[str] = Field(None, max_length=200)
    industry_type: Optional[IndustryType] = None
    waste_generation_capacity: Optional[float] = Field(None, ge=0)


class UserResponse(BaseModel):
    """User response schema"""

    id: str = Field(..., description="User ID")
    name: str = Field(..., description="Full name")
    email: str = Field(..., description="Email address")
    user_type: UserType = Field(..., description="User type")
    phone: Optional[str] = None
    address: Optional[AddressSchema] = None
    company_name: Optional[str] = None
    industry_type: Optional[IndustryType] = None
    waste_generation_capacity: Optional[float] = None
    points: int = 0
    level: int = 1
    is_verified: bool = False
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_user(cls, user: User, **extra) -> "UserResponse":
        address = None
        if any([user.street, user.city, user.state, user.pincode]):
            address = AddressSchema(
                street=user.street,
                city=user.city,
                state=user.state,
                pincode=user.pincode,
                latitude=user.latitude,
                longitude=user.longitude,
            )
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            user_type=user.user_type,
            phone=user.phone,
            address=address,
            company_name=user.company_name,
            industry_type=user.industry_type,
            waste_generation_capacity=user.waste_generation_capacity,
            points=user.points,
            level=user.level,
            is_verified=user.is_verified,
            last_login=user.last_login,
            created_at=user.created_at,
            **extra,
        )


class AuthResponse(BaseModel):
    """Token plus the authenticated user"""

    token: str
    user: UserResponse


class ProfileResponse(UserResponse):
    """User profile with pickup statistics"""

    total_pickups: int = 0
    completed_pickups: int = 0
    pending_pickups: int = 0
    waste_recycled: float = 0
