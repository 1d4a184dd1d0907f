from typing import Optional, Tuple

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from smart_waste.config.settings import settings
from smart_waste.db.models import User, UserType
from smart_waste.db.session import get_sync_session
from smart_waste.schemas.auth_schemas import (
    AuthResponse,
    RegisterRequest,
    ResetPasswordRequest,
    UserResponse,
)
from smart_waste.utils.auth import AuthUtils
from smart_waste.utils.datetime_utils import naive_utc_now
from smart_waste.utils.errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from smart_waste.utils.logging import get_logger

logger = get_logger()

SELF_REGISTERABLE_TYPES = (UserType.CITIZEN, UserType.INDUSTRY, UserType.PICKUP_AGENT)


class AuthService:
    """Authentication service for registration, login and password resets"""

    def __init__(self, db_session: Session):
        self.db = db_session

    async def get_user_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(User.email == email.strip().lower())
        return self.db.execute(stmt).scalar_one_or_none()

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        return self.db.get(User, user_id)

    @staticmethod
    def _issue_token(user: User) -> str:
        return AuthUtils.generate_access_token(
            user_id=user.id,
            email=user.email,
            name=user.name,
            user_type=user.user_type.value,
        )

    async def register(self, request: RegisterRequest) -> AuthResponse:
        """Create an account and return it with a fresh access token"""
        if request.user_type not in SELF_REGISTERABLE_TYPES:
            raise AuthorizationError(
                "Admin accounts cannot be self-registered", "INVALID_USER_TYPE"
            )
        if request.user_type == UserType.INDUSTRY and not (
            request.company_name and request.industry_type
        ):
            raise ValidationError(
                "Company name and industry type are required for industry accounts",
                "INDUSTRY_FIELDS_REQUIRED",
            )
        if await self.get_user_by_email(request.email):
            raise ConflictError("User already exists with this email", "EMAIL_TAKEN")

        address = request.address
        user = User(
            name=request.name.strip(),
            email=request.email,
            password_hash=AuthUtils.hash_password(request.password),
            user_type=request.user_type,
            phone=request.phone,
            street=address.street if address else None,
            city=address.city if address else None,
            state=address.state if address else None,
            pincode=address.pincode if address else None,
            latitude=address.latitude if address else None,
            longitude=address.longitude if address else None,
        )
        if request.user_type == UserType.INDUSTRY:
            user.company_name = request.company_name
            user.industry_type = request.industry_type
            user.waste_generation_capacity = request.waste_generation_capacity

        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("User already exists with this email", "EMAIL_TAKEN")
        self.db.refresh(user)

        logger.info(f"Registered {user.user_type.value} user {user.id}")
        return AuthResponse(token=self._issue_token(user), user=UserResponse.from_user(user))

    async def login(self, email: str, password: str) -> AuthResponse:
        user = await self.get_user_by_email(email)
        if not user or not AuthUtils.verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid email or password", "INVALID_CREDENTIALS")

        user.last_login = naive_utc_now()
        self.db.commit()
        self.db.refresh(user)

        logger.info(f"User {user.id} logged in")
        return AuthResponse(token=self._issue_token(user), user=UserResponse.from_user(user))

    async def forgot_password(self, email: str) -> Tuple[str, str]:
        """
        Issue a password reset token for the account.

        Only the sha256 digest is stored. Email delivery is not wired up, so
        the reset link is written to the log instead.

        Returns:
            The raw token and the reset URL
        """
        user = await self.get_user_by_email(email)
        if not user:
            raise NotFoundError("No user found with this email", "USER_NOT_FOUND")

        raw_token, hashed_token, expires = AuthUtils.generate_reset_token()
        user.reset_password_token = hashed_token
        user.reset_password_expire = expires
        self.db.commit()

        reset_url = f"{settings.FRONTEND_URL}/reset-password/{raw_token}"
        logger.info(f"Password reset requested for user {user.id}: {reset_url}")
        return raw_token, reset_url

    async def reset_password(
        self, raw_token: str, request: ResetPasswordRequest
    ) -> AuthResponse:
        hashed_token = AuthUtils.hash_reset_token(raw_token)
        user = self.db.execute(
            select(User).where(
                User.reset_password_token == hashed_token,
                User.reset_password_expire > naive_utc_now(),
            )
        ).scalar_one_or_none()
        if not user:
            raise ValidationError("Invalid or expired reset token", "INVALID_RESET_TOKEN")

        user.password_hash = AuthUtils.hash_password(request.password)
        user.reset_password_token = None
        user.reset_password_expire = None
        self.db.commit()
        self.db.refresh(user)

        logger.info(f"Password reset completed for user {user.id}")
        return AuthResponse(token=self._issue_token(user), user=UserResponse.from_user(user))

    async def get_profile(self, user_id: str) -> UserResponse:
        user = await self.get_user_by_id(user_id)
        if not user:
            raise NotFoundError("User not found", "USER_NOT_FOUND")
        return UserResponse.from_user(user)


def get_auth_service(db: Session = Depends(get_sync_session)) -> AuthService:
    return AuthService(db)
