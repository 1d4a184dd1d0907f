from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, Tuple
import hashlib
import secrets
import uuid
import jwt
from passlib.context import CryptContext

from smart_waste.config.settings import settings

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class AuthUtils:
    """Authentication utilities for JWT token management and password hashing"""

    @staticmethod
    def hash_password(password: str) -> str:
        return pwd_context.hash(password)

    @staticmethod
    def verify_password(password: str, password_hash: Optional[str]) -> bool:
        if not password_hash:
            return False
        try:
            return pwd_context.verify(password, password_hash)
        except ValueError:
            return False

    @staticmethod
    def generate_access_token(
        user_id: str, email: str, name: str, user_type: str
    ) -> str:
        """Generate JWT access token with user information"""
        now = datetime.now(timezone.utc)
        expire = now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

        payload = {
            "sub": str(user_id),  # Subject (user ID)
            "email": email,
            "name": name,
            "user_type": user_type,
            "iat": now,  # Issued at
            "exp": expire,  # Expiration
            "jti": str(uuid.uuid4()),  # JWT ID for uniqueness
        }

        return jwt.encode(
            payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM
        )

    @staticmethod
    def verify_access_token(token: str) -> Optional[Dict[str, Any]]:
        """Verify and decode access token"""
        try:
            return jwt.decode(
                token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
            )
        except jwt.ExpiredSignatureError:
            return None
        except jwt.InvalidTokenError:
            return None

    @staticmethod
    def hash_reset_token(raw_token: str) -> str:
        return hashlib.sha256(raw_token.encode()).hexdigest()

    @staticmethod
    def generate_reset_token() -> Tuple[str, str, datetime]:
        """
        Create a password reset token.

        Returns the raw token (sent to the user), its sha256 digest (stored)
        and the naive UTC expiry.
        """
        raw_token = secrets.token_hex(20)
        expires = datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(
            minutes=settings.RESET_TOKEN_EXPIRE_MINUTES
        )
        return raw_token, AuthUtils.hash_reset_token(raw_token), expires

    @staticmethod
    def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
        """Extract token from 'Bearer <token>' header"""
        if not authorization:
            return None
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            return None
        return token.strip()
