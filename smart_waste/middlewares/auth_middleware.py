from typing import Optional, Callable
from fastapi import Depends, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from smart_waste.config.settings import settings
from smart_waste.utils.auth import AuthUtils
from smart_waste.utils.context import set_user_id
from smart_waste.utils.errors import AuthenticationError, AuthorizationError
from smart_waste.utils.responses import ResponseBuilder
from smart_waste.utils.logging import get_logger

logger = get_logger()


class AuthState:
    """Authentication state to be stored in request.state"""

    def __init__(
        self,
        user_id: str,
        email: str,
        name: str,
        user_type: str,
        is_authenticated: bool = True,
    ):
        self.user_id = user_id
        self.email = email
        self.name = name
        self.user_type = user_type
        self.is_authenticated = is_authenticated

    @property
    def is_admin(self) -> bool:
        return self.user_type == "admin"


def _public_paths(prefix: str) -> set:
    return {
        "/health",
        "/docs",
        "/redoc",
        "/openapi.json",
        f"{prefix}/health",
        f"{prefix}/auth/register",
        f"{prefix}/auth/login",
        f"{prefix}/auth/forgot-password",
        f"{prefix}/auth/reset-password/",
        f"{prefix}/waste/search",
        f"{prefix}/industry/waste/track/",
        f"{prefix}/waste-tracking/track/",
    }


class AuthMiddleware(BaseHTTPMiddleware):
    """Bearer token authentication middleware"""

    def __init__(self, app, excluded_paths: Optional[set] = None):
        super().__init__(app)
        self.excluded_paths = _public_paths(settings.API_PREFIX)
        if excluded_paths:
            self.excluded_paths.update(excluded_paths)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request through authentication middleware"""

        # Skip authentication for OPTIONS requests (CORS preflight)
        if request.method == "OPTIONS":
            return await call_next(request)

        auth_state = self._authenticate_request(request)
        if auth_state:
            request.state.auth = auth_state
            set_user_id(auth_state.user_id)
            return await call_next(request)

        # Skip authentication for excluded paths
        if self._is_excluded_path(request.url.path):
            return await call_next(request)

        has_header = bool(request.headers.get("authorization"))
        logger.warning(
            f"Rejected unauthenticated request to {request.url.path} "
            f"(token {'invalid' if has_header else 'missing'})"
        )
        return ResponseBuilder.error(
            request=request,
            message=(
                "Not authorized, token failed"
                if has_header
                else "Not authorized, no token"
            ),
            error_code="UNAUTHORIZED",
            status_code=401,
        )

    def _is_excluded_path(self, path: str) -> bool:
        """Check if path is excluded from authentication"""
        return any(path.startswith(excluded) for excluded in self.excluded_paths)

    @staticmethod
    def _authenticate_request(request: Request) -> Optional[AuthState]:
        token = AuthUtils.extract_bearer_token(request.headers.get("authorization"))
        if not token:
            return None

        payload = AuthUtils.verify_access_token(token)
        if not payload:
            return None

        user_id = payload.get("sub")
        user_type = payload.get("user_type")
        if not all([user_id, user_type]):
            return None

        return AuthState(
            user_id=str(user_id),
            email=str(payload.get("email", "")),
            name=str(payload.get("name", "")),
            user_type=str(user_type),
        )


# Dependency for getting current user from request state
def get_current_user(request: Request) -> AuthState:
    """Dependency to get current authenticated user from request state"""
    auth_state = getattr(request.state, "auth", None)

    if not auth_state or not auth_state.is_authenticated:
        raise AuthenticationError("Not authorized, no token", "NOT_AUTHENTICATED")

    return auth_state


# Dependency for requiring specific user types
def require_user_type(*allowed_types: str):
    """Create dependency that requires specific user types"""

    def check_user_type(
        current_user: AuthState = Depends(get_current_user),
    ) -> AuthState:
        if current_user.user_type not in allowed_types:
            raise AuthorizationError(
                f"User role '{current_user.user_type}' is not authorized to access this route",
                "INSUFFICIENT_PERMISSIONS",
            )
        return current_user

    return check_user_type


# Pre-defined dependencies for common user types
require_admin = require_user_type("admin")
require_industry = require_user_type("industry")
require_collector = require_user_type("admin", "pickup_agent")
