from .request_id_middleware import *
from .security_middleware import *
from .auth_middleware import *

__all__ = [
    "RequestIDMiddleware",
    "SecurityHeadersMiddleware",
    "AuthMiddleware",
    "AuthState",
    "get_current_user",
    "require_user_type",
    "require_admin",
    "require_industry",
    "require_collector",
]
