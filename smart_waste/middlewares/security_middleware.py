from typing import Callable, Dict, Optional
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

_COMMON_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Server": "FastAPI",
}

# JSON API only; nothing should frame or embed responses
PRODUCTION_HEADERS = {
    **_COMMON_HEADERS,
    "X-Frame-Options": "DENY",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none';",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=(), payment=()",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-site",
}

# Swagger UI needs inline scripts and CDN assets
DEVELOPMENT_HEADERS = {
    **_COMMON_HEADERS,
    "X-Frame-Options": "SAMEORIGIN",
    "Content-Security-Policy": "default-src 'self' 'unsafe-inline' 'unsafe-eval' https:; img-src 'self' data: https: http:; connect-src 'self' ws: wss:;",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app,
        production: bool = False,
        custom_headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(app)
        base_headers = PRODUCTION_HEADERS if production else DEVELOPMENT_HEADERS
        self.headers = {**base_headers, **(custom_headers or {})}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        for header_name, header_value in self.headers.items():
            response.headers[header_name] = header_value

        return response
