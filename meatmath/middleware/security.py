"""
Security Headers Middleware

Adds browser hardening headers to every response, times the request and
logs it.
"""
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
import time
from meatmath.utils.logging import get_logger

logger = get_logger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Content-Security-Policy": (
        "default-src 'self'; "
        "style-src 'self' 'unsafe-inline' https://fonts.googleapis.com; "
        "font-src 'self' https://fonts.gstatic.com; "
        "img-src 'self' data: https:; "
        "script-src 'self'; "
        "connect-src 'self'"
    ),
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Security headers, X-Process-Time, and one log line per request."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time

        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        response.headers["X-Process-Time"] = str(process_time)

        if request.url.path.startswith("/api"):
            logger.info(
                f"{request.method} {request.url.path} {response.status_code} in {process_time * 1000:.0f}ms",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": round(process_time * 1000, 1),
                }
            )

        return response
