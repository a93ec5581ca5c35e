"""
HTTP middleware for the public API.

Implements:
- Rate limiting with slowapi
- Security headers (OWASP recommended)
- Request logging with a per-request id
"""

import time
import uuid
import logging
from typing import Callable

from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from app.core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


# =============================================================================
# RATE LIMITING
# =============================================================================

def get_client_ip(request: Request) -> str:
    """Get client IP, accounting for proxies."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip
    return get_remote_address(request)


def get_storage_uri() -> str:
    """Get rate limiter storage URI with fallback to memory."""
    redis_url = settings.redis_url or ""
    if redis_url.startswith(("redis://", "rediss://", "memory://")):
        return redis_url
    return "memory://"


limiter = Limiter(
    key_func=get_client_ip,
    default_limits=[settings.rate_limit_default],
    storage_uri=get_storage_uri(),
    enabled=settings.rate_limit_enabled,
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning("Rate limit exceeded: IP=%s, path=%s", get_client_ip(request), request.url.path)
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"error": "rate_limit_exceeded", "message": "Too many requests. Please try again later.", "retry_after": 60},
        headers={"Retry-After": "60"},
    )


# =============================================================================
# SECURITY HEADERS MIDDLEWARE
# =============================================================================

class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds OWASP-recommended security headers."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if settings.environment == "production":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


# =============================================================================
# REQUEST LOGGING MIDDLEWARE
# =============================================================================

class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs every request with its status and latency."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
        start_time = time.time()
        request.state.request_id = request_id
        path = request.url.path

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error("[%s] %s %s -> ERROR error=%s", request_id, request.method, path, e)
            raise

        duration_ms = int((time.time() - start_time) * 1000)
        if response.status_code >= 500:
            logger.error("[%s] %s %s -> %d (%dms)", request_id, request.method, path, response.status_code, duration_ms)
        elif response.status_code >= 400:
            logger.warning("[%s] %s %s -> %d (%dms)", request_id, request.method, path, response.status_code, duration_ms)
        else:
            logger.debug("[%s] %s %s -> %d (%dms)", request_id, request.method, path, response.status_code, duration_ms)

        response.headers["X-Request-ID"] = request_id
        return response


# =============================================================================
# SETUP FUNCTION
# =============================================================================

def setup_security_middleware(app: FastAPI) -> None:
    """Configure rate limiting, security headers and request logging."""
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    logger.info("Security middleware configured (rate limit %s, enabled=%s)", settings.rate_limit_default, settings.rate_limit_enabled)
