"""HTTP middleware for request tracing, logging, and security headers."""

import time
import uuid

from fastapi import Request

from .config import settings
from .logger import logger


# ==================== Request ID Middleware ====================

async def add_request_id_middleware(request: Request, call_next):
    """Tag each request with an X-Request-ID (client supplied or generated) for log correlation."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ==================== Request Logging Middleware ====================

async def request_logging_middleware(request: Request, call_next):
    """Log method, path, status and duration of every request."""
    started = time.perf_counter()
    request_id = getattr(request.state, "request_id", "unknown")

    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(
            f"[{request_id}] {request.method} {request.url.path} - "
            f"Error: {e} - Duration: {time.perf_counter() - started:.3f}s",
            exc_info=True,
        )
        raise

    logger.info(
        f"[{request_id}] {request.method} {request.url.path} - "
        f"Status: {response.status_code} - Duration: {time.perf_counter() - started:.3f}s"
    )
    return response


# ==================== Security Headers Middleware ====================

async def security_headers_middleware(request: Request, call_next):
    response = await call_next(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"

    # Uploaded images are embedded by the client from another origin
    if request.url.path.startswith(settings.UPLOAD_URL_PREFIX):
        response.headers["Cross-Origin-Resource-Policy"] = "cross-origin"

    if settings.APP_ENV == "production":
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

    return response
