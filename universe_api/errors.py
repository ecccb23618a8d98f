"""Error taxonomy and the exception handlers that turn it into JSON responses.

Every error body has the shape ``{"error": <message>, "details": <optional>}``.
"""

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .logger import logger
from .models import Role


class AppError(Exception):
    """Base class for errors that map to a specific HTTP status."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Any = None, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.details = details
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT


# ==================== Response Helpers ====================

_VALIDATION_MESSAGES = {
    "body": "Validation error",
    "query": "Query validation error",
    "path": "Params validation error",
}

_ROLE_TAGS = frozenset(role.value for role in Role)


def error_body(message: str, details: Any = None) -> dict:
    body: dict[str, Any] = {"error": message}
    if details is not None:
        body["details"] = details
    return body


def format_validation_errors(errors: list[dict]) -> list[dict]:
    """Flatten pydantic errors into ``{path, message}`` pairs, one per failing field."""
    formatted = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ())]
        if loc and loc[0] in _VALIDATION_MESSAGES:
            source, loc = loc[0], loc[1:]
            # Registration bodies are a tagged union; the tag is not a field
            if source == "body" and loc and loc[0] in _ROLE_TAGS:
                loc = loc[1:]
        formatted.append({"path": ".".join(loc), "message": err.get("msg", "Invalid value")})
    return formatted


# ==================== Handlers ====================

async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message, exc.details),
        headers=headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    source = errors[0]["loc"][0] if errors and errors[0].get("loc") else "body"
    message = _VALIDATION_MESSAGES.get(source, "Validation error")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(message, format_validation_errors(errors)),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)) if not isinstance(exc.detail, dict) else exc.detail,
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "unknown")
    logger.error(
        f"[{request_id}] Unhandled error on {request.method} {request.url.path}: {exc}",
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Internal server error"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
