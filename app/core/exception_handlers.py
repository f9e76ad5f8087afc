"""Global exception handlers for consistent error responses.

This module provides FastAPI exception handlers that intercept all errors
(domain and unexpected) and return consistent JSON responses with proper
HTTP status codes and traceability.

Design:
- AppError subclasses → appropriate HTTP status (400, 429, 500, 502)
- Request body validation failures → 400
- Unexpected Exception → generic 500 (safety net)
- The human-readable message is always a string under "error", which is
  what the chat widget displays
- All responses include request_id for distributed tracing
"""

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.errors import (
    AppError,
    ConfigurationAppError,
    LLMAppError,
    RateLimitAppError,
)
from app.core.logging import get_request_id

logger = logging.getLogger(__name__)


def _status_code_for(exc: AppError) -> int:
    if isinstance(exc, RateLimitAppError):
        return 429
    if isinstance(exc, ConfigurationAppError):
        return 500
    if isinstance(exc, LLMAppError):
        return 502
    return 400


def _error_body(code: str, message: str, details: Any = None) -> dict[str, Any]:
    body: dict[str, Any] = {
        "error": message,
        "code": code,
        "request_id": get_request_id(),
    }
    if details:
        body["details"] = details
    return body


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    Routes domain errors to appropriate HTTP status codes:
    - ValidationAppError → 400 Bad Request (client fault)
    - RateLimitAppError → 429 Too Many Requests
    - ConfigurationAppError → 500 Internal Server Error (details withheld)
    - LLMAppError → 502 Bad Gateway (upstream fault)

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error details.
    """
    status_code = _status_code_for(exc)

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_id": get_request_id(),
        },
    )

    # Configuration details describe the server, not the request
    details = None if isinstance(exc, ConfigurationAppError) else exc.details

    headers: dict[str, str] = {}
    if (
        isinstance(exc, RateLimitAppError)
        and settings.app.rate_limit_include_headers
        and exc.details
        and "retry_after" in exc.details
    ):
        headers["Retry-After"] = str(int(exc.details["retry_after"]))

    return JSONResponse(
        status_code=status_code,
        content=_error_body(exc.code, exc.message, details),
        headers=headers or None,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Map request body validation failures to 400 with a widget-friendly message."""
    logger.warning(
        "request_validation_failed",
        extra={
            "error_count": len(exc.errors()),
            "request_path": request.url.path,
            "request_id": get_request_id(),
        },
    )

    fields = sorted({".".join(str(p) for p in err.get("loc", ())) for err in exc.errors()})
    return JSONResponse(
        status_code=400,
        content=_error_body("invalid_request", "Invalid messages format", {"context": {"fields": fields}}),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Catches any exception not handled by specific handlers.
    Logs detailed information for debugging while returning generic message.
    Prevents information leakage (no stack traces to client).

    Args:
        request: FastAPI request object.
        exc: Exception instance (unexpected).

    Returns:
        JSONResponse with generic error (no implementation details leaked).
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        }
    )

    return JSONResponse(
        status_code=500,
        content=_error_body(
            "internal_server_error",
            "An unexpected error occurred. Please try again later.",
        ),
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with FastAPI app.

    Must be called during app initialization, before route registration.
    Order matters: specific handlers registered before general fallback.

    Args:
        app: FastAPI application instance.
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(Exception)(general_exception_handler)
