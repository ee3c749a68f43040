"""Global exception handlers for consistent error responses.

This module provides FastAPI exception handlers that intercept all errors
(domain and unexpected) and return JSON responses in the dashboard's
``{"success": false, "error": ...}`` envelope.

Design:
- AppError subclasses → appropriate HTTP status (400, 429, 500)
- Malformed or wrong-typed request bodies → 400 validation_error
- Unexpected Exception → generic 500 (safety net)
- All responses include request_id for distributed tracing
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from scrapegate.core.errors import (
    AppError,
    ConfigurationAppError,
    RateLimitExceededError,
    ScrapingAppError,
)
from scrapegate.core.logging import get_request_id

logger = logging.getLogger(__name__)


def status_code_for(exc: AppError) -> int:
    """Map a domain error to its HTTP status code."""
    if isinstance(exc, RateLimitExceededError):
        return 429
    if isinstance(exc, (ConfigurationAppError, ScrapingAppError)):
        return 500
    return 400


def _error_body(code: str, message: str) -> dict:
    return {
        "success": False,
        "error": message,
        "code": code,
        "request_id": get_request_id(),
    }


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    Routes domain errors to HTTP status codes:
    - ValidationAppError → 400 Bad Request (client fault)
    - RateLimitExceededError → 429 Too Many Requests, with quota headers
    - ConfigurationAppError / ScrapingAppError → 500 (server fault)

    Server-side details are logged but only client errors echo ``details``.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error body.
    """
    status_code = status_code_for(exc)

    # Rate limiting already logs its own event with the hashed key.
    if not isinstance(exc, RateLimitExceededError):
        log = logger.error if status_code >= 500 else logger.warning
        log(
            "app_error_handled",
            extra={
                "error_code": exc.code,
                "error_message": exc.message,
                "status_code": status_code,
                "has_details": bool(exc.details),
                "request_path": request.url.path,
            },
        )

    content = _error_body(exc.code, exc.message)
    if exc.details and status_code < 500:
        content["details"] = exc.details

    headers = exc.headers if isinstance(exc, RateLimitExceededError) else None
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return body and parameter validation failures in the error envelope.

    Only the offending locations are echoed; pydantic's input values stay
    out of the response.
    """
    fields = [
        ".".join(str(part) for part in error.get("loc", ()))
        for error in exc.errors()
    ]
    logger.warning(
        "request_validation_failed",
        extra={"fields": fields, "request_path": request.url.path},
    )

    content = _error_body("validation_error", "Invalid request body")
    content["details"] = {"fields": fields}
    return JSONResponse(status_code=400, content=content)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic
    message. No stack traces or exception text reach the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content=_error_body("internal_server_error", "Internal server error"),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Example:
        >>> from fastapi import FastAPI
        >>> app = FastAPI()
        >>> setup_exception_handlers(app)
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(Exception)(general_exception_handler)
