"""
Error handling and sanitization

- FilmflowError subclasses render as {"error": code, "message", "details"}
  with the status the exception class carries
- Request body/query validation failures render as VALIDATION_ERROR (400)
- Anything else is caught by ErrorSanitizationMiddleware: logged in full,
  returned as a generic 500 (full message only in DEBUG)
"""
import logging
import traceback
from typing import Union

from fastapi import Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from filmflow.core.config import settings
from filmflow.core.exceptions import FilmflowError

logger = logging.getLogger(__name__)

# Patterns that indicate internal/sensitive error information
SENSITIVE_PATTERNS = [
    "password",
    "secret",
    "token",
    "credential",
    "sqlalchemy",
    "asyncpg",
    "psycopg",
    "postgresql",
    "traceback",
    "file \"",
    "line ",
]


def is_sensitive_error(message: str) -> bool:
    """Check if error message contains sensitive information."""
    message_lower = message.lower()
    return any(pattern in message_lower for pattern in SENSITIVE_PATTERNS)


def sanitize_error_message(error: Union[str, Exception]) -> str:
    """
    Sanitize an error message for safe client exposure.

    Args:
        error: The error string or exception

    Returns:
        Sanitized error message safe for client
    """
    message = error if isinstance(error, str) else str(error)

    # In debug mode, return full message
    if settings.DEBUG:
        return message

    if is_sensitive_error(message):
        return "An internal error occurred. Please try again later."

    # Truncate very long messages
    if len(message) > 200:
        return message[:200] + "..."

    return message


async def filmflow_error_handler(request: Request, exc: FilmflowError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            f"{exc.code} on {request.method} {request.url.path}: {exc.message} details={exc.details}"
        )
    else:
        logger.info(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.code,
            "message": sanitize_error_message(exc.message) if exc.status_code >= 500 else exc.message,
            "details": exc.details,
        },
    )


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body") or None
    message = f"{field}: {first.get('msg')}" if field else str(first.get("msg", "Invalid request"))
    return JSONResponse(
        status_code=400,
        content={
            "error": "VALIDATION_ERROR",
            "message": message,
            "details": {"field": field, "errors": len(errors)},
        },
    )


class ErrorSanitizationMiddleware(BaseHTTPMiddleware):
    """
    Middleware to catch unhandled exceptions and sanitize error responses.

    - In production: Returns generic error, logs full details
    - In development: Returns full error for debugging
    """

    async def dispatch(self, request: Request, call_next):
        try:
            response = await call_next(request)
            return response
        except HTTPException:
            # Let FastAPI handle HTTPExceptions normally
            raise
        except Exception as e:
            error_id = f"{request.client.host if request.client else 'unknown'}-{id(e)}"
            logger.error(
                f"Unhandled exception [{error_id}]: {type(e).__name__}: {str(e)}\n"
                f"Path: {request.url.path}\n"
                f"Method: {request.method}\n"
                f"Traceback:\n{traceback.format_exc()}"
            )

            content = {
                "error": "INTERNAL_ERROR",
                "message": "An unexpected error occurred. Please try again later.",
                "details": {"error_id": error_id},
            }
            if settings.DEBUG:
                content["message"] = str(e)
                content["details"]["type"] = type(e).__name__
            return JSONResponse(status_code=500, content=content)
