"""Standardized error response utilities for the API.

This module provides a consistent error response format across all API endpoints,
so clients (including tinycore.client) can categorize errors and decide whether
a retry makes sense.
"""

from enum import Enum
from typing import Any

from flask import Flask
from werkzeug.exceptions import HTTPException

from tinycore.config import Config
from tinycore.errors import ErrorKind, ServiceError
from tinycore.utils.logging import get_logger

logger = get_logger(__name__)


class ErrorCode(str, Enum):
    """Error codes for API responses."""

    # Authentication errors
    AUTH_REQUIRED = "AUTH_REQUIRED"  # Missing authentication
    AUTH_INVALID = "AUTH_INVALID"  # Invalid token/credentials
    AUTH_EXPIRED = "AUTH_EXPIRED"  # Token expired
    AUTH_FORBIDDEN = "AUTH_FORBIDDEN"  # Valid auth but not allowed

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"  # Invalid input data
    INVALID_FORMAT = "INVALID_FORMAT"  # Body is not a JSON object

    # Resource errors
    NOT_FOUND = "NOT_FOUND"  # Resource doesn't exist
    CONFLICT = "CONFLICT"  # Resource already exists

    # Server errors (potentially retryable)
    SERVER_ERROR = "SERVER_ERROR"  # Generic server error
    RATE_LIMITED = "RATE_LIMITED"  # Too many requests


# Errors that a client may safely retry automatically (for idempotent operations)
RETRYABLE_ERRORS = {
    ErrorCode.RATE_LIMITED,
    ErrorCode.SERVER_ERROR,  # May be transient
}

# How service-layer failures surface over HTTP
SERVICE_ERROR_CODES = {
    ErrorKind.VALIDATION: ErrorCode.VALIDATION_ERROR,
    ErrorKind.AUTHENTICATION_FAILED: ErrorCode.AUTH_INVALID,
    ErrorKind.REGISTRATION_CLOSED: ErrorCode.AUTH_FORBIDDEN,
    ErrorKind.NOT_FOUND: ErrorCode.NOT_FOUND,
    ErrorKind.DUPLICATE_KEY: ErrorCode.CONFLICT,
    ErrorKind.CONSTRAINT_VIOLATION: ErrorCode.VALIDATION_ERROR,
    ErrorKind.INTERNAL: ErrorCode.SERVER_ERROR,
}


def is_retryable(code: ErrorCode) -> bool:
    """Check if an error code indicates a retryable error."""
    return code in RETRYABLE_ERRORS


def create_error_response(
    code: ErrorCode,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Create a standardized error response.

    Args:
        code: Error code enum value
        message: Human-readable error message (safe to show to users)
        details: Optional additional details (e.g., field name for validation errors)

    Returns:
        Dict with standardized error structure:
        {
            "error": {
                "code": "ERROR_CODE",
                "message": "Human-readable message",
                "retryable": true/false,
                "details": {...}  # optional
            }
        }
    """
    error_data: dict[str, Any] = {
        "code": code.value,
        "message": message,
        "retryable": is_retryable(code),
    }

    if details:
        error_data["details"] = details

    return {"error": error_data}


# Convenience functions for common error types


def validation_error(message: str, field: str | None = None) -> tuple[dict[str, Any], int]:
    """Create a validation error response (400)."""
    details = {"field": field} if field else None
    return create_error_response(ErrorCode.VALIDATION_ERROR, message, details), 400


def auth_required_error() -> tuple[dict[str, Any], int]:
    """Create an authentication required error response (401)."""
    return create_error_response(
        ErrorCode.AUTH_REQUIRED,
        "Authentication required",
    ), 401


def auth_invalid_error(message: str = "Invalid credentials") -> tuple[dict[str, Any], int]:
    """Create an invalid authentication error response (401)."""
    return create_error_response(
        ErrorCode.AUTH_INVALID,
        message,
    ), 401


def auth_expired_error(message: str = "Token has expired") -> tuple[dict[str, Any], int]:
    """Create an expired token error response (401)."""
    return create_error_response(
        ErrorCode.AUTH_EXPIRED,
        message,
    ), 401


def server_error(
    message: str = "An unexpected error occurred. Please try again.",
) -> tuple[dict[str, Any], int]:
    """Create a generic server error response (500).

    Note: Never expose internal error details to users outside development.
    Log them server-side instead.
    """
    return create_error_response(ErrorCode.SERVER_ERROR, message), 500


def rate_limited_error(
    message: str = "Too many requests. Please slow down.",
    retry_after: int | None = None,
) -> tuple[dict[str, Any], int]:
    """Create a rate limited error response (429)."""
    details = {"retry_after": retry_after} if retry_after else None
    return create_error_response(ErrorCode.RATE_LIMITED, message, details), 429


def invalid_json_error() -> tuple[dict[str, Any], int]:
    """Create an invalid JSON error response (400)."""
    return create_error_response(
        ErrorCode.INVALID_FORMAT,
        "Invalid JSON in request body",
    ), 400


def service_error_response(error: ServiceError) -> tuple[dict[str, Any], int]:
    """Translate a service-layer exception into the standard error response."""
    code = SERVICE_ERROR_CODES.get(error.kind, ErrorCode.SERVER_ERROR)
    details = {"field": error.field} if error.field else None
    return create_error_response(code, error.message, details), error.status_code


def register_error_handlers(app: Flask) -> None:
    """Install handlers that turn exceptions escaping a view into error bodies."""

    @app.errorhandler(ServiceError)
    def handle_service_error(e: ServiceError) -> tuple[dict[str, Any], int]:
        logger.info(
            "Request failed",
            extra={"kind": e.kind.value, "status_code": e.status_code, "error": e.message},
        )
        return service_error_response(e)

    @app.errorhandler(Exception)
    def handle_unexpected_error(e: Exception) -> Any:
        if isinstance(e, HTTPException):
            return e

        logger.error("Unhandled exception", extra={"error": str(e)}, exc_info=True)
        if Config.is_development():
            return server_error(f"{type(e).__name__}: {e}")
        return server_error()
