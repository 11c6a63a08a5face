"""Request validation utilities using Pydantic.

This module provides a decorator for validating Flask request bodies against
Pydantic schemas, converting validation errors to the standardized error
format used throughout the API.
"""

from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

from flask import request
from pydantic import BaseModel, ValidationError

from tinycore.api.errors import invalid_json_error, validation_error
from tinycore.api.utils import get_request_json
from tinycore.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)


def pydantic_to_error_response(
    error: ValidationError,
) -> tuple[dict[str, Any], int]:
    """Convert Pydantic ValidationError to standardized API error response.

    Pydantic error format:
    {
        "type": "value_error",
        "loc": ("field_name",),
        "msg": "Human-readable message",
        "input": <invalid_value>,
    }

    Our error format:
    {
        "error": {
            "code": "VALIDATION_ERROR",
            "message": "Human-readable message",
            "retryable": false,
            "details": {"field": "field_name"}
        }
    }
    """
    # Get first error (most relevant)
    first_error = error.errors()[0]

    loc = first_error.get("loc", ())
    field = ".".join(str(x) for x in loc) if loc else None

    message = first_error.get("msg", "Invalid input")

    # Custom validators raise ValueError, which pydantic prefixes
    if message.startswith("Value error, "):
        message = message[13:]

    logger.debug(
        "Pydantic validation failed",
        extra={
            "field": field,
            "error": message,
            "error_count": len(error.errors()),
        },
    )

    return validation_error(message, field=field)


def validate_request(
    schema_class: type[T],
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorator that validates request JSON against a Pydantic schema.

    Usage:
        @api.route("/endpoint", methods=["POST"])
        @require_auth
        @validate_request(MyRequestSchema)
        def my_endpoint(data: MyRequestSchema, user: User) -> ...:
            # data is the validated Pydantic model instance
            ...

    The decorator:
    1. Parses request JSON using get_request_json()
    2. Validates against the schema
    3. On success: passes validated model as first positional arg
    4. On failure: returns standardized error response

    Note: This decorator should be placed AFTER @require_auth so that
    auth errors are returned before validation is attempted.
    """

    def decorator(f: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(f)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            data = get_request_json(request)
            if data is None:
                return invalid_json_error()

            try:
                validated = schema_class.model_validate(data)
            except ValidationError as e:
                return pydantic_to_error_response(e)

            return f(validated, *args, **kwargs)

        return wrapper

    return decorator
