"""Service-layer exceptions.

Database mixins and the auth service raise these; the HTTP layer maps them to
status codes and the standard error body (see tinycore/api/errors.py). The
message of a ServiceError is always safe to show to the caller.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Machine-readable category of a service failure."""

    VALIDATION = "validation_error"
    AUTHENTICATION_FAILED = "authentication_failed"
    REGISTRATION_CLOSED = "registration_closed"
    NOT_FOUND = "not_found"
    DUPLICATE_KEY = "duplicate_key"
    CONSTRAINT_VIOLATION = "constraint_violation"
    INTERNAL = "internal_error"


class ServiceError(Exception):
    """Base class for failures that carry a user-safe message."""

    kind: ErrorKind = ErrorKind.INTERNAL
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, *, field: str | None = None) -> None:
        self.message = message or self.default_message
        self.field = field
        super().__init__(self.message)


class ValidationError(ServiceError):
    kind = ErrorKind.VALIDATION
    status_code = 400
    default_message = "Invalid input"


class AuthenticationFailed(ServiceError):
    kind = ErrorKind.AUTHENTICATION_FAILED
    status_code = 401
    default_message = "Authentication failed"


class InvalidCredentials(AuthenticationFailed):
    # Same text for unknown email and wrong password
    default_message = "Invalid email or password"


class InvalidToken(AuthenticationFailed):
    default_message = "Invalid token"


class TokenExpired(InvalidToken):
    default_message = "Token has expired"


class RegistrationClosed(ServiceError):
    kind = ErrorKind.REGISTRATION_CLOSED
    status_code = 403
    default_message = "Registration is not allowed. System already has users."


class NotFound(ServiceError):
    """Missing resource, or one that belongs to someone else."""

    kind = ErrorKind.NOT_FOUND
    status_code = 404
    default_message = "Resource not found"


class DuplicateKey(ServiceError):
    kind = ErrorKind.DUPLICATE_KEY
    status_code = 409
    default_message = "Resource already exists"


class DuplicateEmail(DuplicateKey):
    default_message = "Email already exists"


class DuplicateId(DuplicateKey):
    default_message = "Application ID already exists"


class ConstraintViolation(ServiceError):
    kind = ErrorKind.CONSTRAINT_VIOLATION
    status_code = 400
    default_message = "Invalid owner_id or app_id"
