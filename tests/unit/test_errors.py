"""Tests for the service error hierarchy and its HTTP translation."""

import pytest

from tinycore.api.errors import ErrorCode, create_error_response, service_error_response
from tinycore.errors import (
    AuthenticationFailed,
    ConstraintViolation,
    DuplicateEmail,
    DuplicateId,
    DuplicateKey,
    InvalidCredentials,
    InvalidToken,
    NotFound,
    RegistrationClosed,
    ServiceError,
    TokenExpired,
    ValidationError,
)


class TestHierarchy:
    def test_token_expired_is_invalid_token(self) -> None:
        assert issubclass(TokenExpired, InvalidToken)
        assert issubclass(InvalidToken, AuthenticationFailed)
        assert issubclass(InvalidCredentials, AuthenticationFailed)

    def test_duplicates(self) -> None:
        assert issubclass(DuplicateEmail, DuplicateKey)
        assert issubclass(DuplicateId, DuplicateKey)

    def test_default_and_custom_message(self) -> None:
        assert NotFound().message == "Resource not found"
        assert NotFound("Key not found").message == "Key not found"
        assert str(ValidationError("bad", field="email")) == "bad"


class TestServiceErrorResponse:
    @pytest.mark.parametrize(
        ("error", "status", "code"),
        [
            (ValidationError("bad"), 400, ErrorCode.VALIDATION_ERROR),
            (InvalidCredentials(), 401, ErrorCode.AUTH_INVALID),
            (RegistrationClosed(), 403, ErrorCode.AUTH_FORBIDDEN),
            (NotFound(), 404, ErrorCode.NOT_FOUND),
            (DuplicateEmail(), 409, ErrorCode.CONFLICT),
            (ConstraintViolation(), 400, ErrorCode.VALIDATION_ERROR),
            (ServiceError(), 500, ErrorCode.SERVER_ERROR),
        ],
    )
    def test_mapping(self, error: ServiceError, status: int, code: ErrorCode) -> None:
        body, status_code = service_error_response(error)

        assert status_code == status
        assert body["error"]["code"] == code.value
        assert body["error"]["message"] == error.message

    def test_field_becomes_details(self) -> None:
        body, _ = service_error_response(ValidationError("bad", field="key"))

        assert body["error"]["details"] == {"field": "key"}


class TestCreateErrorResponse:
    def test_shape(self) -> None:
        body = create_error_response(ErrorCode.NOT_FOUND, "Key not found")

        assert body == {
            "error": {"code": "NOT_FOUND", "message": "Key not found", "retryable": False}
        }

    def test_server_errors_are_retryable(self) -> None:
        body = create_error_response(ErrorCode.SERVER_ERROR, "oops", {"x": 1})

        assert body["error"]["retryable"] is True
        assert body["error"]["details"] == {"x": 1}
