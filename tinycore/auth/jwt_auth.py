from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from functools import wraps
from typing import TYPE_CHECKING, Any, TypeVar

import jwt
from flask import Request, request

from tinycore.api.errors import (
    auth_expired_error,
    auth_invalid_error,
    auth_required_error,
)
from tinycore.api.utils import get_db
from tinycore.config import Config
from tinycore.db.models import User
from tinycore.errors import InvalidToken, TokenExpired
from tinycore.utils.logging import get_logger

if TYPE_CHECKING:
    from tinycore.db.models import Database

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class TokenStatus(Enum):
    """Status codes for token validation results."""

    VALID = "valid"
    EXPIRED = "expired"
    INVALID = "invalid"


@dataclass
class TokenResult:
    """Result of token validation."""

    status: TokenStatus
    payload: dict[str, Any] | None = None
    error: str | None = None


def create_token(user: User) -> str:
    """Create a JWT token for a user."""
    logger.debug("Creating JWT token", extra={"user_id": user.id, "email": user.email})
    now = datetime.now(UTC)
    payload = {
        "sub": user.id,
        "email": user.email,
        "iat": now,
        "exp": now + timedelta(hours=Config.JWT_EXPIRATION_HOURS),
    }
    return jwt.encode(payload, Config.JWT_SECRET_KEY, algorithm=Config.JWT_ALGORITHM)


def decode_token_with_status(token: str) -> TokenResult:
    """Decode and validate a JWT token with detailed status.

    Returns a TokenResult with status indicating whether the token is
    valid, expired, or invalid, along with the payload or error message.
    """
    try:
        payload: dict[str, Any] = jwt.decode(
            token, Config.JWT_SECRET_KEY, algorithms=[Config.JWT_ALGORITHM]
        )
        logger.debug("JWT token decoded successfully", extra={"user_id": payload.get("sub")})
        return TokenResult(status=TokenStatus.VALID, payload=payload)
    except jwt.ExpiredSignatureError:
        logger.warning("JWT token expired")
        return TokenResult(status=TokenStatus.EXPIRED, error="Token has expired")
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid JWT token", extra={"error": str(e)})
        return TokenResult(status=TokenStatus.INVALID, error=str(e))


def verify_token(db: "Database", token: str) -> User:
    """Resolve a bearer token to its user.

    Raises:
        TokenExpired: The token's exp is in the past
        InvalidToken: Bad signature, malformed token, or the user no longer exists
    """
    result = decode_token_with_status(token)

    if result.status == TokenStatus.EXPIRED:
        raise TokenExpired("Your session has expired. Please sign in again.")

    if result.status == TokenStatus.INVALID:
        raise InvalidToken("Invalid authentication token")

    payload = result.payload
    assert payload is not None  # Guaranteed by VALID status

    user_id = payload.get("sub")
    if not user_id:
        raise InvalidToken("Invalid token payload")

    user = db.get_user_by_id(user_id)
    if not user:
        logger.warning("User not found for token", extra={"user_id": user_id})
        raise InvalidToken("User account not found")

    return user


def get_token_from_request(req: Request) -> str | None:
    """Extract JWT token from Authorization header."""
    auth_header = req.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None


def require_auth(f: F) -> F:
    """Decorator to require authentication for a route.

    The authenticated User is passed to the view as its first positional
    argument.

    Returns standardized error responses:
    - AUTH_REQUIRED (401): No token provided
    - AUTH_EXPIRED (401): Token has expired
    - AUTH_INVALID (401): Token is malformed, invalid, or its user was deleted
    """

    @wraps(f)
    def decorated(*args: Any, **kwargs: Any) -> Any:
        token = get_token_from_request(request)
        if not token:
            logger.warning("Missing authentication token", extra={"path": request.path})
            return auth_required_error()

        try:
            user = verify_token(get_db(), token)
        except TokenExpired as e:
            logger.warning("Token expired", extra={"path": request.path})
            return auth_expired_error(e.message)
        except InvalidToken as e:
            logger.warning("Invalid token", extra={"path": request.path, "error": e.message})
            return auth_invalid_error(e.message)

        logger.debug("Authentication successful", extra={"user_id": user.id, "path": request.path})
        return f(user, *args, **kwargs)

    return decorated  # type: ignore[return-value]
