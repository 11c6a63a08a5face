"""Account registration and login.

Registration is open only while the system has no users, unless
ALLOW_MULTI_USER_REGISTRATION is enabled. Tokens are stateless HS256 JWTs;
there is no revocation and no server-side session.
"""

from typing import TYPE_CHECKING, Any

from tinycore.auth.jwt_auth import create_token, verify_token
from tinycore.auth.passwords import burn_verification, hash_password, verify_password
from tinycore.config import Config
from tinycore.db.models import User
from tinycore.errors import InvalidCredentials
from tinycore.utils.logging import get_logger

if TYPE_CHECKING:
    from tinycore.db.models import Database

logger = get_logger(__name__)

__all__ = ["has_users", "registration_allowed", "register", "login", "verify_token"]


def has_users(db: "Database") -> bool:
    return db.has_users()


def registration_allowed(db: "Database") -> bool:
    """Whether a register call could currently succeed."""
    return Config.ALLOW_MULTI_USER_REGISTRATION or not db.has_users()


def register(
    db: "Database", email: str, password: str, metadata: dict[str, Any] | None = None
) -> User:
    """Create an account.

    Raises:
        RegistrationClosed: A user already exists and multi-user registration is off
        DuplicateEmail: The email is already registered
        ValidationError: The password cannot be hashed (empty or too long)
    """
    password_hash = hash_password(password)
    user = db.create_user(
        email,
        password_hash,
        metadata,
        require_empty=not Config.ALLOW_MULTI_USER_REGISTRATION,
    )
    logger.info("User registered", extra={"user_id": user.id})
    return user


def login(db: "Database", email: str, password: str) -> tuple[User, str]:
    """Check credentials and issue a token.

    Raises:
        InvalidCredentials: Unknown email or wrong password (same message for both)
    """
    credentials = db.get_user_credentials(email)
    if credentials is None:
        burn_verification(password)
        logger.info("Login failed", extra={"reason": "unknown_email"})
        raise InvalidCredentials()

    user, password_hash = credentials
    if not verify_password(password, password_hash):
        logger.info("Login failed", extra={"reason": "wrong_password", "user_id": user.id})
        raise InvalidCredentials()

    logger.info("User logged in", extra={"user_id": user.id})
    return user, create_token(user)
