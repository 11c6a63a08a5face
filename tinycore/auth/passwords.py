"""Password hashing with bcrypt."""

from functools import lru_cache

import bcrypt

from tinycore.config import Config
from tinycore.errors import ValidationError

# bcrypt only looks at the first 72 bytes of the input
MAX_PASSWORD_BYTES = 72


def hash_password(plain_password: str) -> str:
    password = plain_password.encode("utf-8")
    if not password:
        raise ValidationError("Password is required", field="password")
    if len(password) > MAX_PASSWORD_BYTES:
        raise ValidationError(
            f"Password must be at most {MAX_PASSWORD_BYTES} bytes", field="password"
        )
    return bcrypt.hashpw(password, bcrypt.gensalt(rounds=Config.BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    password = plain_password.encode("utf-8")
    hashed = password_hash.encode("utf-8")
    if not password or not hashed:
        return False
    try:
        return bcrypt.checkpw(password, hashed)
    except ValueError:
        return False


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return hash_password("tinycore-timing-equalizer")


def burn_verification(plain_password: str) -> None:
    """Spend the time of one real password check against a throwaway hash.

    Login calls this for unknown emails so the response time does not reveal
    whether an account exists.
    """
    verify_password(plain_password, _dummy_hash())
