import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # API
    API_PREFIX = "/api/v1"
    API_TITLE = "TinyCore KV API"
    API_VERSION = "1.0.0"

    # JWT Authentication
    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "dev-secret-change-me")
    JWT_ALGORITHM = "HS256"
    JWT_EXPIRATION_HOURS: int = int(os.getenv("JWT_EXPIRATION_HOURS", "24"))

    # Password hashing (bcrypt work factor)
    BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "10"))
    MIN_PASSWORD_LENGTH: int = int(os.getenv("MIN_PASSWORD_LENGTH", "6"))

    # Registration is only open while the users table is empty, unless re-enabled here
    ALLOW_MULTI_USER_REGISTRATION: bool = _env_bool("ALLOW_MULTI_USER_REGISTRATION")

    # Server
    PORT: int = int(os.getenv("PORT", "3000"))
    FLASK_ENV: str = os.getenv("FLASK_ENV", "development")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Slow query logging (only active in development/debug mode)
    SLOW_QUERY_THRESHOLD_MS: int = int(os.getenv("SLOW_QUERY_THRESHOLD_MS", "100"))

    # Rate limiting
    RATE_LIMITING_ENABLED: bool = _env_bool("RATE_LIMITING_ENABLED", "true")
    RATE_LIMIT_STORAGE_URI: str = os.getenv("RATE_LIMIT_STORAGE_URI", "memory://")
    RATE_LIMIT_DEFAULT: str = os.getenv("RATE_LIMIT_DEFAULT", "300 per minute")
    RATE_LIMIT_AUTH: str = os.getenv("RATE_LIMIT_AUTH", "10 per minute")

    # KV limits
    MAX_KEY_LENGTH: int = 255

    # Database (relative paths resolve against the working directory)
    DATABASE_PATH: Path = Path(os.getenv("DATABASE_PATH", "data/tinycore.db"))

    @classmethod
    def is_development(cls) -> bool:
        """Check if running in development mode."""
        return cls.FLASK_ENV == "development"

    @classmethod
    def is_testing(cls) -> bool:
        """Check if running in testing mode."""
        return cls.FLASK_ENV == "testing"

    @classmethod
    def is_production(cls) -> bool:
        return cls.FLASK_ENV == "production"

    @classmethod
    def validate(cls) -> list[str]:
        """Validate required configuration. Returns list of errors with clear guidance."""
        errors: list[str] = []

        if not cls.is_development() and not cls.is_testing():
            if cls.JWT_SECRET_KEY == "dev-secret-change-me":
                errors.append(
                    "JWT_SECRET_KEY must be set to a secure random value in production. "
                    'Generate one with: python -c "import secrets; print(secrets.token_hex(32))"'
                )
            elif len(cls.JWT_SECRET_KEY) < 32:
                errors.append(
                    f"JWT_SECRET_KEY must be at least 32 characters for security (got {len(cls.JWT_SECRET_KEY)}). "
                    'Generate a secure key with: python -c "import secrets; print(secrets.token_hex(32))"'
                )

        if cls.PORT < 1 or cls.PORT > 65535:
            errors.append(f"PORT must be between 1 and 65535, got {cls.PORT}")

        # bcrypt only accepts cost factors 4..31
        if cls.BCRYPT_ROUNDS < 4 or cls.BCRYPT_ROUNDS > 31:
            errors.append(f"BCRYPT_ROUNDS must be between 4 and 31, got {cls.BCRYPT_ROUNDS}")

        if cls.JWT_EXPIRATION_HOURS < 1:
            errors.append(
                f"JWT_EXPIRATION_HOURS must be at least 1, got {cls.JWT_EXPIRATION_HOURS}"
            )

        if cls.MIN_PASSWORD_LENGTH < 1:
            errors.append(
                f"MIN_PASSWORD_LENGTH must be at least 1, got {cls.MIN_PASSWORD_LENGTH}"
            )

        valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if cls.LOG_LEVEL not in valid_log_levels:
            errors.append(
                f"LOG_LEVEL '{cls.LOG_LEVEL}' is not valid. "
                f"Valid levels: {', '.join(sorted(valid_log_levels))}"
            )

        return errors
