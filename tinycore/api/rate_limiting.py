"""Rate limiting module for API endpoints.

Uses Flask-Limiter with configurable storage backends (memory, Redis, Memcached).
Limits are keyed on the client IP: every route shares the default limit, and
the credential endpoints (register, login) carry a stricter one.
"""

import time
from collections.abc import Callable
from typing import Any

from flask import Flask, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from tinycore.api.errors import rate_limited_error
from tinycore.config import Config
from tinycore.utils.logging import get_logger

logger = get_logger(__name__)

# Created unbound so route modules can decorate at import time. Limit strings
# are read from Config per request, so they follow the running configuration.
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=Config.RATE_LIMIT_STORAGE_URI,
    # Default limits apply to all endpoints not explicitly decorated
    default_limits=[lambda: Config.RATE_LIMIT_DEFAULT],
    headers_enabled=True,
    strategy="fixed-window",
)


def init_rate_limiting(app: Flask) -> Limiter:
    """Bind the limiter to an app and install the 429 handler."""
    app.config["RATELIMIT_ENABLED"] = Config.RATE_LIMITING_ENABLED
    limiter.init_app(app)

    @app.errorhandler(429)
    def rate_limit_handler(e: Exception) -> tuple[dict[str, Any], int, dict[str, str]]:
        """Handle rate limit exceeded errors with our standard error format."""
        description = str(getattr(e, "description", ""))
        retry_after = None
        current = limiter.current_limit
        if current is not None:
            retry_after = max(1, int(current.reset_at - time.time()))

        logger.warning(
            "Rate limit exceeded",
            extra={
                "key": get_remote_address(),
                "path": request.path,
                "method": request.method,
                "limit": description,
            },
        )

        body, status = rate_limited_error(retry_after=retry_after)
        headers = {"Retry-After": str(retry_after)} if retry_after else {}
        return body, status, headers

    if Config.RATE_LIMITING_ENABLED:
        logger.info(
            "Rate limiting initialized",
            extra={
                "storage_uri": Config.RATE_LIMIT_STORAGE_URI,
                "default_limit": Config.RATE_LIMIT_DEFAULT,
            },
        )
    else:
        logger.info("Rate limiting is disabled")

    return limiter


def rate_limit_auth(f: Callable[..., Any]) -> Callable[..., Any]:
    """Apply the stricter credential endpoint limit.

    Use for: /users/register, /users/login
    """
    return limiter.limit(lambda: Config.RATE_LIMIT_AUTH)(f)


def exempt_from_rate_limit(f: Callable[..., Any]) -> Callable[..., Any]:
    """Exempt an endpoint from rate limiting.

    Use sparingly for endpoints that must always be available:
    - Health checks (/api/health, /api/ready)
    """
    return limiter.exempt(f)
