"""System routes: liveness and readiness probes.

These live outside the versioned API prefix and need no authentication.
"""

from typing import Any

from apiflask import APIBlueprint

from tinycore.api.rate_limiting import exempt_from_rate_limit
from tinycore.api.utils import get_db
from tinycore.config import Config
from tinycore.utils.db_helpers import check_database_connectivity
from tinycore.utils.logging import get_logger

logger = get_logger(__name__)

api = APIBlueprint("system", __name__, url_prefix="/api", tag="System")


@api.route("/health", methods=["GET"])
@exempt_from_rate_limit
def health_check() -> tuple[dict[str, str], int]:
    """Liveness probe - checks if the application process is running.

    This endpoint should NOT check the database.
    Use /api/ready for readiness checks that verify dependencies.
    """
    return {"status": "ok", "version": Config.API_VERSION}, 200


@api.route("/ready", methods=["GET"])
@api.doc(responses=[503])
@exempt_from_rate_limit
def readiness_check() -> tuple[dict[str, Any], int]:
    """Readiness probe - checks if the application can serve traffic.

    Returns:
        200: Application is ready to serve traffic
        503: Application is not ready (database unreachable)
    """
    checks: dict[str, dict[str, Any]] = {}

    db_ok, db_error = check_database_connectivity(get_db().db_path)
    checks["database"] = {
        "status": "ok" if db_ok else "error",
        "message": "Connected" if db_ok else db_error,
    }

    response = {
        "status": "ready" if db_ok else "not_ready",
        "checks": checks,
        "version": Config.API_VERSION,
    }

    if db_ok:
        logger.debug("Readiness check passed")
        return response, 200

    logger.warning("Readiness check failed", extra={"checks": checks})
    return response, 503
