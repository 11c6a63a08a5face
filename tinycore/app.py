import sys
import uuid

from apiflask import APIFlask
from flask import Response, g, request

from tinycore.api.errors import register_error_handlers
from tinycore.api.rate_limiting import init_rate_limiting
from tinycore.api.routes import register_blueprints
from tinycore.api.utils import DB_EXTENSION_KEY
from tinycore.config import Config
from tinycore.db.migrator import MigrationError
from tinycore.db.models import Database
from tinycore.utils.db_helpers import check_database_connectivity
from tinycore.utils.logging import get_logger, set_request_id, setup_logging


def create_app(database: Database | None = None) -> APIFlask:
    """Create and configure the Flask application.

    Args:
        database: The Database to serve. When omitted one is opened at
            Config.DATABASE_PATH, which applies pending migrations.

    Raises:
        MigrationError: A pending migration failed
    """
    # Setup structured logging first
    setup_logging()
    logger = get_logger(__name__)

    if database is None:
        database = Database()

    app = APIFlask(__name__, title=Config.API_TITLE, version=Config.API_VERSION)
    app.config["TESTING"] = Config.is_testing()
    app.extensions[DB_EXTENSION_KEY] = database

    # Request ID middleware - must be before blueprints
    @app.before_request
    def add_request_id() -> None:
        """Generate and store request ID for correlation."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        set_request_id(request_id)
        g.request_id = request_id

    @app.before_request
    def log_request() -> None:
        logger.info(
            "Incoming request",
            extra={
                "method": request.method,
                "path": request.path,
                "remote_addr": request.remote_addr,
                "user_agent": request.headers.get("User-Agent", ""),
            },
        )

    @app.after_request
    def log_response(response: Response) -> Response:
        logger.info(
            "Outgoing response",
            extra={
                "method": request.method,
                "path": request.path,
                "status_code": response.status_code,
                "content_length": response.content_length,
            },
        )
        response.headers["X-Request-ID"] = g.get("request_id", "")
        return response

    register_error_handlers(app)
    init_rate_limiting(app)
    register_blueprints(app)

    logger.info(
        "Flask app created",
        extra={
            "environment": Config.FLASK_ENV,
            "log_level": Config.LOG_LEVEL,
            "db_path": str(database.db_path),
        },
    )
    return app


def main() -> None:
    """Main entry point."""
    setup_logging()
    logger = get_logger(__name__)

    errors = Config.validate()
    if errors:
        logger.error("Configuration validation failed", extra={"errors": errors})
        print("Configuration errors:")
        for error in errors:
            print(f"  - {error}")
        sys.exit(1)

    Config.DATABASE_PATH.parent.mkdir(parents=True, exist_ok=True)
    db_ok, db_error = check_database_connectivity(Config.DATABASE_PATH)
    if not db_ok:
        print(f"Database error: {db_error}")
        sys.exit(1)

    try:
        app = create_app()
    except MigrationError as e:
        logger.error("Database migration failed, refusing to start", extra={"error": str(e)})
        print(f"Migration error: {e}")
        sys.exit(1)

    logger.info(
        "Starting TinyCore KV",
        extra={
            "port": Config.PORT,
            "environment": Config.FLASK_ENV,
            "db_path": str(Config.DATABASE_PATH),
            "log_level": Config.LOG_LEVEL,
        },
    )
    app.run(host="0.0.0.0", port=Config.PORT, debug=Config.is_development())


if __name__ == "__main__":
    main()
