"""Base database infrastructure.

Contains the core Database class with initialization and connection pooling.
The Database class is extended via mixins defined in other modules.
"""

import sqlite3
from pathlib import Path
from typing import Any

from tinycore.config import Config
from tinycore.db import migrator
from tinycore.utils.connection_pool import ConnectionPool
from tinycore.utils.db_helpers import execute_with_timing, init_query_logging
from tinycore.utils.logging import get_logger

logger = get_logger(__name__)


class DatabaseBase:
    """Base database class with core infrastructure.

    Provides connection pooling, query execution with timing, and migration support.
    Extended via mixins for specific entity operations.
    """

    def __init__(self, db_path: Path | None = None) -> None:
        self.db_path = db_path or Config.DATABASE_PATH
        # Query logging is only active in development/debug mode
        self._should_log_queries, self._slow_query_threshold_ms = init_query_logging()
        self._pool = ConnectionPool(self.db_path)
        self._init_db()

    def close(self) -> None:
        """Close all connections in the pool.

        Call this on application shutdown.
        """
        self._pool.close_all()

    def _execute_with_timing(
        self,
        conn: sqlite3.Connection,
        query: str,
        params: tuple[Any, ...] = (),
    ) -> sqlite3.Cursor:
        """Execute a query with optional timing and logging.

        Delegates to shared execute_with_timing() helper.
        """
        return execute_with_timing(
            conn,
            query,
            params,
            should_log=self._should_log_queries,
            slow_query_threshold_ms=self._slow_query_threshold_ms,
        )

    def _init_db(self) -> None:
        """Bring the schema up to date. Raises MigrationError on failure."""
        logger.debug("Initializing database", extra={"db_path": str(self.db_path)})
        migrator.apply_pending(self.db_path)
