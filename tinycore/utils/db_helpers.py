"""Database helper utilities shared by the models and the operator scripts."""

import os
import sqlite3
import time
from pathlib import Path
from typing import Any

from tinycore.config import Config
from tinycore.utils.logging import get_logger

logger = get_logger(__name__)

# Default limits for log message truncation
QUERY_SNIPPET_MAX_LENGTH = 200
PARAMS_SNIPPET_MAX_LENGTH = 100


def execute_with_timing(
    conn: sqlite3.Connection,
    query: str,
    params: tuple[Any, ...] = (),
    *,
    should_log: bool,
    slow_query_threshold_ms: float,
) -> sqlite3.Cursor:
    """Execute a query, timing it when query logging is enabled.

    Queries slower than slow_query_threshold_ms are logged as warnings; with
    LOG_LEVEL=DEBUG every query is logged.

    Args:
        conn: SQLite connection
        query: SQL query string
        params: Query parameters
        should_log: Whether to enable timing and logging
        slow_query_threshold_ms: Threshold in ms for slow query warnings

    Returns:
        SQLite cursor with results
    """
    if not should_log:
        return conn.execute(query, params)

    start_time = time.perf_counter()
    cursor = conn.execute(query, params)
    elapsed_ms = (time.perf_counter() - start_time) * 1000

    query_snippet = " ".join(query.split())
    if len(query_snippet) > QUERY_SNIPPET_MAX_LENGTH:
        query_snippet = query_snippet[:QUERY_SNIPPET_MAX_LENGTH] + "..."

    # KV values can be large JSON documents
    params_snippet = str(params)
    if len(params_snippet) > PARAMS_SNIPPET_MAX_LENGTH:
        params_snippet = params_snippet[:PARAMS_SNIPPET_MAX_LENGTH] + "..."

    if elapsed_ms >= slow_query_threshold_ms:
        logger.warning(
            "Slow query detected",
            extra={
                "query_snippet": query_snippet,
                "params_snippet": params_snippet,
                "elapsed_ms": round(elapsed_ms, 2),
                "threshold_ms": slow_query_threshold_ms,
            },
        )
    elif Config.LOG_LEVEL == "DEBUG":
        logger.debug(
            "Query executed",
            extra={"query_snippet": query_snippet, "elapsed_ms": round(elapsed_ms, 2)},
        )

    return cursor


def init_query_logging() -> tuple[bool, float]:
    """Get query logging configuration from Config.

    Returns:
        Tuple of (should_log_queries, slow_query_threshold_ms)
    """
    should_log = Config.LOG_LEVEL == "DEBUG" or Config.is_development()
    return should_log, Config.SLOW_QUERY_THRESHOLD_MS


def check_database_connectivity(db_path: Path | None = None) -> tuple[bool, str | None]:
    """Check that the database file can be opened and queried.

    Run before startup so that a bad DATABASE_PATH fails with a readable
    message instead of a traceback from deep inside the migration runner.

    Args:
        db_path: Path to database file. Uses Config.DATABASE_PATH if not provided.

    Returns:
        Tuple of (success, error_message)
    """
    db_path = db_path or Config.DATABASE_PATH
    logger.debug("Checking database connectivity", extra={"db_path": str(db_path)})

    parent_dir = db_path.parent
    if not parent_dir.exists():
        error = f"Database directory does not exist: {parent_dir}"
        logger.error("Database connectivity check failed", extra={"error": error})
        return False, error

    if not os.access(parent_dir, os.W_OK):
        error = f"Database directory is not writable: {parent_dir}"
        logger.error("Database connectivity check failed", extra={"error": error})
        return False, error

    if db_path.exists() and not os.access(db_path, os.R_OK | os.W_OK):
        error = f"Database file is not readable/writable: {db_path}"
        logger.error("Database connectivity check failed", extra={"error": error})
        return False, error

    try:
        conn = sqlite3.connect(db_path)
        try:
            conn.execute("SELECT 1")
        finally:
            conn.close()
    except sqlite3.OperationalError as e:
        error_msg = str(e)
        if "unable to open database file" in error_msg:
            error = f"Cannot open database file: {db_path}. Check file permissions."
        elif "database is locked" in error_msg:
            error = f"Database is locked: {db_path}. Another process may be using it."
        else:
            error = f"Database error: {error_msg}"
        logger.error("Database connectivity check failed", extra={"error": error})
        return False, error

    logger.debug("Database connectivity check passed", extra={"db_path": str(db_path)})
    return True, None
