"""Thread-local SQLite connections for the KV store.

Each request-handling thread gets one connection that it keeps reusing, which
is how SQLite likes to be used: locking happens at the file level, so sharing
connections between threads buys nothing and opening a new one per query is
wasted work.

Usage:
    pool = ConnectionPool("/path/to/tinycore.db")

    with pool.get_connection() as conn:
        conn.execute("SELECT * FROM applications")

    # on shutdown
    pool.close_all()
"""

import sqlite3
import threading
import weakref
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from tinycore.utils.logging import get_logger

logger = get_logger(__name__)

# Seconds a writer waits for the file lock before SQLite raises "database is locked"
BUSY_TIMEOUT_SECONDS = 30.0


class ConnectionPool:
    """Hands out one SQLite connection per thread.

    Connections are configured with row_factory=sqlite3.Row, WAL journaling
    and foreign key enforcement (KV rows cascade when their application or
    owner is deleted).
    """

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path)
        self._local = threading.local()
        self._lock = threading.Lock()
        # thread ident -> connection, so close_all() can reach every thread's connection
        self._connections: dict[int, sqlite3.Connection] = {}
        logger.debug("Connection pool created", extra={"db_path": str(self.db_path)})

    @staticmethod
    def _release_connection(
        lock: threading.Lock,
        connections: dict[int, sqlite3.Connection],
        thread_id: int,
    ) -> None:
        """Close the connection of a thread that has been garbage-collected.

        Registered through weakref.finalize; must not reference the pool itself.
        """
        with lock:
            conn = connections.pop(thread_id, None)
        if conn is not None:
            try:
                conn.close()
            except sqlite3.Error:
                pass

    def _reap_dead_threads(self) -> None:
        """Close connections owned by threads that have exited.

        Caller must hold self._lock.
        """
        alive = {t.ident for t in threading.enumerate()}
        dead = [tid for tid in self._connections if tid not in alive]
        for tid in dead:
            try:
                self._connections.pop(tid).close()
            except sqlite3.Error:
                pass
        if dead:
            logger.debug(
                "Reaped dead thread connections",
                extra={"dead_count": len(dead), "remaining": len(self._connections)},
            )

    def _create_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            self.db_path,
            check_same_thread=False,
            timeout=BUSY_TIMEOUT_SECONDS,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        # Off by default in SQLite and scoped to the connection
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    def _get_thread_connection(self) -> sqlite3.Connection:
        thread_id = threading.get_ident()
        conn: sqlite3.Connection | None = getattr(self._local, "connection", None)

        if conn is not None:
            try:
                conn.execute("SELECT 1")
                return conn
            except sqlite3.Error:
                logger.warning(
                    "Thread connection was broken, creating new one",
                    extra={"thread_id": thread_id, "db_path": str(self.db_path)},
                )
                with self._lock:
                    self._connections.pop(thread_id, None)

        conn = self._create_connection()
        self._local.connection = conn

        with self._lock:
            self._reap_dead_threads()
            self._connections[thread_id] = conn

        weakref.finalize(
            threading.current_thread(),
            ConnectionPool._release_connection,
            self._lock,
            self._connections,
            thread_id,
        )

        logger.debug(
            "Created new thread connection",
            extra={
                "thread_id": thread_id,
                "db_path": str(self.db_path),
                "total_connections": len(self._connections),
            },
        )
        return conn

    @contextmanager
    def get_connection(self) -> Generator[sqlite3.Connection]:
        """Yield this thread's connection.

        The connection stays open after the block; an exception inside the
        block rolls back whatever the block left uncommitted.
        """
        conn = self._get_thread_connection()
        try:
            yield conn
        except Exception:
            try:
                conn.rollback()
            except sqlite3.Error:
                pass
            raise

    def close_all(self) -> None:
        """Close every connection in the pool. Call on application shutdown."""
        with self._lock:
            for conn in self._connections.values():
                try:
                    conn.close()
                except sqlite3.Error:
                    pass
            self._connections.clear()

        if hasattr(self._local, "connection"):
            self._local.connection = None

        logger.info("All pool connections closed", extra={"db_path": str(self.db_path)})
