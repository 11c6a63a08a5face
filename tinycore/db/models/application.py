"""Application registry database operations mixin."""

from __future__ import annotations

import sqlite3
from typing import TYPE_CHECKING, Any

from tinycore.db.models.dataclasses import Application
from tinycore.db.models.helpers import dump_metadata, load_metadata, parse_timestamp, utc_now_iso
from tinycore.errors import DuplicateId
from tinycore.utils.logging import get_logger

if TYPE_CHECKING:
    from tinycore.utils.connection_pool import ConnectionPool

logger = get_logger(__name__)


class ApplicationMixin:
    """Mixin providing Application-related database operations."""

    _pool: ConnectionPool

    def _execute_with_timing(
        self,
        conn: sqlite3.Connection,
        query: str,
        params: tuple[Any, ...] = (),
    ) -> sqlite3.Cursor:
        """Execute query with timing (defined in base class)."""
        raise NotImplementedError

    def _row_to_application(self, row: sqlite3.Row) -> Application:
        return Application(
            id=row["id"],
            name=row["name"],
            created_at=parse_timestamp(row["created_at"]),
            metadata=load_metadata(row["metadata"]),
        )

    def get_application(self, app_id: str) -> Application | None:
        with self._pool.get_connection() as conn:
            row = self._execute_with_timing(
                conn, "SELECT * FROM applications WHERE id = ?", (app_id,)
            ).fetchone()
            return self._row_to_application(row) if row else None

    def create_application(
        self, app_id: str, name: str, metadata: dict[str, Any] | None = None
    ) -> Application:
        """Register a new application.

        Raises:
            DuplicateId: An application with this id already exists
        """
        now = utc_now_iso()
        with self._pool.get_connection() as conn:
            try:
                self._execute_with_timing(
                    conn,
                    "INSERT INTO applications (id, name, created_at, metadata) VALUES (?, ?, ?, ?)",
                    (app_id, name, now, dump_metadata(metadata)),
                )
            except sqlite3.IntegrityError as e:
                raise DuplicateId(field="id") from e
            conn.commit()

        logger.info("Application created", extra={"app_id": app_id})
        return Application(
            id=app_id, name=name, created_at=parse_timestamp(now), metadata=metadata or {}
        )

    def update_application(
        self, app_id: str, name: str, metadata: dict[str, Any] | None = None
    ) -> bool:
        """Replace an application's name and metadata.

        Returns:
            True if the application exists and was updated
        """
        with self._pool.get_connection() as conn:
            cursor = self._execute_with_timing(
                conn,
                "UPDATE applications SET name = ?, metadata = ? WHERE id = ?",
                (name, dump_metadata(metadata), app_id),
            )
            conn.commit()
            updated = cursor.rowcount > 0

        if updated:
            logger.info("Application updated", extra={"app_id": app_id})
        return updated

    def delete_application(self, app_id: str) -> bool:
        """Delete an application together with all of its keys.

        Returns:
            True if the application existed and was deleted
        """
        with self._pool.get_connection() as conn:
            cursor = self._execute_with_timing(
                conn, "DELETE FROM applications WHERE id = ?", (app_id,)
            )
            conn.commit()
            deleted = cursor.rowcount > 0

        if deleted:
            logger.info("Application deleted", extra={"app_id": app_id})
        return deleted

    def list_applications(self) -> list[Application]:
        """All applications in the order they were created."""
        with self._pool.get_connection() as conn:
            rows = self._execute_with_timing(
                conn, "SELECT * FROM applications ORDER BY created_at, rowid"
            ).fetchall()
            return [self._row_to_application(row) for row in rows]

    def get_application_stats(self, app_id: str) -> dict[str, int]:
        """Count the keys stored under an application and the distinct owners holding them."""
        with self._pool.get_connection() as conn:
            row = self._execute_with_timing(
                conn,
                """
                SELECT COUNT(*) AS total_keys, COUNT(DISTINCT owner_id) AS total_users
                FROM kv_store WHERE app_id = ?
                """,
                (app_id,),
            ).fetchone()
            return {"totalKeys": row["total_keys"], "totalUsers": row["total_users"]}
