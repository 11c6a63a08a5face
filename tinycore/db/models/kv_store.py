"""Key-value store database operations mixin.

Contains methods for the per-application, per-owner key-value storage.
Values and metadata are arbitrary JSON documents stored as text.
"""

from __future__ import annotations

import json
import sqlite3
from typing import TYPE_CHECKING, Any

from tinycore.db.models.dataclasses import KVItem
from tinycore.db.models.helpers import dump_json, dump_metadata, load_metadata, parse_timestamp, utc_now_iso
from tinycore.errors import ConstraintViolation, ValidationError
from tinycore.utils.logging import get_logger

if TYPE_CHECKING:
    from tinycore.utils.connection_pool import ConnectionPool

logger = get_logger(__name__)

# Literal prefix comparison; LIKE would treat % and _ as wildcards and fold ASCII case
PREFIX_CLAUSE = "substr(key, 1, length(?)) = ?"


class KVStoreMixin:
    """Mixin providing key-value store database operations."""

    _pool: ConnectionPool

    def _execute_with_timing(
        self,
        conn: sqlite3.Connection,
        query: str,
        params: tuple[Any, ...] = (),
    ) -> sqlite3.Cursor:
        """Execute query with timing (defined in base class)."""
        raise NotImplementedError

    def _row_to_kv_item(self, row: sqlite3.Row) -> KVItem:
        return KVItem(
            app_id=row["app_id"],
            key=row["key"],
            value=json.loads(row["value"]),
            owner_id=row["owner_id"],
            metadata=load_metadata(row["metadata"]),
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
        )

    def kv_get(self, app_id: str, key: str, owner_id: str) -> KVItem | None:
        """Get one owner's entry.

        Args:
            app_id: The application the key lives under
            key: The key to look up
            owner_id: The owning user's ID

        Returns:
            The item, or None if this owner has no such key
        """
        with self._pool.get_connection() as conn:
            row = self._execute_with_timing(
                conn,
                "SELECT * FROM kv_store WHERE app_id = ? AND key = ? AND owner_id = ?",
                (app_id, key, owner_id),
            ).fetchone()
            return self._row_to_kv_item(row) if row else None

    def kv_set(self, item: KVItem) -> KVItem:
        """Create or overwrite an entry (upsert).

        An existing (app_id, key, owner_id) row keeps its created_at; value,
        metadata and updated_at are replaced.

        Returns:
            The stored item as read back from the database

        Raises:
            ValidationError: owner_id, app_id or key is missing
            ConstraintViolation: app_id or owner_id does not reference an existing row
        """
        for field_name in ("owner_id", "app_id", "key"):
            if not getattr(item, field_name):
                raise ValidationError(f"{field_name} is required", field=field_name)

        now = utc_now_iso()
        with self._pool.get_connection() as conn:
            try:
                self._execute_with_timing(
                    conn,
                    """
                    INSERT INTO kv_store (app_id, key, value, owner_id, created_at, updated_at, metadata)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(app_id, key, owner_id) DO UPDATE SET
                        value = excluded.value,
                        metadata = excluded.metadata,
                        updated_at = excluded.updated_at
                    """,
                    (
                        item.app_id,
                        item.key,
                        dump_json(item.value),
                        item.owner_id,
                        now,
                        now,
                        dump_metadata(item.metadata),
                    ),
                )
            except sqlite3.IntegrityError as e:
                logger.warning(
                    "KV write rejected by foreign key",
                    extra={"app_id": item.app_id, "owner_id": item.owner_id, "error": str(e)},
                )
                raise ConstraintViolation() from e
            # Read back before commit; the write lock keeps the row in place
            row = self._execute_with_timing(
                conn,
                "SELECT * FROM kv_store WHERE app_id = ? AND key = ? AND owner_id = ?",
                (item.app_id, item.key, item.owner_id),
            ).fetchone()
            conn.commit()

        logger.debug(
            "KV entry stored",
            extra={"app_id": item.app_id, "key": item.key, "owner_id": item.owner_id},
        )
        return self._row_to_kv_item(row)

    def kv_delete(self, app_id: str, key: str, owner_id: str) -> bool:
        """Delete one owner's entry.

        Returns:
            True if the key existed and was deleted
        """
        with self._pool.get_connection() as conn:
            cursor = self._execute_with_timing(
                conn,
                "DELETE FROM kv_store WHERE app_id = ? AND key = ? AND owner_id = ?",
                (app_id, key, owner_id),
            )
            conn.commit()
            return cursor.rowcount > 0

    def kv_exists(self, app_id: str, key: str, owner_id: str) -> bool:
        with self._pool.get_connection() as conn:
            row = self._execute_with_timing(
                conn,
                """
                SELECT EXISTS (
                    SELECT 1 FROM kv_store WHERE app_id = ? AND key = ? AND owner_id = ?
                ) AS present
                """,
                (app_id, key, owner_id),
            ).fetchone()
            return bool(row["present"])

    def kv_list(
        self, app_id: str, prefix: str | None = None, owner_id: str | None = None
    ) -> list[KVItem]:
        """List entries of an application, ordered by key.

        Args:
            app_id: The application
            prefix: Optional literal, case-sensitive key prefix
            owner_id: Restrict to one owner; None lists every owner's entries

        Returns:
            Matching items
        """
        clauses = ["app_id = ?"]
        params: list[Any] = [app_id]
        if owner_id is not None:
            clauses.append("owner_id = ?")
            params.append(owner_id)
        if prefix:
            clauses.append(PREFIX_CLAUSE)
            params.extend([prefix, prefix])

        with self._pool.get_connection() as conn:
            rows = self._execute_with_timing(
                conn,
                f"SELECT * FROM kv_store WHERE {' AND '.join(clauses)} ORDER BY key, owner_id",
                tuple(params),
            ).fetchall()
            return [self._row_to_kv_item(row) for row in rows]

    def kv_list_all_owners(self, app_id: str, prefix: str | None = None) -> list[KVItem]:
        """Administrative listing of an application's entries across all owners."""
        return self.kv_list(app_id, prefix=prefix, owner_id=None)

    def kv_list_by_owner(self, owner_id: str) -> list[KVItem]:
        """All entries of one owner across applications, ordered by (app_id, key)."""
        with self._pool.get_connection() as conn:
            rows = self._execute_with_timing(
                conn,
                "SELECT * FROM kv_store WHERE owner_id = ? ORDER BY app_id, key",
                (owner_id,),
            ).fetchall()
            return [self._row_to_kv_item(row) for row in rows]
