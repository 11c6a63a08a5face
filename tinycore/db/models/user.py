"""User database operations mixin.

Contains all methods for User entity management including:
- Account creation, with first-user-only gating
- Lookup by id and by email (the latter with the password hash, for login)
- Listing and deletion
"""

from __future__ import annotations

import sqlite3
import uuid
from typing import TYPE_CHECKING, Any

from tinycore.db.models.dataclasses import User
from tinycore.db.models.helpers import dump_metadata, load_metadata, parse_timestamp, utc_now_iso
from tinycore.errors import DuplicateEmail, RegistrationClosed
from tinycore.utils.logging import get_logger

if TYPE_CHECKING:
    from tinycore.utils.connection_pool import ConnectionPool

logger = get_logger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserMixin:
    """Mixin providing User-related database operations."""

    _pool: ConnectionPool

    def _execute_with_timing(
        self,
        conn: sqlite3.Connection,
        query: str,
        params: tuple[Any, ...] = (),
    ) -> sqlite3.Cursor:
        """Execute query with timing (defined in base class)."""
        raise NotImplementedError

    def _row_to_user(self, row: sqlite3.Row) -> User:
        """Convert a database row to a User object."""
        return User(
            id=row["id"],
            email=row["email"],
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
            metadata=load_metadata(row["metadata"]),
        )

    def has_users(self) -> bool:
        """Whether at least one account exists."""
        with self._pool.get_connection() as conn:
            row = self._execute_with_timing(
                conn, "SELECT EXISTS (SELECT 1 FROM users) AS present"
            ).fetchone()
            return bool(row["present"])

    def create_user(
        self,
        email: str,
        password_hash: str,
        metadata: dict[str, Any] | None = None,
        *,
        require_empty: bool = False,
    ) -> User:
        """Insert a new account.

        Args:
            email: Login email, stored normalized (trimmed, lower-case)
            password_hash: bcrypt hash of the password
            metadata: Optional free-form JSON object
            require_empty: Only insert when no user exists yet. The check is
                part of the INSERT statement, so two concurrent calls on an
                empty table cannot both succeed.

        Raises:
            RegistrationClosed: require_empty is set and a user already exists
            DuplicateEmail: The email is already registered
        """
        user_id = str(uuid.uuid4())
        email = normalize_email(email)
        now = utc_now_iso()
        params = (user_id, email, password_hash, now, now, dump_metadata(metadata))

        if require_empty:
            query = """
                INSERT INTO users (id, email, password_hash, created_at, updated_at, metadata)
                SELECT ?, ?, ?, ?, ?, ?
                WHERE NOT EXISTS (SELECT 1 FROM users)
            """
        else:
            query = """
                INSERT INTO users (id, email, password_hash, created_at, updated_at, metadata)
                VALUES (?, ?, ?, ?, ?, ?)
            """

        with self._pool.get_connection() as conn:
            try:
                cursor = self._execute_with_timing(conn, query, params)
            except sqlite3.IntegrityError as e:
                raise DuplicateEmail(field="email") from e
            conn.commit()

        if cursor.rowcount == 0:
            logger.info("Registration rejected, users already exist", extra={"email": email})
            raise RegistrationClosed()

        logger.info("User created", extra={"user_id": user_id, "email": email})
        return User(
            id=user_id,
            email=email,
            created_at=parse_timestamp(now),
            updated_at=parse_timestamp(now),
            metadata=metadata or {},
        )

    def get_user_by_id(self, user_id: str) -> User | None:
        """Get a user by their ID."""
        with self._pool.get_connection() as conn:
            row = self._execute_with_timing(
                conn, "SELECT * FROM users WHERE id = ?", (user_id,)
            ).fetchone()

            if not row:
                return None

            return self._row_to_user(row)

    def get_user_credentials(self, email: str) -> tuple[User, str] | None:
        """Get a user and their password hash by email.

        Only the login path should call this; the hash must not reach API output.
        """
        with self._pool.get_connection() as conn:
            row = self._execute_with_timing(
                conn, "SELECT * FROM users WHERE email = ?", (normalize_email(email),)
            ).fetchone()

            if not row:
                return None

            return self._row_to_user(row), row["password_hash"]

    def list_users(self) -> list[User]:
        """All users, oldest first."""
        with self._pool.get_connection() as conn:
            rows = self._execute_with_timing(
                conn, "SELECT * FROM users ORDER BY created_at, rowid"
            ).fetchall()
            return [self._row_to_user(row) for row in rows]

    def delete_user(self, user_id: str) -> bool:
        """Delete a user. Their key-value entries are removed by the FK cascade.

        Returns:
            True if the user existed and was deleted
        """
        with self._pool.get_connection() as conn:
            cursor = self._execute_with_timing(
                conn, "DELETE FROM users WHERE id = ?", (user_id,)
            )
            conn.commit()
            deleted = cursor.rowcount > 0

        if deleted:
            logger.info("User deleted", extra={"user_id": user_id})
        else:
            logger.debug("User not found for deletion", extra={"user_id": user_id})
        return deleted
