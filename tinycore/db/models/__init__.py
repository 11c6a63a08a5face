"""Database models package.

This package provides the Database class and all related dataclasses.
The Database class is composed of mixins for different entity operations.

Usage:
    from tinycore.db.models import Database, KVItem

    db = Database(path)
    db.kv_set(KVItem(app_id="notes", key="draft", value={"text": "hi"}, owner_id=user.id))

There is no global instance; the Flask app holds the one it was created with.
"""

from pathlib import Path

from tinycore.db.models.application import ApplicationMixin
from tinycore.db.models.base import DatabaseBase
from tinycore.db.models.dataclasses import Application, KVItem, User
from tinycore.db.models.kv_store import KVStoreMixin
from tinycore.db.models.user import UserMixin, normalize_email


class Database(
    DatabaseBase,
    UserMixin,
    ApplicationMixin,
    KVStoreMixin,
):
    """Main database class combining all mixins.

    Provides all database operations through a unified interface.
    Uses connection pooling for efficient database access.
    """

    def __init__(self, db_path: Path | None = None) -> None:
        """Initialize the database and apply pending migrations.

        Args:
            db_path: Optional path to the database file.
                    Defaults to Config.DATABASE_PATH.

        Raises:
            MigrationError: A pending migration failed
        """
        super().__init__(db_path)


__all__ = [
    "Database",
    "User",
    "Application",
    "KVItem",
    "normalize_email",
]
