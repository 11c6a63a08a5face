"""
Initial database schema.

Creates the applications and users tables and the first version of the
key-value table, where a key is unique per application and the owner is an
optional column.
"""

from yoyo import step

steps = [
    step(
        """
        CREATE TABLE IF NOT EXISTS applications (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            metadata TEXT
        )
        """,
        "DROP TABLE IF EXISTS applications",
    ),
    step(
        """
        CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            email TEXT UNIQUE NOT NULL,
            password_hash TEXT NOT NULL,
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            metadata TEXT
        )
        """,
        "DROP TABLE IF EXISTS users",
    ),
    step(
        """
        CREATE TABLE IF NOT EXISTS kv_store (
            app_id TEXT NOT NULL,
            key TEXT NOT NULL,
            value TEXT NOT NULL,
            owner_id TEXT,
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            metadata TEXT,
            PRIMARY KEY (app_id, key),
            FOREIGN KEY (app_id) REFERENCES applications(id),
            FOREIGN KEY (owner_id) REFERENCES users(id)
        )
        """,
        "DROP TABLE IF EXISTS kv_store",
    ),
]
