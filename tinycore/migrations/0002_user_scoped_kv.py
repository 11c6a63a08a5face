"""
Scope key-value entries to their owner.

This migration:
1. Rebuilds kv_store with primary key (app_id, key, owner_id) and cascading
   foreign keys to applications and users
2. Assigns rows without an owner to the earliest-created user
3. Drops ownerless rows when there are no users to assign them to
4. Adds indexes for per-owner lookups

Rolling back restores the (app_id, key) primary key. When several owners hold
the same key only the oldest row survives.
"""

from yoyo import step

from tinycore.utils.logging import get_logger

logger = get_logger(__name__)

KV_COLUMNS = "app_id, key, value, owner_id, created_at, updated_at, metadata"


def rebuild_owner_scoped(conn):
    """Copy kv_store into the owner-scoped table and swap it in."""
    conn.execute(
        """
        CREATE TABLE kv_store_new (
            app_id TEXT NOT NULL,
            key TEXT NOT NULL,
            value TEXT NOT NULL,
            owner_id TEXT NOT NULL,
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            metadata TEXT,
            PRIMARY KEY (app_id, key, owner_id),
            FOREIGN KEY (app_id) REFERENCES applications(id) ON DELETE CASCADE,
            FOREIGN KEY (owner_id) REFERENCES users(id) ON DELETE CASCADE
        )
        """
    )

    has_users = conn.execute("SELECT EXISTS (SELECT 1 FROM users)").fetchone()[0]
    if not has_users:
        orphaned = conn.execute("SELECT COUNT(*) FROM kv_store").fetchone()[0]
        if orphaned:
            logger.warning(
                "No users to own existing key-value rows, dropping them",
                extra={"dropped_rows": orphaned},
            )

    conn.execute(
        f"""
        INSERT INTO kv_store_new ({KV_COLUMNS})
        SELECT
            app_id,
            key,
            value,
            COALESCE(owner_id, (SELECT id FROM users ORDER BY created_at, rowid LIMIT 1)),
            created_at,
            updated_at,
            metadata
        FROM kv_store
        WHERE EXISTS (SELECT 1 FROM users)
        """
    )
    conn.execute("DROP TABLE kv_store")
    conn.execute("ALTER TABLE kv_store_new RENAME TO kv_store")
    conn.execute("CREATE INDEX idx_kv_store_app_owner ON kv_store(app_id, owner_id)")
    conn.execute("CREATE INDEX idx_kv_store_owner ON kv_store(owner_id)")


def restore_app_scoped(conn):
    """Rebuild the (app_id, key) table, keeping the oldest row per key."""
    conn.execute(
        """
        CREATE TABLE kv_store_old (
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
        """
    )
    conn.execute(
        f"""
        INSERT OR IGNORE INTO kv_store_old ({KV_COLUMNS})
        SELECT {KV_COLUMNS} FROM kv_store ORDER BY created_at, rowid
        """
    )
    conn.execute("DROP TABLE kv_store")
    conn.execute("ALTER TABLE kv_store_old RENAME TO kv_store")


steps = [step(rebuild_owner_scoped, restore_app_scoped)]
