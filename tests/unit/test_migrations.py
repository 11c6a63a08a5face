"""Tests for the migration runner and the schema migrations it applies."""

from __future__ import annotations

import importlib.util
import sqlite3
from pathlib import Path
from types import ModuleType

import pytest

from tinycore.db import migrator
from tinycore.db.migrator import MigrationError

INITIAL = "0001_initial_schema"
USER_SCOPED = "0002_user_scoped_kv"


def _rows(db_path: Path, query: str, params: tuple[object, ...] = ()) -> list[tuple[object, ...]]:
    conn = sqlite3.connect(db_path)
    try:
        return [tuple(row) for row in conn.execute(query, params).fetchall()]
    finally:
        conn.close()


def _execute(db_path: Path, *statements: str) -> None:
    conn = sqlite3.connect(db_path)
    try:
        for statement in statements:
            conn.execute(statement)
        conn.commit()
    finally:
        conn.close()


def _legacy_db(db_path: Path) -> None:
    """A database that only has the initial schema applied."""
    migrator.apply_pending(db_path)
    migrator.rollback(db_path, USER_SCOPED)


def _kv_primary_key(db_path: Path) -> list[str]:
    columns = _rows(db_path, "PRAGMA table_info(kv_store)")
    return [str(c[1]) for c in sorted(columns, key=lambda c: c[5]) if c[5]]


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "migrate.db"


class TestApplyPending:
    def test_fresh_database(self, db_path: Path) -> None:
        applied = migrator.apply_pending(db_path)

        assert applied == [INITIAL, USER_SCOPED]
        assert _kv_primary_key(db_path) == ["app_id", "key", "owner_id"]
        indexes = {row[0] for row in _rows(db_path, "SELECT name FROM sqlite_master WHERE type = 'index'")}
        assert {"idx_kv_store_app_owner", "idx_kv_store_owner"} <= indexes

    def test_tracks_applied_ids_in_migrations_table(self, db_path: Path) -> None:
        migrator.apply_pending(db_path)

        ids = {row[0] for row in _rows(db_path, "SELECT migration_id FROM migrations")}
        assert ids == {INITIAL, USER_SCOPED}

    def test_idempotent(self, db_path: Path) -> None:
        migrator.apply_pending(db_path)
        _execute(
            db_path,
            "INSERT INTO applications (id, name) VALUES ('app', 'App')",
            "INSERT INTO users (id, email, password_hash) VALUES ('u1', 'a@example.com', 'h')",
            "INSERT INTO kv_store (app_id, key, value, owner_id) VALUES ('app', 'k', '1', 'u1')",
        )
        before = _rows(db_path, "SELECT * FROM kv_store")

        assert migrator.apply_pending(db_path) == []
        assert _rows(db_path, "SELECT * FROM kv_store") == before

    def test_status(self, db_path: Path) -> None:
        status = migrator.get_status(db_path)
        assert status.applied == []
        assert status.pending == [INITIAL, USER_SCOPED]

        migrator.apply_pending(db_path)

        status = migrator.get_status(db_path)
        assert status.applied == [INITIAL, USER_SCOPED]
        assert status.pending == []

    def test_list_migrations_describes_each(self) -> None:
        listed = dict(migrator.list_migrations())

        assert list(listed) == [INITIAL, USER_SCOPED]
        assert listed[USER_SCOPED] == "Scope key-value entries to their owner."

    def test_migrations_ship_inside_package(self) -> None:
        """Installed copies find their migrations next to the package code."""
        package_dir = Path(migrator.__file__).parent.parent

        assert migrator.MIGRATIONS_DIR == package_dir / "migrations"
        assert {p.stem for p in migrator.MIGRATIONS_DIR.glob("*.py")} == {INITIAL, USER_SCOPED}


class TestUserScopedMigration:
    def test_backfills_earliest_user(self, db_path: Path) -> None:
        _legacy_db(db_path)
        _execute(
            db_path,
            "INSERT INTO applications (id, name) VALUES ('app', 'App')",
            "INSERT INTO users (id, email, password_hash, created_at) "
            "VALUES ('late', 'late@example.com', 'h', '2024-02-01T00:00:00+00:00')",
            "INSERT INTO users (id, email, password_hash, created_at) "
            "VALUES ('early', 'early@example.com', 'h', '2024-01-01T00:00:00+00:00')",
            "INSERT INTO kv_store (app_id, key, value) VALUES ('app', 'orphan', '\"x\"')",
            "INSERT INTO kv_store (app_id, key, value, owner_id) VALUES ('app', 'owned', '1', 'late')",
        )

        assert migrator.apply_pending(db_path) == [USER_SCOPED]

        rows = dict(_rows(db_path, "SELECT key, owner_id FROM kv_store"))
        assert rows == {"orphan": "early", "owned": "late"}
        assert _kv_primary_key(db_path) == ["app_id", "key", "owner_id"]

    def test_drops_legacy_rows_without_users(self, db_path: Path) -> None:
        _legacy_db(db_path)
        _execute(
            db_path,
            "INSERT INTO applications (id, name) VALUES ('app', 'App')",
            "INSERT INTO kv_store (app_id, key, value) VALUES ('app', 'orphan', '1')",
        )

        assert migrator.apply_pending(db_path) == [USER_SCOPED]

        assert _rows(db_path, "SELECT * FROM kv_store") == []

    def test_rollback_restores_app_scoped_key(self, db_path: Path) -> None:
        migrator.apply_pending(db_path)
        _execute(
            db_path,
            "INSERT INTO applications (id, name) VALUES ('app', 'App')",
            "INSERT INTO users (id, email, password_hash) VALUES ('u1', 'a@example.com', 'h')",
            "INSERT INTO users (id, email, password_hash) VALUES ('u2', 'b@example.com', 'h')",
            "INSERT INTO kv_store (app_id, key, value, owner_id, created_at) "
            "VALUES ('app', 'k', '1', 'u1', '2024-01-01T00:00:00+00:00')",
            "INSERT INTO kv_store (app_id, key, value, owner_id, created_at) "
            "VALUES ('app', 'k', '2', 'u2', '2024-01-02T00:00:00+00:00')",
        )

        migrator.rollback(db_path, USER_SCOPED)

        assert _kv_primary_key(db_path) == ["app_id", "key"]
        assert _rows(db_path, "SELECT key, value, owner_id FROM kv_store") == [("k", "1", "u1")]
        assert migrator.get_status(db_path).pending == [USER_SCOPED]


class TestRollbackErrors:
    def test_unknown_id(self, db_path: Path) -> None:
        migrator.apply_pending(db_path)

        with pytest.raises(MigrationError, match="not found"):
            migrator.rollback(db_path, "9999_nope")

    def test_not_applied(self, db_path: Path) -> None:
        with pytest.raises(MigrationError, match="not applied"):
            migrator.rollback(db_path, USER_SCOPED)


class TestFailedMigration:
    def test_failure_stays_pending_and_retries(self, db_path: Path, tmp_path: Path) -> None:
        migrations_dir = tmp_path / "migrations"
        migrations_dir.mkdir()
        (migrations_dir / "0001_create.py").write_text(
            '"""Create a table."""\n'
            "from yoyo import step\n"
            'steps = [step("CREATE TABLE things (id INTEGER PRIMARY KEY)", "DROP TABLE things")]\n'
        )
        (migrations_dir / "0002_broken.py").write_text(
            '"""Add a column."""\n'
            "from yoyo import step\n"
            'steps = [step("ALTER TABLE missing_table ADD COLUMN x TEXT")]\n'
        )

        with pytest.raises(MigrationError, match="0002_broken"):
            migrator.apply_pending(db_path, migrations_dir)

        status = migrator.get_status(db_path, migrations_dir)
        assert status.applied == ["0001_create"]
        assert status.pending == ["0002_broken"]

        # Fixed in place; a later start picks it up
        (migrations_dir / "0002_broken.py").write_text(
            '"""Add a column."""\n'
            "from yoyo import step\n"
            'steps = [step("ALTER TABLE things ADD COLUMN x TEXT", "SELECT 1")]\n'
        )
        assert migrator.apply_pending(db_path, migrations_dir) == ["0002_broken"]


class TestDatabaseStartup:
    def test_database_init_migrates(self, db_path: Path) -> None:
        from tinycore.db.models import Database

        db = Database(db_path)
        try:
            assert migrator.get_status(db_path).pending == []
        finally:
            db.close()

    def test_database_init_raises_on_failure(self, db_path: Path) -> None:
        from unittest.mock import patch

        from tinycore.db.models import Database

        with patch(
            "tinycore.db.models.base.migrator.apply_pending",
            side_effect=MigrationError("Migration 0002 failed"),
        ):
            with pytest.raises(MigrationError):
                Database(db_path)


def _load_cli() -> ModuleType:
    path = Path(__file__).parent.parent.parent / "scripts" / "migrate.py"
    spec = importlib.util.spec_from_file_location("migrate_cli", path)
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestMigrateCli:
    def test_up_status_down(self, db_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        cli = _load_cli()

        assert cli.main(["--db", str(db_path), "up"]) == 0
        assert f"Applied {USER_SCOPED}" in capsys.readouterr().out

        assert cli.main(["--db", str(db_path), "status"]) == 0
        assert "Pending (0)" in capsys.readouterr().out

        assert cli.main(["--db", str(db_path), "down", USER_SCOPED]) == 0
        assert cli.main(["--db", str(db_path), "status"]) == 0
        assert f"[ ] {USER_SCOPED}" in capsys.readouterr().out

    def test_list(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert _load_cli().main(["list"]) == 0

        out = capsys.readouterr().out
        assert INITIAL in out and USER_SCOPED in out

    def test_down_unknown_returns_error(self, db_path: Path) -> None:
        assert _load_cli().main(["--db", str(db_path), "down", "9999_nope"]) == 1
