"""Schema migration runner built on yoyo.

Migrations live in tinycore/migrations/, shipped inside the package, and are
applied in file name order. Applied migration ids are recorded in the
`migrations` table; a migration is recorded only after all of its steps
succeeded, so a failed migration stays pending and is retried on the next
start.

Rollbacks are never automatic. They are run by an operator through
scripts/migrate.py.
"""

import ast
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from yoyo import get_backend, read_migrations

from tinycore.utils.logging import get_logger

if TYPE_CHECKING:
    from yoyo.backends import DatabaseBackend
    from yoyo.migrations import MigrationList

logger = get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).parent.parent / "migrations"
MIGRATION_TABLE = "migrations"


class MigrationError(RuntimeError):
    """A migration could not be applied or rolled back."""


@dataclass
class MigrationStatus:
    applied: list[str]
    pending: list[str]


@contextmanager
def _open_backend(db_path: Path) -> Generator["DatabaseBackend"]:
    backend = get_backend(f"sqlite:///{db_path}", migration_table=MIGRATION_TABLE)
    try:
        yield backend
    finally:
        backend.connection.close()


def _read(migrations_dir: Path | None) -> "MigrationList":
    return read_migrations(str(migrations_dir or MIGRATIONS_DIR))


def describe_migration(path: str | Path) -> str:
    """First line of a migration module's docstring."""
    docstring = ast.get_docstring(ast.parse(Path(path).read_text(encoding="utf-8")))
    if not docstring:
        return ""
    return docstring.strip().splitlines()[0]


def list_migrations(migrations_dir: Path | None = None) -> list[tuple[str, str]]:
    """All registered migrations as (id, description), in application order."""
    return [(m.id, describe_migration(m.path)) for m in _read(migrations_dir)]


def get_status(db_path: Path, migrations_dir: Path | None = None) -> MigrationStatus:
    """Split the registered migrations into applied and pending ids."""
    migrations = _read(migrations_dir)
    with _open_backend(db_path) as backend:
        pending = {m.id for m in backend.to_apply(migrations)}
    return MigrationStatus(
        applied=[m.id for m in migrations if m.id not in pending],
        pending=[m.id for m in migrations if m.id in pending],
    )


def apply_pending(db_path: Path, migrations_dir: Path | None = None) -> list[str]:
    """Apply every pending migration in order.

    Returns:
        Ids of the migrations applied by this call (empty when up to date).

    Raises:
        MigrationError: A migration failed. Earlier migrations of this call
            stay applied; the failed one and everything after it stay pending.
    """
    migrations = _read(migrations_dir)
    applied: list[str] = []
    with _open_backend(db_path) as backend, backend.lock():
        to_apply = backend.to_apply(migrations)
        if not to_apply:
            logger.debug("No pending migrations", extra={"db_path": str(db_path)})
            return applied

        logger.info("Applying database migrations", extra={"count": len(to_apply)})
        for migration in to_apply:
            one = to_apply.filter(lambda m, mid=migration.id: m.id == mid)
            try:
                backend.apply_migrations(one)
            except Exception as e:
                logger.error(
                    "Migration failed",
                    extra={"migration_id": migration.id, "error": str(e)},
                    exc_info=True,
                )
                raise MigrationError(f"Migration {migration.id} failed: {e}") from e
            applied.append(migration.id)
            logger.info("Migration applied", extra={"migration_id": migration.id})

    return applied


def rollback(db_path: Path, migration_id: str, migrations_dir: Path | None = None) -> None:
    """Run the down steps of one applied migration and unrecord it.

    Raises:
        MigrationError: Unknown id, migration not applied, or the down steps failed.
    """
    selected = _read(migrations_dir).filter(lambda m: m.id == migration_id)
    if not selected:
        raise MigrationError(f"Migration {migration_id} not found")

    with _open_backend(db_path) as backend, backend.lock():
        to_rollback = backend.to_rollback(selected)
        if not to_rollback:
            raise MigrationError(f"Migration {migration_id} is not applied")

        logger.info("Rolling back migration", extra={"migration_id": migration_id})
        try:
            backend.rollback_migrations(to_rollback)
        except Exception as e:
            logger.error(
                "Rollback failed",
                extra={"migration_id": migration_id, "error": str(e)},
                exc_info=True,
            )
            raise MigrationError(f"Rollback of migration {migration_id} failed: {e}") from e

    logger.info("Migration rolled back", extra={"migration_id": migration_id})
