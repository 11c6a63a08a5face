#!/usr/bin/env python3
"""Database migration tool for TinyCore KV.

The server applies pending migrations on startup. This script is for operators
who want to inspect the schema state or roll a migration back.

Usage:
    python scripts/migrate.py status       # applied and pending migrations
    python scripts/migrate.py up           # apply pending migrations
    python scripts/migrate.py down <id>    # roll back one migration
    python scripts/migrate.py list         # all migrations with descriptions

Pass --db PATH to operate on a database other than Config.DATABASE_PATH.
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path so we can import from tinycore
sys.path.insert(0, str(Path(__file__).parent.parent))

from tinycore.config import Config
from tinycore.db.migrator import MigrationError, apply_pending, get_status, list_migrations, rollback
from tinycore.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


def cmd_status(db_path: Path) -> int:
    status = get_status(db_path)
    print(f"Database: {db_path}")
    print(f"\nApplied ({len(status.applied)}):")
    for migration_id in status.applied:
        print(f"  [x] {migration_id}")
    print(f"\nPending ({len(status.pending)}):")
    for migration_id in status.pending:
        print(f"  [ ] {migration_id}")
    return 0


def cmd_up(db_path: Path) -> int:
    applied = apply_pending(db_path)
    if not applied:
        print("Database is up to date")
    for migration_id in applied:
        print(f"Applied {migration_id}")
    return 0


def cmd_down(db_path: Path, migration_id: str) -> int:
    rollback(db_path, migration_id)
    print(f"Rolled back {migration_id}")
    return 0


def cmd_list() -> int:
    for migration_id, description in list_migrations():
        print(f"{migration_id}: {description}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run one migration command.

    Returns:
        0 on success, 1 if the command failed
    """
    parser = argparse.ArgumentParser(description="Manage TinyCore KV database migrations")
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help=f"Database file (default: {Config.DATABASE_PATH})",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("status", help="Show applied and pending migrations")
    subparsers.add_parser("up", help="Apply pending migrations")
    down = subparsers.add_parser("down", help="Roll back one migration")
    down.add_argument("migration_id", help="Id of the migration to roll back")
    subparsers.add_parser("list", help="List all migrations")
    args = parser.parse_args(argv)

    setup_logging()
    db_path: Path = args.db or Config.DATABASE_PATH
    if args.command != "list":
        db_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        if args.command == "status":
            return cmd_status(db_path)
        if args.command == "up":
            return cmd_up(db_path)
        if args.command == "down":
            return cmd_down(db_path, args.migration_id)
        return cmd_list()
    except MigrationError as e:
        logger.error("Migration command failed", extra={"command": args.command, "error": str(e)})
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
