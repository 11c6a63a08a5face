"""Shared helper functions for the database mixins."""

import json
from datetime import UTC, datetime
from typing import Any


def utc_now_iso() -> str:
    """Current time as the ISO-8601 string stored in every timestamp column."""
    return datetime.now(UTC).isoformat()


def parse_timestamp(raw: str | None) -> datetime | None:
    """Parse a stored timestamp.

    Accepts both the ISO strings written by this service and SQLite's
    CURRENT_TIMESTAMP format ("YYYY-MM-DD HH:MM:SS"), which legacy rows carry.
    """
    if not raw:
        return None
    return datetime.fromisoformat(raw)


def dump_json(value: Any) -> str:
    """Serialize a JSON-compatible value for a TEXT column."""
    return json.dumps(value, ensure_ascii=False)


def dump_metadata(metadata: dict[str, Any] | None) -> str | None:
    """Serialize metadata; empty or missing metadata is stored as NULL."""
    return dump_json(metadata) if metadata else None


def load_metadata(raw: str | None) -> dict[str, Any]:
    """Parse a metadata column; NULL reads back as an empty dict."""
    if not raw:
        return {}
    parsed = json.loads(raw)
    return parsed if isinstance(parsed, dict) else {}
