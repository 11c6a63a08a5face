"""Database model dataclasses.

These represent the entities stored in the database. They are returned by
Database methods and serialized by the API layer.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class User:
    """A user account. The password hash never leaves the user mixin."""

    id: str
    email: str
    created_at: datetime
    updated_at: datetime
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class Application:
    """A named namespace that KV keys are grouped under."""

    id: str
    name: str
    created_at: datetime
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class KVItem:
    """One stored value, scoped to (app_id, key, owner_id)."""

    app_id: str
    key: str
    value: Any
    owner_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None
