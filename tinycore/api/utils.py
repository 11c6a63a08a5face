"""API request and response helpers."""

from typing import TYPE_CHECKING, Any

from flask import Request, current_app

from tinycore.db.models import Application, KVItem, User

if TYPE_CHECKING:
    from tinycore.db.models import Database

# Key under app.extensions holding the Database the app was created with
DB_EXTENSION_KEY = "tinycore.db"


def get_db() -> "Database":
    """The Database of the current app."""
    return current_app.extensions[DB_EXTENSION_KEY]


def get_request_json(req: Request) -> dict[str, Any] | None:
    """Parse the request body as a JSON object.

    Returns None when the body is missing, is not valid JSON, or is not an object.
    """
    data = req.get_json(silent=True)
    return data if isinstance(data, dict) else None


def _isoformat(value: Any) -> str | None:
    return value.isoformat() if value else None


def user_to_dict(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "created_at": _isoformat(user.created_at),
        "updated_at": _isoformat(user.updated_at),
        "metadata": user.metadata,
    }


def application_to_dict(application: Application) -> dict[str, Any]:
    return {
        "id": application.id,
        "name": application.name,
        "created_at": _isoformat(application.created_at),
        "metadata": application.metadata,
    }


def kv_item_to_dict(item: KVItem) -> dict[str, Any]:
    return {
        "app_id": item.app_id,
        "key": item.key,
        "value": item.value,
        "owner_id": item.owner_id,
        "metadata": item.metadata,
        "created_at": _isoformat(item.created_at),
        "updated_at": _isoformat(item.updated_at),
    }
