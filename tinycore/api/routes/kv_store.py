"""Key-value store routes: per-application storage scoped to the caller.

Every route operates on the authenticated user's own entries. An entry owned
by someone else is reported exactly like a missing one.
"""

from typing import Any

from apiflask import APIBlueprint
from flask import request

from tinycore.api.errors import validation_error
from tinycore.api.schemas import KVSetRequest
from tinycore.api.utils import get_db, kv_item_to_dict
from tinycore.api.validation import validate_request
from tinycore.auth.jwt_auth import require_auth
from tinycore.config import Config
from tinycore.db.models import KVItem, User
from tinycore.errors import NotFound
from tinycore.utils.logging import get_logger

logger = get_logger(__name__)

api = APIBlueprint("kv_store", __name__, url_prefix=f"{Config.API_PREFIX}/kv", tag="KV Store")


@api.route("/<app_id>", methods=["GET"])
@api.doc(responses=[401])
@require_auth
def list_keys(user: User, app_id: str) -> list[dict[str, Any]]:
    """List the caller's entries in an application, optionally filtered by ?prefix=."""
    prefix = request.args.get("prefix") or None
    items = get_db().kv_list(app_id, prefix=prefix, owner_id=user.id)
    return [kv_item_to_dict(item) for item in items]


@api.route("/<app_id>/<path:key>", methods=["GET"])
@api.doc(responses=[401, 404])
@require_auth
def get_value(user: User, app_id: str, key: str) -> dict[str, Any]:
    item = get_db().kv_get(app_id, key, user.id)
    if item is None:
        raise NotFound("Key not found")
    return kv_item_to_dict(item)


@api.route("/<app_id>/<path:key>", methods=["PUT"])
@api.doc(responses=[400, 401])
@require_auth
@validate_request(KVSetRequest)
def set_value(
    data: KVSetRequest, user: User, app_id: str, key: str
) -> dict[str, Any] | tuple[dict[str, Any], int]:
    """Set a key's value (create or update). The value may be any JSON document."""
    if len(key) > Config.MAX_KEY_LENGTH:
        return validation_error(
            f"Key must be at most {Config.MAX_KEY_LENGTH} characters", field="key"
        )

    item = get_db().kv_set(
        KVItem(
            app_id=app_id,
            key=key,
            value=data.value,
            owner_id=user.id,
            metadata=data.metadata or {},
        )
    )
    logger.debug("KV value set", extra={"user_id": user.id, "app_id": app_id, "key": key})
    return {"message": "Value stored successfully", "item": kv_item_to_dict(item)}


@api.route("/<app_id>/<path:key>", methods=["DELETE"])
@api.doc(responses=[401, 404])
@require_auth
def delete_value(user: User, app_id: str, key: str) -> dict[str, Any]:
    if not get_db().kv_delete(app_id, key, user.id):
        raise NotFound("Key not found")
    logger.debug("KV value deleted", extra={"user_id": user.id, "app_id": app_id, "key": key})
    return {"message": "Key deleted successfully"}
