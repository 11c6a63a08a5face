"""Administrative reports over the key-value store.

These read across owners. Any authenticated user may call them; the service
has no roles.
"""

from typing import Any

from apiflask import APIBlueprint
from flask import request

from tinycore.api.utils import get_db, kv_item_to_dict
from tinycore.auth.jwt_auth import require_auth
from tinycore.config import Config
from tinycore.db.models import User
from tinycore.errors import NotFound

api = APIBlueprint("admin", __name__, url_prefix=f"{Config.API_PREFIX}/admin", tag="Admin")


@api.route("/kv/<app_id>", methods=["GET"])
@api.doc(responses=[401])
@require_auth
def list_app_keys(user: User, app_id: str) -> list[dict[str, Any]]:
    """Every owner's entries in an application, optionally filtered by ?prefix=."""
    _ = user
    prefix = request.args.get("prefix") or None
    return [kv_item_to_dict(item) for item in get_db().kv_list_all_owners(app_id, prefix)]


@api.route("/users/<user_id>/kv", methods=["GET"])
@api.doc(responses=[401, 404])
@require_auth
def list_user_keys(user: User, user_id: str) -> list[dict[str, Any]]:
    """All entries of one user across applications."""
    _ = user
    db = get_db()
    if db.get_user_by_id(user_id) is None:
        raise NotFound("User not found")
    return [kv_item_to_dict(item) for item in db.kv_list_by_owner(user_id)]
