"""User routes: registration, login, profile and account management.

Registration is open while the system has no users (or always, with
ALLOW_MULTI_USER_REGISTRATION). Every other route except login requires a
bearer token.
"""

from typing import Any

from apiflask import APIBlueprint

from tinycore.api.errors import validation_error
from tinycore.api.rate_limiting import rate_limit_auth
from tinycore.api.schemas import LoginRequest, RegisterRequest
from tinycore.api.utils import get_db, user_to_dict
from tinycore.api.validation import validate_request
from tinycore.auth import service
from tinycore.auth.jwt_auth import create_token, require_auth
from tinycore.config import Config
from tinycore.db.models import User
from tinycore.errors import NotFound
from tinycore.utils.logging import get_logger

logger = get_logger(__name__)

api = APIBlueprint("users", __name__, url_prefix=f"{Config.API_PREFIX}/users", tag="Users")


@api.route("/registration-status", methods=["GET"])
@api.doc(responses=[500])
def registration_status() -> dict[str, Any]:
    """Whether a new account can be registered right now."""
    db = get_db()
    return {
        "registrationAllowed": service.registration_allowed(db),
        "hasUsers": service.has_users(db),
    }


@api.route("/register", methods=["POST"])
@api.doc(responses=[400, 403, 409, 429])
@rate_limit_auth
@validate_request(RegisterRequest)
def register(data: RegisterRequest) -> tuple[dict[str, Any], int]:
    """Create an account and sign it in."""
    user = service.register(get_db(), data.email, data.password, data.metadata)
    token = create_token(user)
    return {
        "message": "User registered successfully",
        "user": user_to_dict(user),
        "token": token,
    }, 201


@api.route("/login", methods=["POST"])
@api.doc(responses=[400, 401, 429])
@rate_limit_auth
@validate_request(LoginRequest)
def login(data: LoginRequest) -> dict[str, Any]:
    """Exchange email and password for a bearer token."""
    user, token = service.login(get_db(), data.email, data.password)
    return {
        "message": "Login successful",
        "user": user_to_dict(user),
        "token": token,
    }


@api.route("/me", methods=["GET"])
@api.doc(responses=[401])
@require_auth
def me(user: User) -> dict[str, Any]:
    """Profile of the authenticated user."""
    return user_to_dict(user)


@api.route("/", methods=["GET"])
@api.doc(responses=[401])
@require_auth
def list_users(user: User) -> list[dict[str, Any]]:
    """List all user accounts."""
    _ = user
    return [user_to_dict(u) for u in get_db().list_users()]


@api.route("/<user_id>", methods=["DELETE"])
@api.doc(responses=[400, 401, 404])
@require_auth
def delete_user(user: User, user_id: str) -> dict[str, Any] | tuple[dict[str, Any], int]:
    """Delete another user's account along with their keys."""
    if user_id == user.id:
        return validation_error("Cannot delete your own account", field="id")

    if not get_db().delete_user(user_id):
        raise NotFound("User not found")

    logger.info("User deleted via API", extra={"user_id": user_id, "deleted_by": user.id})
    return {"message": "User deleted successfully"}
