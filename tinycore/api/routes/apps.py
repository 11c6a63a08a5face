"""Application routes: registry of the namespaces keys are grouped under."""

from typing import Any

from apiflask import APIBlueprint

from tinycore.api.schemas import CreateApplicationRequest, UpdateApplicationRequest
from tinycore.api.utils import application_to_dict, get_db
from tinycore.api.validation import validate_request
from tinycore.auth.jwt_auth import require_auth
from tinycore.config import Config
from tinycore.db.models import User
from tinycore.errors import NotFound
from tinycore.utils.logging import get_logger

logger = get_logger(__name__)

api = APIBlueprint("apps", __name__, url_prefix=f"{Config.API_PREFIX}/apps", tag="Applications")


@api.route("", methods=["GET"])
@api.doc(responses=[401])
@require_auth
def list_apps(user: User) -> list[dict[str, Any]]:
    """List applications in creation order."""
    _ = user
    return [application_to_dict(a) for a in get_db().list_applications()]


@api.route("", methods=["POST"])
@api.doc(responses=[400, 401, 409])
@require_auth
@validate_request(CreateApplicationRequest)
def create_application(data: CreateApplicationRequest, user: User) -> tuple[dict[str, Any], int]:
    """Register a new application."""
    get_db().create_application(data.id, data.name, data.metadata)
    logger.info("Application created via API", extra={"app_id": data.id, "user_id": user.id})
    return {"message": "Application created successfully"}, 201


@api.route("/<app_id>", methods=["GET"])
@api.doc(responses=[401, 404])
@require_auth
def get_application(user: User, app_id: str) -> dict[str, Any]:
    _ = user
    application = get_db().get_application(app_id)
    if application is None:
        raise NotFound("Application not found")
    return application_to_dict(application)


@api.route("/<app_id>", methods=["PUT"])
@api.doc(responses=[400, 401, 404])
@require_auth
@validate_request(UpdateApplicationRequest)
def update_application(
    data: UpdateApplicationRequest, user: User, app_id: str
) -> dict[str, Any]:
    """Replace an application's name and metadata."""
    if not get_db().update_application(app_id, data.name, data.metadata):
        raise NotFound("Application not found")
    logger.info("Application updated via API", extra={"app_id": app_id, "user_id": user.id})
    return {"message": "Application updated successfully"}


@api.route("/<app_id>", methods=["DELETE"])
@api.doc(responses=[401, 404])
@require_auth
def delete_application(user: User, app_id: str) -> dict[str, Any]:
    """Delete an application and every key stored under it."""
    if not get_db().delete_application(app_id):
        raise NotFound("Application not found")
    logger.info("Application deleted via API", extra={"app_id": app_id, "user_id": user.id})
    return {"message": "Application deleted successfully"}


@api.route("/<app_id>/stats", methods=["GET"])
@api.doc(responses=[401, 404])
@require_auth
def app_stats(user: User, app_id: str) -> dict[str, Any]:
    """Key and owner counts for one application."""
    _ = user
    db = get_db()
    if db.get_application(app_id) is None:
        raise NotFound("Application not found")
    return db.get_application_stats(app_id)
