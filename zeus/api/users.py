"""User resource endpoints (/v1/api/users).

Views only translate between Flask and ``UserResourceHandler``: they pull the
path id, query string or body out of the request, call one handler method and
serialize the returned envelope. Failures raised as ``ApiError`` are rendered
by the blueprint error handler below, once per request.
"""

from __future__ import annotations
from typing import Any

from flask import Blueprint, current_app, jsonify, request

from zeus.core.envelope import Envelope, Failure, http_status
from zeus.core.errors import ApiError, ValidationFailed
from zeus.core.users import UserResourceHandler

USERS_PREFIX = "/v1/api/users"
HANDLER_EXTENSION_KEY = "zeus.users"

bp = Blueprint("users", __name__)


def get_handler() -> UserResourceHandler:
    """Handler wired by the application factory."""
    return current_app.extensions[HANDLER_EXTENSION_KEY]


def _respond(envelope: Envelope):
    return jsonify(envelope.to_dict()), http_status(envelope)


def _payload() -> Any:
    """Request body as a mapping: JSON object or form fields."""
    if request.is_json:
        payload = request.get_json(silent=True)
        if payload is None and request.get_data():
            raise ValidationFailed("request body is not valid JSON")
        return payload
    if request.form:
        return request.form
    return {}


@bp.errorhandler(ApiError)
def handle_api_error(error: ApiError):
    return _respond(Failure.from_error(error))


# ─────────────────────────────────────────────────────────────────────────────
# Collection
# ─────────────────────────────────────────────────────────────────────────────

@bp.route("", methods=["GET"])
def list_users():
    """List users with pagination and search.

    Query parameters:
        - limit: page size (default 20, clamped)
        - offset: zero-based offset (default 0)
        - q: substring over username, realname, email and mobile
        - department, status, order: optional filters/sorting
    """
    return _respond(get_handler().list(request.args))


@bp.route("", methods=["POST"])
def create_user():
    """Create a user; answers ``{"id": N}`` or CreateFailed."""
    return _respond(get_handler().create(_payload()))


@bp.route("/department/move", methods=["POST"])
def move_department():
    """Move users ``{"ids": "1,2,3", "department": D}`` to one department."""
    return _respond(get_handler().update_department(_payload()))


# ─────────────────────────────────────────────────────────────────────────────
# Single user
# ─────────────────────────────────────────────────────────────────────────────

@bp.route("/<user_id>", methods=["GET"])
def get_user(user_id: str):
    return _respond(get_handler().get(user_id))


@bp.route("/<user_id>", methods=["PUT"])
def edit_user(user_id: str):
    return _respond(get_handler().edit(user_id, _payload()))


@bp.route("/<user_id>/status", methods=["PUT"])
def edit_user_status(user_id: str):
    return _respond(get_handler().edit_status(user_id, _payload()))


@bp.route("/<user_id>/password", methods=["PUT"])
def edit_user_password(user_id: str):
    return _respond(get_handler().edit_password(user_id, _payload()))


@bp.route("/<user_id>", methods=["DELETE"])
def delete_user(user_id: str):
    return _respond(get_handler().delete(user_id))


@bp.route("/<user_id>/permissions", methods=["GET"])
def get_user_permissions(user_id: str):
    return _respond(get_handler().get_permissions(user_id))
