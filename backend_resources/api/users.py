"""Users API (/api/users).

Every request first passes enforce_route_policy (bearer token + route policy
table), then view-level validation, then the UserService.
"""
from __future__ import annotations
import logging

from flask import Blueprint, abort, current_app, jsonify, request

from backend_resources.api.decorators import current_principal, enforce_route_policy
from backend_resources.core import validators
from backend_resources.core.user_service import UserService

bp = Blueprint("users", __name__)
bp.before_request(enforce_route_policy)

logger = logging.getLogger(__name__)


def _user_service() -> UserService:
    return current_app.extensions["user_service"]


@bp.route("/hello", methods=["GET"])
def hello():
    """Echo the authenticated caller's username as a JSON string."""
    return jsonify(current_principal().username)


@bp.route("", methods=["POST"])
def create_user():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        abort(400, description="Request body must be a JSON object")

    user_request = validators.parse_user_request(payload)
    operator = current_principal().username
    _user_service().create_user(user_request, operator=operator)
    logger.info("User '%s' created by %s", user_request.username, operator)
    return ("", 200)


@bp.route("/<user_id>", methods=["GET"])
def get_user_by_id(user_id: str):
    uid = validators.parse_user_id(user_id)
    user = _user_service().get_user_by_id(uid)
    return jsonify(user.to_dict())
