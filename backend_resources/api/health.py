"""Liveness and readiness probes."""
from flask import Blueprint, current_app

bp = Blueprint("health", __name__)

_PLAIN = {"Content-Type": "text/plain"}


@bp.route("/health")
def health_check():
    return ("ok", 200, _PLAIN)


@bp.route("/ready")
def readiness_check():
    """Ready once a user service is wired; Keycloak itself is contacted lazily."""
    if current_app.extensions.get("user_service") is None:
        return ("user service not configured", 503, _PLAIN)
    return ("ready", 200, _PLAIN)
