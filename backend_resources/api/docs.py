"""OpenAPI description of the users API, served as JSON."""
from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from flask import Blueprint, Response, current_app, jsonify

bp = Blueprint("docs", __name__)


def _document_path() -> Path:
    """OPENAPI_SPEC_PATH from app config, else the YAML shipped with the package."""
    override = current_app.config.get("OPENAPI_SPEC_PATH")
    if override:
        return Path(override)
    return Path(current_app.root_path) / "openapi" / "users_openapi.yaml"


def _read_document() -> dict[str, Any]:
    path = _document_path()
    if not path.exists():
        raise FileNotFoundError(f"OpenAPI document not found: {path}")
    return yaml.safe_load(path.read_text(encoding="utf-8"))


@bp.route("/openapi.json", methods=["GET"])
def openapi_json() -> Response:
    document = _read_document()
    cfg = current_app.config.get("APP_CONFIG")
    if cfg is not None:
        # Advertise the realm issuing the bearer tokens
        schemes = document.setdefault("components", {}).setdefault("securitySchemes", {})
        bearer = schemes.setdefault("bearerAuth", {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"})
        bearer["description"] = f"Access token issued by {cfg.keycloak_issuer}"
    return jsonify(document)
