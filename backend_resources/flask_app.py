"""WSGI entry point for the backend-resources service.

create_app() wires settings, logging, the user service and the blueprints
together; the module-level ``app`` is what Gunicorn serves.
"""
from __future__ import annotations
import ipaddress
import logging
from typing import Optional

from flask import Flask, request, abort
from werkzeug.middleware.proxy_fix import ProxyFix

from backend_resources.config import AppConfig, load_settings
from backend_resources.core.keycloak import KeycloakClient, KeycloakUserAdmin
from backend_resources.core.user_service import UserService

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str) -> None:
    """Install one stream handler on the root logger (idempotent)."""
    root = logging.getLogger()
    root.setLevel(level)
    if not any(getattr(h, "_backend_resources", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._backend_resources = True  # type: ignore[attr-defined]
        root.addHandler(handler)


# ─────────────────────────────────────────────────────────────────────────────
# Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(cfg: Optional[AppConfig] = None, user_service: Optional[UserService] = None) -> Flask:
    """Build the Flask app.

    Args:
        cfg: Settings; loaded from the environment when omitted
        user_service: Service to use; built on the Keycloak Admin API when omitted
    """
    cfg = cfg or load_settings()
    configure_logging(cfg.log_level)

    app = Flask(__name__)
    app.config["APP_CONFIG"] = cfg
    app.json.sort_keys = False

    if user_service is None:
        client = KeycloakClient.from_settings(cfg)
        user_service = UserService(KeycloakUserAdmin(client), realm=cfg.keycloak_realm)
    app.extensions["user_service"] = user_service

    # Trust X-Forwarded-* headers from one proxy hop
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)  # type: ignore

    trusted_proxy_networks = _parse_networks(cfg.trusted_proxy_ips)
    app.config["TRUSTED_PROXY_NETWORKS"] = trusted_proxy_networks

    from backend_resources.api import docs, errors, health, users

    app.register_blueprint(health.bp)
    app.register_blueprint(docs.bp)
    app.register_blueprint(users.bp, url_prefix="/api/users")

    errors.register_error_handlers(app)
    _install_proxy_guard(app, trusted_proxy_networks)

    print(f"[flask_app] Started in {'DEMO' if cfg.demo_mode else 'PRODUCTION'} mode")
    print(f"[flask_app] Users API registered at /api/users (realm={user_service.realm})")

    if cfg.demo_mode:
        print("[flask_app] WARNING: demo defaults are active; configure real credentials before deploying")

    return app


def _parse_networks(raw: str) -> list:
    networks = []
    for item in (part.strip() for part in raw.split(",")):
        if not item:
            continue
        try:
            networks.append(ipaddress.ip_network(item, strict=False))
        except ValueError:
            print(f"[flask_app] Ignoring invalid TRUSTED_PROXY_IPS entry: {item}")
    return networks


def _proxy_error(peer: Optional[str], networks: list) -> Optional[str]:
    """Reason to reject a request carrying X-Forwarded-For, or None."""
    if not peer:
        return None
    try:
        address = ipaddress.ip_address(peer)
    except ValueError:
        return "Invalid proxy address"
    if any(address in network for network in networks):
        return None
    return "Untrusted proxy"


def _install_proxy_guard(app: Flask, trusted_proxy_networks: list) -> None:
    @app.before_request
    def check_forwarded_for() -> None:
        forwarded = request.headers.get("X-Forwarded-For")
        if not forwarded:
            return
        if "," in forwarded:
            abort(400, description="Multiple forwarded clients not permitted")
        # Peer address before ProxyFix rewrote REMOTE_ADDR
        peer = request.environ.get("werkzeug.proxy_fix.orig", {}).get("REMOTE_ADDR")
        reason = _proxy_error(peer, trusted_proxy_networks)
        if reason:
            abort(400, description=reason)


# ─────────────────────────────────────────────────────────────────────────────
# Gunicorn target
# ─────────────────────────────────────────────────────────────────────────────
app = create_app()


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=8081, debug=True)
