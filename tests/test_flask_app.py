import ipaddress
import logging

import pytest

from backend_resources import flask_app as flask_module
from backend_resources.core.keycloak import KeycloakUserAdmin
from backend_resources.core.user_service import UserService


def test_create_app_wires_keycloak_service_without_network(app_config):
    flask_app = flask_module.create_app(cfg=app_config)

    service = flask_app.extensions["user_service"]
    assert isinstance(service, UserService)
    assert isinstance(service.provider, KeycloakUserAdmin)
    assert service.realm == "ITM"
    assert service.provider.client.base_url == app_config.keycloak_url
    assert flask_app.config["APP_CONFIG"] is app_config


def test_routes_registered(app):
    rules = {rule.rule for rule in app.url_map.iter_rules()}
    assert {"/api/users", "/api/users/<user_id>", "/api/users/hello", "/health", "/ready", "/openapi.json"} <= rules


def test_parse_networks_skips_invalid_entries():
    networks = flask_module._parse_networks("127.0.0.1/32, not-a-network,,10.0.0.0/8")
    assert networks == [ipaddress.ip_network("127.0.0.1/32"), ipaddress.ip_network("10.0.0.0/8")]


def test_configure_logging_is_idempotent():
    root = logging.getLogger()
    flask_module.configure_logging("INFO")
    flask_module.configure_logging("DEBUG")

    ours = [h for h in root.handlers if getattr(h, "_backend_resources", False)]
    assert len(ours) == 1
    assert root.level == logging.DEBUG


# ─────────────────────────────────────────────────────────────────────────────
# Proxy header enforcement
# ─────────────────────────────────────────────────────────────────────────────
def test_request_without_forwarded_header_passes(client):
    assert client.get("/health").status_code == 200


def test_forwarded_from_trusted_proxy_passes(client):
    response = client.get(
        "/health",
        headers={"X-Forwarded-For": "203.0.113.7", "X-Forwarded-Proto": "https"},
        environ_base={"REMOTE_ADDR": "127.0.0.1"},
    )
    assert response.status_code == 200


@pytest.mark.critical
def test_forwarded_from_untrusted_proxy_rejected(client):
    response = client.get(
        "/health",
        headers={"X-Forwarded-For": "203.0.113.7"},
        environ_base={"REMOTE_ADDR": "198.51.100.20"},
    )
    assert response.status_code == 400
    assert response.get_json() == {"error": "Bad Request", "message": "Untrusted proxy"}


@pytest.mark.critical
def test_multiple_forwarded_clients_rejected(client):
    response = client.get(
        "/health",
        headers={"X-Forwarded-For": "203.0.113.7, 198.51.100.1"},
        environ_base={"REMOTE_ADDR": "127.0.0.1"},
    )
    assert response.status_code == 400
    assert response.get_json()["message"] == "Multiple forwarded clients not permitted"
