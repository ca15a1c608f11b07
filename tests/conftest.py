"""Pytest shared fixtures: app wiring, bearer tokens and network guard rails."""
import os
import pathlib
import sys
import time
from types import SimpleNamespace
from typing import Optional

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Configure test environment BEFORE any app imports
os.environ.setdefault("DEMO_MODE", "true")

import pytest
import requests
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives import serialization
from authlib.jose import jwt as authlib_jwt

from backend_resources.api import decorators
from backend_resources.config import AppConfig
from backend_resources.core import audit
from backend_resources.core.user_service import UserService
from backend_resources.flask_app import create_app
from tests.fakes import InMemoryUserAdmin

TEST_REALM = "ITM"
TEST_ISSUER = f"http://localhost:8080/realms/{TEST_REALM}"


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _block_network(monkeypatch, request):
    """
    Prevent unit tests from reaching Keycloak.

    Integration tests are explicitly marked with @pytest.mark.integration and
    are allowed to perform real HTTP calls by skipping this fixture.
    """
    if request.node.get_closest_marker("integration"):
        return

    def _blocked(*args, **kwargs):
        raise RuntimeError(f"Unexpected HTTP call in unit test: {args[:2]}")

    monkeypatch.setattr(requests, "request", _blocked)
    monkeypatch.setattr(requests, "get", _blocked)
    monkeypatch.setattr(requests, "post", _blocked)


@pytest.fixture(autouse=True)
def audit_log_file(monkeypatch, tmp_path):
    """Send audit events to a per-test file with a known signing key."""
    audit_dir = tmp_path / "audit"
    audit_file = audit_dir / "user-events.jsonl"
    monkeypatch.setattr(audit, "AUDIT_LOG_DIR", audit_dir)
    monkeypatch.setattr(audit, "AUDIT_LOG_FILE", audit_file)
    monkeypatch.setenv("AUDIT_LOG_SIGNING_KEY", "test-signing-key-for-audit-trail")
    return audit_file


# ─────────────────────────────────────────────────────────────────────────────
# RSA Key Pair for JWT Testing
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(scope="session")
def rsa_key_pair():
    """Generate RSA key pair for JWT signing in tests."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return {
        "private_key": private_key,
        "private_pem": private_pem,
        "public_key": private_key.public_key(),
    }


class _StaticJWKS:
    """Stands in for PyJWKClient: every token resolves to the test public key."""

    def __init__(self, public_key):
        self._signing_key = SimpleNamespace(key=public_key)

    def get_signing_key_from_jwt(self, token):
        return self._signing_key


@pytest.fixture()
def stub_jwks(monkeypatch, rsa_key_pair):
    monkeypatch.setattr(decorators, "get_jwks_client", lambda: _StaticJWKS(rsa_key_pair["public_key"]))


# ─────────────────────────────────────────────────────────────────────────────
# JWT Token Helpers
# ─────────────────────────────────────────────────────────────────────────────
def create_valid_jwt(
    rsa_key_pair: dict,
    issuer: str = TEST_ISSUER,
    username: Optional[str] = "testuser",
    roles: Optional[list[str]] = None,
    client_roles: Optional[dict] = None,
    exp_offset: int = 3600,
    nbf_offset: int = 0,
) -> str:
    """Create an RS256-signed access token shaped like Keycloak's."""
    now = int(time.time())
    header = {"alg": "RS256", "typ": "JWT", "kid": "test-key-id"}
    payload = {
        "iss": issuer,
        "aud": "account",
        "sub": "0b9a3a0e-2f0f-4a35-9f5b-4d9f0b3c1a11",
        "exp": now + exp_offset,
        "nbf": now + nbf_offset,
        "iat": now,
        "realm_access": {"roles": roles if roles is not None else []},
    }
    if username is not None:
        payload["preferred_username"] = username
    if client_roles:
        payload["resource_access"] = {client: {"roles": r} for client, r in client_roles.items()}

    token = authlib_jwt.encode(header, payload, rsa_key_pair["private_pem"])
    return token.decode("utf-8") if isinstance(token, bytes) else token


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def moderator_headers(rsa_key_pair):
    return bearer(create_valid_jwt(rsa_key_pair, roles=["MODERATOR"]))


@pytest.fixture()
def user_headers(rsa_key_pair):
    return bearer(create_valid_jwt(rsa_key_pair, roles=["USER"]))


# ─────────────────────────────────────────────────────────────────────────────
# Application
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def app_config():
    return AppConfig(
        demo_mode=True,
        keycloak_url="http://keycloak.test:8080",
        keycloak_realm=TEST_REALM,
        keycloak_issuer=TEST_ISSUER,
        keycloak_server_url=TEST_ISSUER,
        keycloak_admin="admin",
        keycloak_admin_password="admin",
        trusted_proxy_ips="127.0.0.1/32,::1/128",
        audit_log_signing_key="test-signing-key-for-audit-trail",
    )


@pytest.fixture()
def fake_provider():
    return InMemoryUserAdmin()


@pytest.fixture()
def user_service(fake_provider):
    return UserService(fake_provider, realm=TEST_REALM)


@pytest.fixture()
def app(app_config, user_service, stub_jwks):
    flask_app = create_app(cfg=app_config, user_service=user_service)
    flask_app.config.update(TESTING=True)
    return flask_app


@pytest.fixture()
def client(app):
    """Flask test client with the in-memory provider and stubbed JWKS."""
    with app.test_client() as client:
        yield client


# ─────────────────────────────────────────────────────────────────────────────
# Pytest Configuration
# ─────────────────────────────────────────────────────────────────────────────
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (requires running Keycloak)"
    )
    config.addinivalue_line(
        "markers", "critical: marks tests as critical security tests (P0 priority)"
    )
