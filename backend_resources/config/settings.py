"""Runtime configuration: environment variables, Docker secrets and demo defaults."""
from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


DEFAULT_REALM = "ITM"
SECRETS_DIR = Path("/run/secrets")


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """Value of a mounted secret, else of ``env_var``, else None.

    Empty secret files and empty variables count as unset.
    """
    path = SECRETS_DIR / secret_name
    if path.is_file():
        try:
            value = path.read_text().strip()
        except OSError as e:
            print(f"[settings] Cannot read secret {secret_name}: {e}")
        else:
            if value:
                print(f"[settings] Secret {secret_name} read from {SECRETS_DIR}")
                return value

    if env_var and os.getenv(env_var):
        return os.getenv(env_var)
    return None


@dataclass
class AppConfig:
    """Application configuration container."""
    demo_mode: bool

    # Keycloak / token validation
    keycloak_url: str = ""
    keycloak_realm: str = DEFAULT_REALM
    keycloak_issuer: str = ""
    keycloak_server_url: str = ""
    jwt_audience: str = ""

    # Admin API credentials (password grant on master)
    keycloak_admin: str = ""
    keycloak_admin_password: str = ""

    # Service account (client credentials); preferred when a secret is set
    keycloak_service_realm: str = "master"
    keycloak_service_client_id: str = "backend-resources"
    keycloak_service_client_secret: str = ""

    # HTTP
    trusted_proxy_ips: str = "127.0.0.1/32,::1/128"

    # Audit / logging
    audit_log_signing_key: str = ""
    log_level: str = "INFO"

    @property
    def uses_service_account(self) -> bool:
        """True when the Admin API should be reached with client credentials."""
        return bool(self.keycloak_service_client_secret)

    @property
    def jwks_url(self) -> str:
        """JWKS endpoint used to verify bearer tokens."""
        base = (self.keycloak_server_url or self.keycloak_issuer).rstrip("/")
        return f"{base}/protocol/openid-connect/certs"


def _get_or_default(var_name: str, demo_default: Optional[str] = None, required: bool = True, demo_mode: bool = False) -> str:
    """Environment value of ``var_name``; demo default or "" when allowed, RuntimeError otherwise."""
    value = os.environ.get(var_name)
    if not value and demo_mode and demo_default is not None:
        print(f"[demo-mode] {var_name} not set, using demo value")
        value = demo_default
    if value:
        return value
    if required:
        raise RuntimeError(f"{var_name} must be set when DEMO_MODE is false.")
    return ""


def load_settings() -> AppConfig:
    """Load application settings from environment and /run/secrets."""
    demo_mode = os.environ.get("DEMO_MODE", "false").lower() == "true"

    keycloak_realm = os.environ.get("KEYCLOAK_REALM", DEFAULT_REALM)

    keycloak_url = _get_or_default(
        "KEYCLOAK_URL",
        demo_default="http://127.0.0.1:8080",
        demo_mode=demo_mode,
    ).rstrip("/")
    keycloak_issuer = _get_or_default(
        "KEYCLOAK_ISSUER",
        demo_default=f"http://localhost:8080/realms/{keycloak_realm}",
        demo_mode=demo_mode,
    ).rstrip("/")
    keycloak_server_url = os.environ.get("KEYCLOAK_SERVER_URL", keycloak_issuer).rstrip("/")
    jwt_audience = os.environ.get("JWT_AUDIENCE", "").strip()

    # Service account takes precedence over admin credentials when configured
    keycloak_service_client_secret = _load_secret_from_file(
        "keycloak_service_client_secret",
        "KEYCLOAK_SERVICE_CLIENT_SECRET",
    ) or ""
    keycloak_service_realm = os.environ.get("KEYCLOAK_SERVICE_REALM", "master")
    keycloak_service_client_id = os.environ.get("KEYCLOAK_SERVICE_CLIENT_ID", "backend-resources")

    admin_required = not keycloak_service_client_secret
    keycloak_admin = _get_or_default(
        "KEYCLOAK_ADMIN",
        demo_default="admin",
        required=admin_required,
        demo_mode=demo_mode,
    )
    keycloak_admin_password = _load_secret_from_file("keycloak_admin_password", "KEYCLOAK_ADMIN_PASSWORD")
    if not keycloak_admin_password:
        keycloak_admin_password = _get_or_default(
            "KEYCLOAK_ADMIN_PASSWORD",
            demo_default="admin",
            required=admin_required,
            demo_mode=demo_mode,
        )

    trusted_proxy_ips = os.environ.get("TRUSTED_PROXY_IPS")
    if not trusted_proxy_ips:
        is_testing = os.environ.get("PYTEST_CURRENT_TEST") is not None
        if demo_mode or is_testing:
            trusted_proxy_ips = "127.0.0.1/32,::1/128"
        else:
            raise RuntimeError("TRUSTED_PROXY_IPS is required when DEMO_MODE is false.")

    audit_log_signing_key = _load_secret_from_file("audit_log_signing_key", "AUDIT_LOG_SIGNING_KEY") or ""
    if not audit_log_signing_key and demo_mode:
        audit_log_signing_key = "demo-audit-signing-key-change-in-production"
        print("[demo-mode] Using demo AUDIT_LOG_SIGNING_KEY")
    if audit_log_signing_key:
        # core.audit reads the key from the environment at write time
        os.environ["AUDIT_LOG_SIGNING_KEY"] = audit_log_signing_key

    log_level = os.environ.get("LOG_LEVEL", "INFO").upper()

    mode_label = "DEMO" if demo_mode else "PRODUCTION"
    auth_label = "service-account" if keycloak_service_client_secret else "admin"
    print(f"[settings] Mode={mode_label}; realm={keycloak_realm}; admin-auth={auth_label}")

    if demo_mode:
        print("[settings] WARNING: Demo credentials in use. Do not deploy with these defaults.")

    return AppConfig(
        demo_mode=demo_mode,
        keycloak_url=keycloak_url,
        keycloak_realm=keycloak_realm,
        keycloak_issuer=keycloak_issuer,
        keycloak_server_url=keycloak_server_url,
        jwt_audience=jwt_audience,
        keycloak_admin=keycloak_admin,
        keycloak_admin_password=keycloak_admin_password,
        keycloak_service_realm=keycloak_service_realm,
        keycloak_service_client_id=keycloak_service_client_id,
        keycloak_service_client_secret=keycloak_service_client_secret,
        trusted_proxy_ips=trusted_proxy_ips,
        audit_log_signing_key=audit_log_signing_key,
        log_level=log_level,
    )
