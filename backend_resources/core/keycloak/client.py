"""HTTP transport for the Keycloak Admin REST API.

Owns the access token: it is fetched on the first call, cached, and fetched
again shortly before it expires. Every non-2xx/3xx answer becomes a
KeycloakAPIError.
"""
from __future__ import annotations
import logging
import os
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple

import requests

from .exceptions import KeycloakAPIError

REQUEST_TIMEOUT = 5

# Fetch a new token this long before the current one expires
TOKEN_REFRESH_MARGIN = timedelta(seconds=10)

# Keycloak omits expires_in on some grants; admin-cli tokens live 60s by default
DEFAULT_TOKEN_LIFETIME = 60

logger = logging.getLogger(__name__)


class KeycloakClient:
    """Authenticated requests against one Keycloak server.

    Two credential kinds are supported:
    - admin user, password grant through the ``admin-cli`` client
    - service account, client-credentials grant

    Example:
        kc = KeycloakClient("http://keycloak:8080")
        kc.configure_service_account("ITM", "backend-resources", secret)
        kc.get("/admin/realms/ITM/users", params={"username": "alice"})
    """

    def __init__(self, base_url: Optional[str] = None):
        self.base_url = (base_url or os.environ.get("KEYCLOAK_URL", "http://keycloak:8080")).rstrip("/")
        self._auth_method: Optional[str] = None
        self._token_realm: str = "master"
        self._grant: Dict[str, str] = {}
        self._token: Optional[str] = None
        self._token_expires_at: Optional[datetime] = None

    @classmethod
    def from_settings(cls, cfg) -> "KeycloakClient":
        """Client for AppConfig credentials; no request is sent yet."""
        client = cls(cfg.keycloak_url)
        if cfg.uses_service_account:
            client.configure_service_account(
                cfg.keycloak_service_realm,
                cfg.keycloak_service_client_id,
                cfg.keycloak_service_client_secret,
            )
        else:
            client.configure_admin(cfg.keycloak_admin, cfg.keycloak_admin_password)
        return client

    # ─────────────────────────────────────────────────────────────────────
    # Credentials
    # ─────────────────────────────────────────────────────────────────────
    def _set_grant(self, method: str, realm: str, grant: Dict[str, str]) -> None:
        self._auth_method = method
        self._token_realm = realm
        self._grant = grant
        self._token = None
        self._token_expires_at = None

    def configure_admin(self, username: str, password: str, realm: str = "master") -> None:
        self._set_grant("admin", realm, {
            "grant_type": "password",
            "client_id": "admin-cli",
            "username": username,
            "password": password,
        })

    def configure_service_account(self, auth_realm: str, client_id: str, client_secret: str) -> None:
        self._set_grant("service_account", auth_realm, {
            "grant_type": "client_credentials",
            "client_id": client_id,
            "client_secret": client_secret,
        })

    def _fetch_token(self) -> Tuple[str, int]:
        url = f"{self.base_url}/realms/{self._token_realm}/protocol/openid-connect/token"
        resp = requests.post(url, data=self._grant, timeout=REQUEST_TIMEOUT)
        if resp.status_code != 200:
            raise KeycloakAPIError(resp.status_code, resp.text, url)
        body = resp.json()
        return body["access_token"], int(body.get("expires_in", DEFAULT_TOKEN_LIFETIME))

    def _refresh_token(self) -> None:
        if not self._auth_method:
            raise KeycloakAPIError(401, "No credentials configured for the Admin API", "")
        token, lifetime = self._fetch_token()
        self._token = token
        self._token_expires_at = datetime.now() + timedelta(seconds=lifetime)
        logger.debug("Obtained Keycloak %s token (expires in %ss)", self._auth_method, lifetime)

    def _token_is_fresh(self) -> bool:
        if not self._token or not self._token_expires_at:
            return False
        return datetime.now() < self._token_expires_at - TOKEN_REFRESH_MARGIN

    # ─────────────────────────────────────────────────────────────────────
    # Requests
    # ─────────────────────────────────────────────────────────────────────
    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        if not self._token_is_fresh():
            self._refresh_token()
        headers = dict(kwargs.pop("headers", None) or {})
        headers["Authorization"] = f"Bearer {self._token}"

        resp = requests.request(method, f"{self.base_url}{path}", headers=headers, timeout=REQUEST_TIMEOUT, **kwargs)
        if resp.status_code >= 400:
            raise KeycloakAPIError(resp.status_code, resp.text, resp.url)
        return resp

    def get(self, path: str, params: Optional[Dict] = None, **kwargs: Any) -> requests.Response:
        """GET an Admin API path such as ``/admin/realms/ITM/users``.

        Raises:
            KeycloakAPIError: Token fetch failed or status >= 400
        """
        return self._request("GET", path, params=params, **kwargs)

    def post(self, path: str, json: Optional[Any] = None, **kwargs: Any) -> requests.Response:
        return self._request("POST", path, json=json, **kwargs)

    def delete(self, path: str, **kwargs: Any) -> requests.Response:
        return self._request("DELETE", path, **kwargs)
