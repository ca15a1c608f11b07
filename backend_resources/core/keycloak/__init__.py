"""Keycloak Admin API client library.

Architecture:
- client.py: HTTP client with lazy authentication and auto-refresh
- users.py: User operations (create, search, fetch, delete, roles, groups)
- exceptions.py: Typed exceptions for error handling

Usage:
    from backend_resources.core.keycloak import KeycloakClient, KeycloakUserAdmin

    client = KeycloakClient("http://keycloak:8080")
    client.configure_admin("admin", "password")

    users = KeycloakUserAdmin(client)
    matches = users.search_users("ITM", "alice")
"""
from .client import KeycloakClient, REQUEST_TIMEOUT
from .exceptions import (
    KeycloakError,
    KeycloakAPIError,
    UserNotFoundError,
    UserAlreadyExistsError,
)
from .users import KeycloakUserAdmin

__all__ = [
    "KeycloakClient",
    "REQUEST_TIMEOUT",
    "KeycloakError",
    "KeycloakAPIError",
    "UserNotFoundError",
    "UserAlreadyExistsError",
    "KeycloakUserAdmin",
]
