"""Keycloak user management operations."""
from __future__ import annotations
import logging
from contextlib import contextmanager
from typing import Optional, List, Iterator

from .client import KeycloakClient
from .exceptions import KeycloakAPIError, UserAlreadyExistsError, UserNotFoundError

logger = logging.getLogger(__name__)


@contextmanager
def _user_lookup(realm: str, user_id: str) -> Iterator[None]:
    """Translate a 404 from a per-user endpoint into UserNotFoundError."""
    try:
        yield
    except KeycloakAPIError as e:
        if e.status_code == 404:
            raise UserNotFoundError(f"User '{user_id}' not found in realm '{realm}'") from e
        raise


class KeycloakUserAdmin:
    """User operations on the Keycloak Admin API, scoped by realm."""

    def __init__(self, client: KeycloakClient):
        """Initialize user admin.

        Args:
            client: Keycloak client (authenticates lazily)
        """
        self.client = client

    def create_user(self, realm: str, representation: dict) -> str:
        """Create a user and return the id Keycloak assigned to it.

        Args:
            realm: Realm name
            representation: Keycloak UserRepresentation payload

        Returns:
            New user id

        Raises:
            UserAlreadyExistsError: Username or email already taken (HTTP 409)
            KeycloakAPIError: Any other Admin API failure
        """
        username = representation.get("username", "")
        try:
            resp = self.client.post(f"/admin/realms/{realm}/users", json=representation)
        except KeycloakAPIError as e:
            if e.status_code == 409:
                raise UserAlreadyExistsError(f"User '{username}' already exists in realm '{realm}'") from e
            raise

        # Keycloak answers 201 with Location: .../users/{id}
        location = resp.headers.get("Location", "")
        user_id = location.rstrip("/").rsplit("/", 1)[-1] if location else ""
        if not user_id:
            user_id = self._lookup_created_id(realm, username)

        logger.info("Created user '%s' in realm '%s' (id=%s)", username, realm, user_id)
        return user_id

    def _lookup_created_id(self, realm: str, username: str) -> str:
        """Id of a user that was just created, or "" if it cannot be read back.

        The user already exists at this point, so a failed lookup must not
        turn the create into an error.
        """
        try:
            user = self.get_user_by_username(realm, username)
        except KeycloakAPIError as e:
            logger.warning("User '%s' created in realm '%s' but id lookup failed: %s", username, realm, e)
            return ""
        return user["id"] if user else ""

    def search_users(self, realm: str, username: str, exact: bool = False) -> List[dict]:
        """Search users by username, in the order Keycloak returns them."""
        params = {"username": username}
        if exact:
            params["exact"] = "true"
        resp = self.client.get(f"/admin/realms/{realm}/users", params=params)
        return resp.json() or []

    def get_user_by_username(self, realm: str, username: str) -> Optional[dict]:
        """Return the user representation that exactly matches the username.

        Returns:
            User representation or None if not found
        """
        # Keycloak stores usernames lower-cased
        for user in self.search_users(realm, username):
            if (user.get("username") or "").lower() == username.lower():
                return user
        return None

    def get_user(self, realm: str, user_id: str) -> dict:
        """Fetch a user representation by id.

        Raises:
            UserNotFoundError: No user with this id
        """
        with _user_lookup(realm, user_id):
            return self.client.get(f"/admin/realms/{realm}/users/{user_id}").json()

    def delete_user(self, realm: str, user_id: str) -> None:
        """Delete a user by id.

        Raises:
            UserNotFoundError: No user with this id
        """
        with _user_lookup(realm, user_id):
            self.client.delete(f"/admin/realms/{realm}/users/{user_id}")
        logger.info("Deleted user %s from realm '%s'", user_id, realm)

    def get_realm_role_names(self, realm: str, user_id: str) -> List[str]:
        """Names of the realm roles directly mapped to the user."""
        with _user_lookup(realm, user_id):
            resp = self.client.get(f"/admin/realms/{realm}/users/{user_id}/role-mappings/realm")
        return [role["name"] for role in resp.json() or [] if role.get("name")]

    def get_group_names(self, realm: str, user_id: str) -> List[str]:
        """Names of the groups the user belongs to."""
        with _user_lookup(realm, user_id):
            resp = self.client.get(f"/admin/realms/{realm}/users/{user_id}/groups")
        return [group["name"] for group in resp.json() or [] if group.get("name")]
