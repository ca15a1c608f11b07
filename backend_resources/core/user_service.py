"""
User service: business rules between the users API and the identity provider.

Architecture:
    /api/users blueprint ──> UserService ──> IdentityProviderClient ──> Keycloak

Error translation:
    UserAlreadyExistsError         -> ConflictError (409)
    UserNotFoundError              -> NotFoundError (404)
    other KeycloakError / transport -> UnhandledProviderError (500)
"""

from __future__ import annotations
import logging
from uuid import UUID

import requests

from backend_resources.config.settings import DEFAULT_REALM
from backend_resources.core import audit
from backend_resources.core.errors import ConflictError, NotFoundError, UnhandledProviderError
from backend_resources.core.identity import IdentityProviderClient
from backend_resources.core.keycloak.exceptions import (
    KeycloakError,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from backend_resources.core.models import UserRequest, UserResponse

logger = logging.getLogger(__name__)

# Failures of the provider that have no domain meaning of their own
PROVIDER_FAILURES = (KeycloakError, requests.RequestException)


class UserService:
    """Create and look up users in one identity-provider realm."""

    def __init__(self, provider: IdentityProviderClient, realm: str = DEFAULT_REALM):
        self.provider = provider
        self.realm = realm

    def create_user(self, user_request: UserRequest, operator: str = "system") -> None:
        """Create the user with an enabled account and a permanent password.

        Args:
            user_request: Validated request
            operator: Username of the caller, recorded in the audit trail

        Raises:
            ConflictError: Username already taken in the realm
            UnhandledProviderError: Any other provider failure
        """
        username = user_request.username
        try:
            user_id = self.provider.create_user(self.realm, user_request.to_representation())
        except UserAlreadyExistsError as e:
            logger.info("Rejected duplicate username '%s' in realm '%s'", username, self.realm)
            self._audit_create(username, operator, success=False, details={"error": "conflict"})
            raise ConflictError(f"User '{username}' already exists") from e
        except PROVIDER_FAILURES as e:
            logger.error("Identity provider failed to create user '%s': %s", username, e)
            self._audit_create(username, operator, success=False, details={"error": str(e)})
            raise UnhandledProviderError("Identity provider error while creating user") from e

        self._audit_create(username, operator, success=True, details={"user_id": user_id})

    def get_user_by_id(self, user_id: UUID) -> UserResponse:
        """Return profile, realm role names and group names of a user.

        Raises:
            NotFoundError: No user with this id
            UnhandledProviderError: Any other provider failure
        """
        key = str(user_id)
        try:
            kc_user = self.provider.get_user(self.realm, key)
            roles = self.provider.get_realm_role_names(self.realm, key)
            groups = self.provider.get_group_names(self.realm, key)
        except UserNotFoundError as e:
            raise NotFoundError("User not found") from e
        except PROVIDER_FAILURES as e:
            logger.error("Identity provider failed to fetch user %s: %s", key, e)
            raise UnhandledProviderError("Identity provider error while fetching user") from e

        return UserResponse.from_keycloak(kc_user, roles, groups)

    def _audit_create(self, username: str, operator: str, *, success: bool, details: dict) -> None:
        audit.safe_log_user_event(
            "create_user",
            username,
            operator=operator,
            realm=self.realm,
            details=details,
            success=success,
        )
