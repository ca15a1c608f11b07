"""Interface the user service needs from the identity provider.

KeycloakUserAdmin is the production implementation; tests plug in an
in-memory one. Implementations raise UserAlreadyExistsError on a duplicate
username and UserNotFoundError for an unknown id.
"""
from __future__ import annotations
from typing import List, Protocol


class IdentityProviderClient(Protocol):
    def create_user(self, realm: str, representation: dict) -> str: ...

    def search_users(self, realm: str, username: str, exact: bool = False) -> List[dict]: ...

    def get_user(self, realm: str, user_id: str) -> dict: ...

    def delete_user(self, realm: str, user_id: str) -> None: ...

    def get_realm_role_names(self, realm: str, user_id: str) -> List[str]: ...

    def get_group_names(self, realm: str, user_id: str) -> List[str]: ...
