"""Request and response shapes of the users API."""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class UserRequest:
    """Payload of POST /api/users. Never persisted locally."""
    username: str
    email: str
    password: str
    first_name: str = ""
    last_name: str = ""

    def to_representation(self) -> Dict[str, Any]:
        """Keycloak UserRepresentation for this request."""
        return {
            "username": self.username,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "enabled": True,
            "credentials": [
                {"type": "password", "value": self.password, "temporary": False}
            ],
        }

    def __repr__(self) -> str:
        return f"UserRequest(username={self.username!r}, email={self.email!r})"


@dataclass(frozen=True)
class UserResponse:
    """Read-only projection of a Keycloak user."""
    first_name: str
    last_name: str
    email: str
    roles: List[str] = field(default_factory=list)
    groups: List[str] = field(default_factory=list)

    @classmethod
    def from_keycloak(cls, kc_user: Dict[str, Any], roles: List[str], groups: List[str]) -> "UserResponse":
        return cls(
            first_name=kc_user.get("firstName") or "",
            last_name=kc_user.get("lastName") or "",
            email=kc_user.get("email") or "",
            roles=list(roles),
            groups=list(groups),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "roles": list(self.roles),
            "groups": list(self.groups),
        }
