"""Role-Based Access Control helpers.

Routes are protected by a policy table rather than per-view decorators:
each endpoint maps to a policy variant, and the blueprint interceptor
evaluates it against the Principal built from the bearer token.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Mapping, Union

ROLE_PREFIX = "ROLE_"


class Role(str, Enum):
    MODERATOR = "MODERATOR"
    USER = "USER"


def collect_roles(*sources) -> list[str]:
    """Collect all roles from realm_access and resource_access claims."""
    roles = []
    for source in sources:
        if not isinstance(source, dict):
            continue
        realm_access = source.get("realm_access")
        if isinstance(realm_access, dict):
            roles.extend(r for r in realm_access.get("roles") or [] if r not in roles)
        resource_access = source.get("resource_access")
        if isinstance(resource_access, dict):
            for client_access in resource_access.values():
                if not isinstance(client_access, dict):
                    continue
                roles.extend(r for r in client_access.get("roles") or [] if r not in roles)
    return roles


def normalize_role(role: str) -> str:
    """'moderator', 'ROLE_MODERATOR' and 'MODERATOR' all normalize to 'MODERATOR'."""
    upper = role.strip().upper()
    if upper.startswith(ROLE_PREFIX):
        upper = upper[len(ROLE_PREFIX):]
    return upper


def username_from_claims(claims: Mapping) -> str:
    """Preferred username of the token subject, falling back to sub."""
    for key in ("preferred_username", "username", "sub"):
        value = claims.get(key)
        if isinstance(value, str) and value:
            return value
    return ""


@dataclass(frozen=True)
class Principal:
    """Authenticated caller."""
    username: str
    roles: FrozenSet[str] = frozenset()
    claims: Dict = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_claims(cls, claims: Mapping) -> "Principal":
        roles = frozenset(normalize_role(r) for r in collect_roles(dict(claims)) if isinstance(r, str))
        return cls(username=username_from_claims(claims), roles=roles, claims=dict(claims))

    def has_role(self, role: Union[Role, str]) -> bool:
        name = role.value if isinstance(role, Role) else role
        return normalize_role(name) in self.roles


# ─────────────────────────────────────────────────────────────────────────────
# Policies
# ─────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class Authenticated:
    """Any authenticated caller."""


@dataclass(frozen=True)
class RequireRole:
    """Caller must hold role."""
    role: Role


Policy = Union[Authenticated, RequireRole]

AUTHENTICATED = Authenticated()

# Keyed by Flask endpoint name
ROUTE_POLICIES: Dict[str, Policy] = {
    "users.create_user": RequireRole(Role.MODERATOR),
    "users.get_user_by_id": RequireRole(Role.MODERATOR),
    "users.hello": AUTHENTICATED,
}


def policy_for(endpoint: str | None) -> Policy:
    """Policy of an endpoint; endpoints missing from the table need authentication."""
    return ROUTE_POLICIES.get(endpoint or "", AUTHENTICATED)


def is_allowed(policy: Policy, principal: Principal) -> bool:
    if isinstance(policy, RequireRole):
        return principal.has_role(policy.role)
    if isinstance(policy, Authenticated):
        return bool(principal.username)
    raise TypeError(f"Unknown policy: {policy!r}")


def describe(policy: Policy) -> str:
    """Message for a 403 response."""
    if isinstance(policy, RequireRole):
        return f"Required role: {policy.role.value}"
    return "Authentication required"
