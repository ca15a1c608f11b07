"""Core Business Logic Module

Framework-independent logic for the users API: usable from the Flask
blueprints and from the CLI in scripts/.

Module Structure:
    - keycloak/          : Keycloak Admin API client and user operations
    - identity.py        : IdentityProviderClient protocol
    - user_service.py    : create / fetch users, provider error translation
    - validators.py      : declarative request validation
    - rbac.py            : principal, role normalization, route policy table
    - models.py          : UserRequest / UserResponse
    - errors.py          : domain exceptions with HTTP status
    - audit.py           : signed JSONL audit trail

These modules are NOT auto-imported; import explicitly when needed:
    from backend_resources.core.user_service import UserService
    from backend_resources.core.rbac import Principal, ROUTE_POLICIES
"""
