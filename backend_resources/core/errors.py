"""Domain exceptions carrying the HTTP status they surface as."""
from __future__ import annotations
from typing import Dict, Optional


class BackendResourcesError(Exception):
    """Base error with HTTP status; rendered by app error handlers."""

    status = 500

    def __init__(self, message: str, status: Optional[int] = None):
        self.message = message
        if status is not None:
            self.status = status
        super().__init__(message)


class ValidationError(BackendResourcesError):
    """Request failed one or more field rules.

    Attributes:
        errors: Mapping of field name to human-readable message
    """

    status = 400

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        super().__init__("Validation failed: " + ", ".join(sorted(self.errors)))


class AuthenticationError(BackendResourcesError):
    status = 401


class AuthorizationError(BackendResourcesError):
    status = 403


class NotFoundError(BackendResourcesError):
    status = 404


class ConflictError(BackendResourcesError):
    status = 409


class UnhandledProviderError(BackendResourcesError):
    """Identity provider failed in a way with no domain mapping."""

    status = 500
