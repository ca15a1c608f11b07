"""Errors raised by the Keycloak client and user admin."""


class KeycloakError(Exception):
    """Root of everything raised from core.keycloak."""


class KeycloakAPIError(KeycloakError):
    """Admin API or token endpoint answered with an error status.

    Attributes:
        status_code: HTTP status Keycloak returned
        message: Response body, usually Keycloak's JSON error
        endpoint: URL that was called
    """

    def __init__(self, status_code: int, message: str, endpoint: str):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        super().__init__(f"Keycloak {status_code} from {endpoint or '<no endpoint>'}: {message}")


class UserNotFoundError(KeycloakError):
    """No user with the requested id in the realm (HTTP 404)."""


class UserAlreadyExistsError(KeycloakError):
    """Username or email is already taken in the realm (HTTP 409)."""
