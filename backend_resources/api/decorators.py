"""
Bearer token authentication and route policy enforcement.

Validates JWT access tokens issued by the Keycloak realm (RFC 6750 / RFC 7519)
and evaluates the route policy table from core.rbac for the matched endpoint.

Security:
- RSA-SHA256 signature verification via JWKS (RFC 7517)
- Expiration, not-before, issuer validation; audience when configured
- JWKS caching (1-hour refresh)
"""

import logging
from typing import Any, Dict, Optional

import jwt
from jwt import PyJWKClient
from jwt.exceptions import (
    ExpiredSignatureError,
    InvalidIssuerError,
    InvalidAudienceError,
    InvalidSignatureError,
    DecodeError,
    PyJWKClientError,
    InvalidTokenError,
)
from flask import request, current_app, g

from backend_resources.core import rbac
from backend_resources.core.errors import AuthenticationError, AuthorizationError

logger = logging.getLogger(__name__)

# JWKS clients cached per URL
_jwks_clients: Dict[str, PyJWKClient] = {}


class TokenValidationError(Exception):
    """Exception raised when JWT token validation fails."""
    pass


def get_jwks_client() -> PyJWKClient:
    """
    Get cached JWKS client for the configured realm.

    Keys are cached and refreshed hourly; the kid from the JWT header
    selects the key, so Keycloak key rotation is picked up.
    """
    cfg = current_app.config["APP_CONFIG"]
    jwks_url = cfg.jwks_url

    client = _jwks_clients.get(jwks_url)
    if client is None:
        logger.info("Initializing JWKS client for: %s", jwks_url)
        client = PyJWKClient(
            jwks_url,
            cache_keys=True,
            max_cached_keys=16,
            lifespan=3600,
            headers={"User-Agent": "backend-resources/1.0"},
        )
        _jwks_clients[jwks_url] = client
    return client


def validate_jwt_token(token: str) -> Dict[str, Any]:
    """
    Validate JWT Bearer token with full security checks.

    Args:
        token: JWT token string (without "Bearer " prefix)

    Returns:
        dict: Validated token claims

    Raises:
        TokenValidationError: If any validation fails
    """
    cfg = current_app.config["APP_CONFIG"]

    try:
        signing_key = get_jwks_client().get_signing_key_from_jwt(token)

        decode_kwargs: Dict[str, Any] = {}
        if cfg.jwt_audience:
            decode_kwargs["audience"] = cfg.jwt_audience

        claims = jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            issuer=cfg.keycloak_issuer,
            options={
                "verify_signature": True,
                "verify_exp": True,
                "verify_nbf": True,
                "verify_iss": True,
                "verify_aud": bool(cfg.jwt_audience),
                "require": ["exp", "iat"],
            },
            leeway=5,
            **decode_kwargs,
        )
    except ExpiredSignatureError:
        raise TokenValidationError("Token expired (exp claim)")
    except InvalidIssuerError as e:
        raise TokenValidationError(f"Invalid issuer (token from wrong realm): {e}")
    except InvalidAudienceError as e:
        raise TokenValidationError(f"Invalid audience (token not for this API): {e}")
    except InvalidSignatureError:
        raise TokenValidationError("Invalid signature (token tampered or wrong key)")
    except DecodeError as e:
        raise TokenValidationError(f"Token decode error (malformed JWT): {e}")
    except (InvalidTokenError, PyJWKClientError) as e:
        raise TokenValidationError(f"Token validation failed: {e}")

    logger.debug("JWT validated for subject: %s", claims.get("sub"))
    return claims


def bearer_token() -> str:
    """Extract the bearer token from the Authorization header.

    Raises:
        AuthenticationError: Header missing, not Bearer, or empty
    """
    auth_header = request.headers.get("Authorization", "")
    if not auth_header:
        raise AuthenticationError("Authorization header required. Use 'Authorization: Bearer <token>'")
    if not auth_header.startswith("Bearer "):
        raise AuthenticationError("Invalid Authorization header format. Expected 'Bearer <token>'")
    token = auth_header[7:].strip()
    if not token:
        raise AuthenticationError("Bearer token is empty")
    return token


def authenticate_request() -> rbac.Principal:
    """Validate the request's bearer token and store the Principal on g."""
    token = bearer_token()
    try:
        claims = validate_jwt_token(token)
    except TokenValidationError as e:
        logger.warning("JWT validation failed on %s: %s", request.path, e)
        raise AuthenticationError(str(e))

    principal = rbac.Principal.from_claims(claims)
    if not principal.username:
        raise AuthenticationError("Token carries no username")
    g.principal = principal
    return principal


def enforce_route_policy() -> None:
    """before_request interceptor: authenticate, then check the endpoint policy.

    Runs before any view code, so an unauthorized caller gets 401/403 no
    matter how malformed the rest of the request is.
    """
    principal = authenticate_request()
    policy = rbac.policy_for(request.endpoint)
    if not rbac.is_allowed(policy, principal):
        logger.warning(
            "Access denied: user=%s endpoint=%s roles=%s",
            principal.username, request.endpoint, sorted(principal.roles),
        )
        raise AuthorizationError(rbac.describe(policy))


def current_principal() -> Optional[rbac.Principal]:
    """Principal of the current request, if it was authenticated."""
    return getattr(g, "principal", None)
