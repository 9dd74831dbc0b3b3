"""Gateway authentication: session backend, user model, and route policy."""

from gateway.auth.backend import SessionCookieBackend
from gateway.auth.models import AuthenticatedAccount
from gateway.auth.policy import protected_api, public_route, validate_route_auth_policy

__all__ = [
    "AuthenticatedAccount",
    "SessionCookieBackend",
    "protected_api",
    "public_route",
    "validate_route_auth_policy",
]
