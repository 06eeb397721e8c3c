"""Bearer-token authentication."""

from dataclasses import dataclass
from typing import Protocol

from platewise.domain.errors import UnauthorizedError
from platewise.domain.models import AuthUser


class AuthGateway(Protocol):
    """Interface for resolving access tokens to users."""

    def get_user(self, access_token: str) -> AuthUser | None:
        """Return the user for a valid token, or None."""


@dataclass
class AuthService:
    """Resolves Authorization headers to authenticated users."""

    gateway: AuthGateway

    def authenticate(self, authorization: str | None) -> AuthUser:
        """Return the caller for a bearer Authorization header."""
        token = parse_bearer_token(authorization)
        if token is None:
            raise UnauthorizedError("No authorization header")
        user = self.gateway.get_user(token)
        if user is None:
            raise UnauthorizedError("Invalid token")
        return user


def parse_bearer_token(authorization: str | None) -> str | None:
    """Extract the token from a "Bearer <token>" header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
