"""Supabase-backed token verification."""

import logging
from dataclasses import dataclass
from uuid import UUID

from supabase import AuthError, Client

from platewise.domain.models import AuthUser
from platewise.services.auth import AuthGateway

logger = logging.getLogger(__name__)


@dataclass
class SupabaseAuthGateway(AuthGateway):
    """Resolves access tokens with Supabase Auth."""

    client: Client

    def get_user(self, access_token: str) -> AuthUser | None:
        """Return the user for a valid access token."""
        try:
            response = self.client.auth.get_user(access_token)
        except AuthError as exc:
            logger.info("Rejected access token", extra={"reason": str(exc)})
            return None
        if response is None or response.user is None:
            return None
        return AuthUser(id=UUID(str(response.user.id)), email=response.user.email)
