"""Domain models for authenticated callers."""

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class AuthUser:
    """User resolved from a bearer token."""

    id: UUID
    email: str | None = None
