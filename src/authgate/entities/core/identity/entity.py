"""Identity domain entity."""

from typing import Any

from pydantic import Field

from src.authgate.entities.core._base import Entity


class Identity(Entity):
    """One authenticable principal.

    An identity is reachable through a local password, through at most one
    external provider binding, or both. Provider and external id are either
    both set or both absent.
    """

    username: str = Field(description="Unique login name, immutable after creation")
    email: str = Field(description="Unique email address")
    password_hash: str | None = Field(
        default=None, description="bcrypt hash; absent for provider-only identities"
    )
    provider: str | None = Field(default=None, description="External provider name")
    external_id: str | None = Field(
        default=None, description="Provider-scoped external identifier"
    )
    roles: frozenset[str] = Field(
        default_factory=frozenset, description="Assigned role names"
    )

    @property
    def has_password(self) -> bool:
        return self.password_hash is not None

    @property
    def is_linked(self) -> bool:
        return self.provider is not None and self.external_id is not None

    @property
    def is_authenticable(self) -> bool:
        """True when at least one usable authentication method remains."""
        return self.has_password or self.is_linked

    def __eq__(self, other: Any) -> bool:
        """Compare identities by business attributes, ignoring timestamps."""
        if not isinstance(other, Identity):
            return False

        return (
            self.id == other.id
            and self.username == other.username
            and self.email == other.email
            and self.provider == other.provider
            and self.external_id == other.external_id
            and self.roles == other.roles
        )

    def __hash__(self) -> int:
        return hash((self.id, self.username, self.email, self.provider, self.external_id))
