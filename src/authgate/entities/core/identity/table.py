"""Identity database table models."""

from sqlalchemy import Column, String, UniqueConstraint
from sqlmodel import Field, SQLModel

from src.authgate.entities.core._base import EntityTable


class IdentityTable(EntityTable, table=True):
    """Database persistence model for identities.

    Uniqueness of username, email and the (provider, external_id) pair is
    enforced here so that concurrent writers cannot both succeed.
    """

    __tablename__ = "identity"
    __table_args__ = (
        UniqueConstraint("provider", "external_id", name="uq_identity_provider_external"),
    )

    username: str = Field(
        sa_column=Column(String(255), nullable=False, unique=True, index=True)
    )
    email: str = Field(
        sa_column=Column(String(320), nullable=False, unique=True, index=True)
    )
    password_hash: str | None = Field(
        default=None, sa_column=Column(String(255), nullable=True)
    )
    provider: str | None = Field(
        default=None, sa_column=Column(String(64), nullable=True, index=True)
    )
    external_id: str | None = Field(
        default=None, sa_column=Column(String(512), nullable=True, index=True)
    )


class IdentityRoleLink(SQLModel, table=True):
    """Association between identities and roles."""

    __tablename__ = "identity_role"

    identity_id: str = Field(foreign_key="identity.id", primary_key=True)
    role_id: str = Field(foreign_key="role.id", primary_key=True)
