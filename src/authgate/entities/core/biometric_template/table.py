"""Biometric template database table model."""

from sqlalchemy import Column, String, Text, UniqueConstraint
from sqlmodel import Field

from src.authgate.entities.core._base import EntityTable


class BiometricTemplateTable(EntityTable, table=True):
    """One enrolled template per identity and modality."""

    __tablename__ = "biometric_template"
    __table_args__ = (
        UniqueConstraint("identity_id", "modality", name="uq_template_identity_modality"),
    )

    identity_id: str = Field(foreign_key="identity.id", index=True)
    modality: str = Field(sa_column=Column(String(16), nullable=False, index=True))
    content_hash: str = Field(
        sa_column=Column(String(64), nullable=False, unique=True, index=True)
    )
    encrypted_template: str = Field(sa_column=Column(Text, nullable=False))
