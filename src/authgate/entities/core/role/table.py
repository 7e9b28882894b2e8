"""Role database table model."""

from sqlalchemy import Column, String
from sqlmodel import Field

from src.authgate.entities.core._base import EntityTable


class RoleTable(EntityTable, table=True):
    """Reference data: one row per role in the vocabulary."""

    __tablename__ = "role"

    name: str = Field(sa_column=Column(String(64), nullable=False, unique=True, index=True))
