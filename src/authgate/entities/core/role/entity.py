"""Role domain entity."""

from pydantic import Field

from src.authgate.entities.core._base import Entity


class Role(Entity):
    """A named permission tier from the closed, deploy-time role vocabulary."""

    name: str = Field(description="Upper-case role name, e.g. USER or ADMIN")
