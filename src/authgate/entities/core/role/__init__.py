"""Role entity module."""

from .entity import Role
from .repository import RoleRepository
from .table import RoleTable

__all__ = ["Role", "RoleRepository", "RoleTable"]
