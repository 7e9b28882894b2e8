"""Identity entity module.

This module contains all Identity-related classes organized by responsibility:
- Identity: Domain entity for one authenticable principal
- IdentityTable / IdentityRoleLink: Database persistence models
- IdentityRepository: Directory access layer
"""

from .entity import Identity
from .repository import IdentityRepository
from .table import IdentityRoleLink, IdentityTable

__all__ = ["Identity", "IdentityRepository", "IdentityRoleLink", "IdentityTable"]
