"""Entities module with hybrid entity-centric structure.

This module organizes entities by business concept rather than technical layer.
Each entity has its own package containing:
- entity.py: Domain model with business logic
- table.py: Database persistence model
- repository.py: Data access layer
"""

from .core.biometric_template import (
    BiometricModality,
    BiometricTemplate,
    BiometricTemplateRepository,
    BiometricTemplateTable,
)
from .core.identity import Identity, IdentityRepository, IdentityRoleLink, IdentityTable
from .core.role import Role, RoleRepository, RoleTable

__all__ = [
    "BiometricModality",
    "BiometricTemplate",
    "BiometricTemplateRepository",
    "BiometricTemplateTable",
    "Identity",
    "IdentityRepository",
    "IdentityRoleLink",
    "IdentityTable",
    "Role",
    "RoleRepository",
    "RoleTable",
]
