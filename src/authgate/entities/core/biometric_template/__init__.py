"""Biometric template entity module."""

from .entity import BiometricModality, BiometricTemplate
from .repository import BiometricTemplateRepository
from .table import BiometricTemplateTable

__all__ = [
    "BiometricModality",
    "BiometricTemplate",
    "BiometricTemplateRepository",
    "BiometricTemplateTable",
]
