"""Local credentials, registration and external identity resolution."""

from .credentials import CredentialVerifier
from .registration import RegistrationPolicy, RoleVocabulary
from .resolver import IdentityResolver, slugify_username

__all__ = [
    "CredentialVerifier",
    "IdentityResolver",
    "RegistrationPolicy",
    "RoleVocabulary",
    "slugify_username",
]
