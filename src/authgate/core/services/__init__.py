"""Core services exports."""

# Orchestration
from .auth_orchestrator import AuthComponents, AuthenticationOrchestrator

# Biometric Services
from .biometric import (
    BiometricEnrollmentService,
    TemplateHashMatcher,
    ThresholdLivenessOracle,
)

# Database Service
from .database.db_session import DbSessionService

# Identity Services
from .identity import (
    CredentialVerifier,
    IdentityResolver,
    RegistrationPolicy,
    RoleVocabulary,
)

# Token Services
from .jwt import RevocationList, TokenCodec

# OAuth2 Services
from .oauth2 import IdTokenVerifier, JwksCache, JwksService

__all__ = [
    # Orchestration
    "AuthComponents",
    "AuthenticationOrchestrator",
    # Biometric Services
    "BiometricEnrollmentService",
    "TemplateHashMatcher",
    "ThresholdLivenessOracle",
    # Database Service
    "DbSessionService",
    # Identity Services
    "CredentialVerifier",
    "IdentityResolver",
    "RegistrationPolicy",
    "RoleVocabulary",
    # Token Services
    "RevocationList",
    "TokenCodec",
    # OAuth2 Services
    "IdTokenVerifier",
    "JwksCache",
    "JwksService",
]
