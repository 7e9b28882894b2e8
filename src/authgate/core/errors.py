"""Typed failures raised by the authentication core.

Every domain failure derives from AuthError and carries a stable ``code``
and the HTTP status the API layer maps it to. Internal failures
(DirectoryUnavailable) and startup failures (ConfigurationError) are kept
outside the domain taxonomy.
"""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error body returned to API callers."""

    code: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class ConfigurationError(Exception):
    """Raised at startup when required configuration is absent or unusable."""


class AuthError(Exception):
    """Base class for all domain authentication failures."""

    code: str = "AUTH_ERROR"
    status_code: int = 400
    default_message: str = "Authentication error"

    def __init__(self, message: str | None = None, details: dict[str, Any] | None = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(code=self.code, message=self.message, details=self.details)


# --- Registration ---


class UsernameTaken(AuthError):
    code = "USERNAME_TAKEN"
    status_code = 409
    default_message = "Username is already taken"


class EmailTaken(AuthError):
    code = "EMAIL_TAKEN"
    status_code = 409
    default_message = "Email is already in use"


class UnknownRole(AuthError):
    code = "UNKNOWN_ROLE"
    status_code = 400
    default_message = "Unknown role"

    def __init__(self, role_names: list[str]):
        super().__init__(
            f"Unknown role(s): {', '.join(role_names)}",
            details={"roles": role_names},
        )


# --- Local login ---


class InvalidCredentials(AuthError):
    """Single failure for unknown usernames and wrong passwords alike."""

    code = "INVALID_CREDENTIALS"
    status_code = 401
    default_message = "Invalid username or password"

    def __init__(self):
        super().__init__()


# --- Tokens ---


class TokenErrorKind(StrEnum):
    EXPIRED = "EXPIRED"
    MALFORMED = "MALFORMED"
    BAD_SIGNATURE = "BAD_SIGNATURE"
    UNSUPPORTED_ALGORITHM = "UNSUPPORTED_ALGORITHM"
    REVOKED = "REVOKED"


class TokenError(AuthError):
    code = "TOKEN_ERROR"
    status_code = 401
    default_message = "Invalid token"

    def __init__(self, kind: TokenErrorKind, message: str | None = None):
        self.kind = kind
        super().__init__(
            message or f"Token rejected: {kind.value.lower().replace('_', ' ')}",
            details={"kind": kind.value},
        )


# --- Account linking ---


class AlreadyLinked(AuthError):
    code = "ALREADY_LINKED"
    status_code = 409
    default_message = "Identity is already linked to an external provider"


class ProviderAlreadyBound(AuthError):
    code = "PROVIDER_ALREADY_BOUND"
    status_code = 409
    default_message = "External account is already bound to another identity"


class NotFound(AuthError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Not found"


class LastAuthenticationMethod(AuthError):
    code = "LAST_AUTHENTICATION_METHOD"
    status_code = 409
    default_message = (
        "Cannot unlink: the identity has no password and would become unusable"
    )


class InvalidAssertion(AuthError):
    code = "INVALID_ASSERTION"
    status_code = 400
    default_message = "External assertion is missing required attributes"


# --- Biometric ---


class NoMatch(AuthError):
    code = "NO_MATCH"
    status_code = 401
    default_message = "No biometric match found"


class LivenessCheckFailed(AuthError):
    code = "LIVENESS_CHECK_FAILED"
    status_code = 401
    default_message = "Biometric sample failed the liveness check"


class InvalidBiometricSample(AuthError):
    code = "INVALID_BIOMETRIC_SAMPLE"
    status_code = 400
    default_message = "Biometric sample rejected"


# --- Internal ---


class DirectoryUnavailable(Exception):
    """The identity directory could not be reached; not a domain failure."""


class IdentityProviderUnavailable(Exception):
    """An identity provider's signing keys could not be fetched."""
