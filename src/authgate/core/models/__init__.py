"""Value objects exchanged between the core services and their callers."""

from .assertion import BiometricSample, ExternalAssertion
from .results import (
    ActionResult,
    ActionSuccess,
    AuthFailure,
    AuthSuccess,
    LoginResponse,
    LoginResult,
    MessageResponse,
)
from .token import VerifiedToken

__all__ = [
    "ActionResult",
    "ActionSuccess",
    "AuthFailure",
    "AuthSuccess",
    "BiometricSample",
    "ExternalAssertion",
    "LoginResponse",
    "LoginResult",
    "MessageResponse",
    "VerifiedToken",
]
