"""Verified bearer token claims."""

from datetime import datetime

from pydantic import BaseModel, Field


class VerifiedToken(BaseModel):
    """Claims read out of a token after its signature has been checked."""

    subject: str = Field(description="Username the token was issued to")
    roles: frozenset[str] = Field(default_factory=frozenset)
    issued_at: datetime
    expires_at: datetime
    token_id: str = Field(description="Unique token identifier (jti)")
    issuer: str | None = None
