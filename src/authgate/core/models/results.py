"""Uniform result envelopes returned by the authentication orchestrator."""

from typing import Annotated, Literal

from pydantic import BaseModel, Field

from src.authgate.core.errors import AuthError, ErrorResponse
from src.authgate.entities.core.identity import Identity


class LoginResponse(BaseModel):
    token: str
    type: Literal["Bearer"] = "Bearer"
    username: str
    email: str
    roles: list[str]

    @classmethod
    def for_identity(cls, token: str, identity: Identity) -> "LoginResponse":
        return cls(
            token=token,
            username=identity.username,
            email=identity.email,
            roles=sorted(identity.roles),
        )


class MessageResponse(BaseModel):
    message: str


class AuthSuccess(BaseModel):
    """A login flow that produced a token."""

    status: Literal["ok"] = "ok"
    response: LoginResponse


class ActionSuccess(BaseModel):
    """A non-login operation that completed."""

    status: Literal["ok"] = "ok"
    response: MessageResponse

    @classmethod
    def with_message(cls, message: str) -> "ActionSuccess":
        return cls(response=MessageResponse(message=message))


class AuthFailure(BaseModel):
    """A domain failure reported by one of the core components."""

    status: Literal["error"] = "error"
    error: ErrorResponse
    status_code: int

    @classmethod
    def from_error(cls, exc: AuthError) -> "AuthFailure":
        return cls(error=exc.to_response(), status_code=exc.status_code)


LoginResult = Annotated[AuthSuccess | AuthFailure, Field(discriminator="status")]
ActionResult = Annotated[ActionSuccess | AuthFailure, Field(discriminator="status")]
