"""Local account endpoints: registration, password login, token introspection."""

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from src.authgate.api.http.deps import (
    get_bearer_token,
    get_orchestrator,
    get_verified_token,
)
from src.authgate.api.http.responses import result_response
from src.authgate.core.models import LoginResponse, MessageResponse, VerifiedToken
from src.authgate.core.services import AuthenticationOrchestrator

router = APIRouter(prefix="/auth", tags=["auth"])


class RegisterRequest(BaseModel):
    username: str = Field(min_length=3, max_length=50)
    email: str = Field(min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=6, max_length=128)
    roles: list[str] | None = None


class LoginRequest(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class MeResponse(BaseModel):
    """Identity summary carried by the presented token."""

    username: str
    roles: list[str]
    issued_at: datetime
    expires_at: datetime


@router.post("/register", response_model=MessageResponse, status_code=201)
def register(
    body: RegisterRequest,
    orchestrator: AuthenticationOrchestrator = Depends(get_orchestrator),
):
    result = orchestrator.register(body.username, body.email, body.password, body.roles)
    return result_response(result)


@router.post("/login", response_model=LoginResponse)
def login(
    body: LoginRequest,
    orchestrator: AuthenticationOrchestrator = Depends(get_orchestrator),
):
    return result_response(orchestrator.login_local(body.username, body.password))


@router.get("/me", response_model=MeResponse)
def me(verified: VerifiedToken = Depends(get_verified_token)) -> MeResponse:
    return MeResponse(
        username=verified.subject,
        roles=sorted(verified.roles),
        issued_at=verified.issued_at,
        expires_at=verified.expires_at,
    )


@router.post("/logout", response_model=MessageResponse)
def logout(
    token: str = Depends(get_bearer_token),
    orchestrator: AuthenticationOrchestrator = Depends(get_orchestrator),
):
    return result_response(orchestrator.logout(token))
