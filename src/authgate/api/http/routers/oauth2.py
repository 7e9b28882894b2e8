"""OAuth2 callback and account-linking endpoints.

The redirect to the identity provider is handled by the caller; these
endpoints receive the ID token the provider issued. Only claims of a
token verified against the provider's published keys are used.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from src.authgate.api.http.deps import get_orchestrator, get_verified_token
from src.authgate.api.http.responses import result_response
from src.authgate.core.models import LoginResponse, MessageResponse, VerifiedToken
from src.authgate.core.services import AuthenticationOrchestrator

router = APIRouter(prefix="/oauth2", tags=["oauth2"])


class IdTokenRequest(BaseModel):
    provider: str = Field(min_length=1, description="Configured provider name")
    id_token: str = Field(min_length=1, description="ID token issued by the provider")


@router.post("/callback", response_model=LoginResponse)
def callback(
    body: IdTokenRequest,
    orchestrator: AuthenticationOrchestrator = Depends(get_orchestrator),
):
    assertion = orchestrator.verify_id_token(body.provider, body.id_token)
    return result_response(orchestrator.login_oauth2(assertion))


@router.post("/link", response_model=MessageResponse)
def link_account(
    body: IdTokenRequest,
    verified: VerifiedToken = Depends(get_verified_token),
    orchestrator: AuthenticationOrchestrator = Depends(get_orchestrator),
):
    """Bind the provider account to the identity holding the bearer token."""
    assertion = orchestrator.verify_id_token(body.provider, body.id_token)
    return result_response(orchestrator.link_account(assertion, verified.subject))


@router.delete("/link", response_model=MessageResponse)
def unlink_account(
    body: IdTokenRequest,
    verified: VerifiedToken = Depends(get_verified_token),
    orchestrator: AuthenticationOrchestrator = Depends(get_orchestrator),
):
    assertion = orchestrator.verify_id_token(body.provider, body.id_token)
    return result_response(orchestrator.unlink_account(assertion, verified.subject))
