"""Biometric enrollment and authentication endpoints."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from src.authgate.api.http.deps import (
    get_orchestrator,
    get_verified_token,
    require_role,
)
from src.authgate.api.http.responses import result_response
from src.authgate.core.models import (
    BiometricSample,
    LoginResponse,
    MessageResponse,
    VerifiedToken,
)
from src.authgate.core.services import AuthenticationOrchestrator
from src.authgate.entities.core.biometric_template import BiometricModality

router = APIRouter(prefix="/biometric", tags=["biometric"])


class BiometricRequest(BaseModel):
    modality: BiometricModality
    data: str = Field(description="Encoded sample as delivered by the capture device")
    liveness_score: float = Field(default=0.0, ge=0.0, le=1.0)

    def to_sample(self) -> BiometricSample:
        return BiometricSample(
            modality=self.modality, data=self.data, liveness_score=self.liveness_score
        )


@router.post("/register", response_model=MessageResponse, status_code=201)
def register_biometric(
    body: BiometricRequest,
    verified: VerifiedToken = Depends(get_verified_token),
    orchestrator: AuthenticationOrchestrator = Depends(get_orchestrator),
):
    return result_response(
        orchestrator.register_biometric(verified.subject, body.to_sample())
    )


@router.post("/authenticate", response_model=LoginResponse)
def authenticate_biometric(
    body: BiometricRequest,
    orchestrator: AuthenticationOrchestrator = Depends(get_orchestrator),
):
    return result_response(orchestrator.login_biometric(body.to_sample()))


@router.delete("/{modality}", response_model=MessageResponse)
def remove_biometric(
    modality: BiometricModality,
    verified: VerifiedToken = Depends(get_verified_token),
    orchestrator: AuthenticationOrchestrator = Depends(get_orchestrator),
):
    return result_response(orchestrator.remove_biometric(verified.subject, modality))


@router.get("/stats")
def biometric_stats(
    _admin: VerifiedToken = Depends(require_role("ADMIN")),
    orchestrator: AuthenticationOrchestrator = Depends(get_orchestrator),
) -> dict[str, int]:
    return orchestrator.biometric_stats()
