"""Biometric template domain entity."""

from enum import StrEnum

from pydantic import Field

from src.authgate.entities.core._base import Entity


class BiometricModality(StrEnum):
    FINGERPRINT = "fingerprint"
    FACE = "face"
    VOICE = "voice"
    IRIS = "iris"


class BiometricTemplate(Entity):
    """Encrypted enrollment data for one identity and modality.

    The core never inspects ``encrypted_template``; ``content_hash`` is the
    lookup key used by the matching oracle.
    """

    identity_id: str = Field(description="Identity this template was enrolled for")
    modality: BiometricModality = Field(description="Capture modality")
    content_hash: str = Field(description="SHA-256 hex digest used as lookup key")
    encrypted_template: str = Field(description="Fernet token of the enrolled sample")
