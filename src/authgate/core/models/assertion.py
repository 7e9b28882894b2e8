"""Inputs presented to the identity resolver by external channels."""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.authgate.core.errors import InvalidAssertion
from src.authgate.entities.core.biometric_template import BiometricModality

UNKNOWN_PROVIDER = "unknown"


class ExternalAssertion(BaseModel):
    """A successful sign-in reported by an OAuth2 identity provider."""

    model_config = ConfigDict(frozen=True)

    provider: str = Field(min_length=1)
    external_id: str = Field(min_length=1)
    email: str = Field(min_length=1)
    display_name: str | None = None

    @classmethod
    def from_principal(
        cls, attributes: Mapping[str, Any], provider: str | None = None
    ) -> "ExternalAssertion":
        """Build an assertion from the provider's user-info attributes.

        GitHub reports ``id`` and ``login``; Google reports ``sub``. When the
        caller does not name the provider it is inferred from those keys.

        Raises:
            InvalidAssertion: when the external id or email is missing
        """
        external_id = attributes.get("id")
        if external_id is None or external_id == "":
            external_id = attributes.get("sub")
        email = attributes.get("email")
        if external_id is None or external_id == "" or not email:
            raise InvalidAssertion(
                details={
                    "missing": [
                        name
                        for name, value in (("external_id", external_id), ("email", email))
                        if value is None or value == ""
                    ]
                }
            )

        display_name = attributes.get("name") or attributes.get("login")

        if not provider:
            if "login" in attributes:
                provider = "github"
            elif "sub" in attributes:
                provider = "google"
            else:
                provider = UNKNOWN_PROVIDER

        return cls(
            provider=provider.lower(),
            external_id=str(external_id),
            email=str(email),
            display_name=str(display_name) if display_name else None,
        )


class BiometricSample(BaseModel):
    """A captured biometric sample as reported by the capture device.

    ``data`` is opaque to the core; ``liveness_score`` is the device's own
    presentation-attack signal in the range 0..1.
    """

    model_config = ConfigDict(frozen=True)

    modality: BiometricModality
    data: str
    liveness_score: float = Field(default=0.0, ge=0.0, le=1.0)
