"""Verification of OpenID Connect ID tokens."""

import time
from collections.abc import Callable

from authlib.jose import JoseError, JsonWebKey, JsonWebToken
from loguru import logger

from src.authgate.core.errors import InvalidAssertion
from src.authgate.core.models.assertion import ExternalAssertion
from src.authgate.core.services.oauth2.jwks import JwksService
from src.authgate.runtime.config.config_data import OAuth2Config


class IdTokenVerifier:
    """Turns a provider-signed ID token into an ``ExternalAssertion``.

    Only claims of a token whose signature, issuer, audience and lifetime
    all check out reach the identity resolver.
    """

    def __init__(
        self,
        config: OAuth2Config,
        jwks_service: JwksService,
        clock: Callable[[], float] = time.time,
    ):
        self._config = config
        self._jwks_service = jwks_service
        self._clock = clock

    def verify(self, provider: str, id_token: str) -> ExternalAssertion:
        """Verify ``id_token`` as issued by ``provider``.

        Raises:
            InvalidAssertion: unknown provider, or a token that fails verification
            IdentityProviderUnavailable: the provider's keys could not be fetched
        """
        name = provider.strip().lower()
        provider_cfg = self._config.providers.get(name)
        if provider_cfg is None or not provider_cfg.client_id:
            raise InvalidAssertion(
                f"Provider {provider} is not configured", details={"provider": provider}
            )

        jwks = self._jwks_service.fetch_jwks(provider_cfg)
        claims_options = {
            "iss": {"essential": True, "values": [provider_cfg.issuer]},
            "aud": {"essential": True, "values": [provider_cfg.client_id]},
            "exp": {"essential": True},
            "sub": {"essential": True},
        }
        try:
            claims = JsonWebToken(provider_cfg.algorithms).decode(
                id_token,
                JsonWebKey.import_key_set(jwks),
                claims_options=claims_options,
            )
            claims.validate(now=int(self._clock()), leeway=self._config.clock_skew)
        except (JoseError, ValueError) as exc:
            logger.warning("Rejected {} ID token: {}", name, exc)
            raise InvalidAssertion(
                "ID token rejected", details={"provider": name}
            ) from exc

        # An unverified address must never link onto an existing identity
        if claims.get("email_verified") is False:
            raise InvalidAssertion(
                "Email address is not verified by the provider", details={"provider": name}
            )

        return ExternalAssertion.from_principal(dict(claims), provider=name)
