"""Signing key sets of OpenID Connect providers."""

from typing import Any

import httpx
from cachetools import TTLCache
from loguru import logger

from src.authgate.core.errors import IdentityProviderUnavailable
from src.authgate.runtime.config.config_data import OIDCProviderConfig


class JwksCache:
    """In-memory key sets keyed by JWKS URI."""

    def __init__(self, ttl: int = 3600, maxsize: int = 16) -> None:
        self._cache: TTLCache[str, dict[str, Any]] = TTLCache(maxsize=maxsize, ttl=ttl)

    def get_jwks(self, jwks_uri: str) -> dict[str, Any]:
        return self._cache.get(jwks_uri, {})

    def set_jwks(self, jwks_uri: str, jwks: dict[str, Any]) -> None:
        self._cache[jwks_uri] = jwks

    def clear_jwks_cache(self) -> None:
        self._cache.clear()


class JwksService:
    def __init__(
        self, cache: JwksCache, transport: httpx.BaseTransport | None = None
    ) -> None:
        self._cache = cache
        self._transport = transport

    def fetch_jwks(self, provider: OIDCProviderConfig) -> dict[str, Any]:
        """Return the provider's key set, fetching it when not cached.

        Raises:
            IdentityProviderUnavailable: the key set could not be retrieved
        """
        jwks = self._cache.get_jwks(provider.jwks_uri)
        if jwks:
            return jwks

        try:
            with httpx.Client(timeout=5, transport=self._transport) as client:
                resp = client.get(provider.jwks_uri)
                resp.raise_for_status()
                jwks = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Failed to fetch JWKS from {}: {}", provider.jwks_uri, exc)
            raise IdentityProviderUnavailable(
                f"Signing keys of {provider.issuer} are unavailable"
            ) from exc

        if not isinstance(jwks, dict) or not jwks.get("keys"):
            raise IdentityProviderUnavailable(f"{provider.jwks_uri} returned no keys")

        self._cache.set_jwks(provider.jwks_uri, jwks)
        return jwks
