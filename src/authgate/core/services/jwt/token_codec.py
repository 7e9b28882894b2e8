"""Bearer token issuance and verification.

Tokens are compact JWS structures signed with HMAC-SHA-512. The payload is
only parsed after the signature has been checked against the configured
key, so no claim of an unverified token ever influences a decision.
"""

import json
import time
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import Any

from authlib.common.encoding import urlsafe_b64decode, urlsafe_b64encode
from authlib.common.security import generate_token
from authlib.jose import JsonWebSignature
from authlib.jose.errors import (
    BadSignatureError,
    DecodeError,
    JoseError,
    MissingAlgorithmError,
    UnsupportedAlgorithmError,
)
from loguru import logger

from src.authgate.core.errors import ConfigurationError, TokenError, TokenErrorKind
from src.authgate.core.models.token import VerifiedToken
from src.authgate.core.services.jwt.revocation import RevocationList
from src.authgate.runtime.config.config_data import MIN_HS512_SECRET_BYTES, JWTConfig

_REQUIRED_CLAIMS = ("sub", "iat", "exp", "jti")


def _is_canonical(segment: str) -> bool:
    if not segment.isascii():
        return False
    encoded = segment.encode("ascii")
    return urlsafe_b64encode(urlsafe_b64decode(encoded)) == encoded


class TokenCodec:
    """Issues and verifies signed bearer tokens.

    The codec is configured once, through its constructor, and holds no
    other mutable state than the optional revocation list. Only the key
    material is algorithm specific; swapping to an asymmetric scheme would
    change ``_signing_key`` and ``_verification_key`` but not the contract
    of ``issue`` and ``verify``.
    """

    def __init__(
        self,
        config: JWTConfig,
        *,
        revocations: RevocationList | None = None,
        clock: Callable[[], float] = time.time,
    ):
        secret = config.secret_bytes
        if secret is None:
            raise ConfigurationError("jwt.signing_secret is not configured")
        if len(secret) < MIN_HS512_SECRET_BYTES:
            raise ConfigurationError(
                f"jwt.signing_secret must be at least {MIN_HS512_SECRET_BYTES} bytes "
                f"for {config.algorithm}, got {len(secret)}"
            )

        self._config = config
        self._signing_key = secret
        self._verification_key = secret
        self._clock = clock
        self._jws = JsonWebSignature(algorithms=[config.algorithm])
        self.revocations = revocations or RevocationList(
            maxsize=config.revocation_cache_size, clock=clock
        )

    @property
    def lifetime_seconds(self) -> int:
        return self._config.lifetime_seconds

    def issue(self, subject: str, roles: Iterable[str]) -> str:
        """Mint a token for ``subject`` carrying ``roles``.

        Args:
            subject: Username the token is bound to
            roles: Role names to embed as the ``roles`` claim

        Returns:
            Compact serialized token
        """
        now = int(self._clock())
        payload: dict[str, Any] = {
            "sub": subject,
            "roles": sorted(set(roles)),
            "iat": now,
            "exp": now + self._config.lifetime_seconds,
            "jti": generate_token(16),
        }
        if self._config.issuer:
            payload["iss"] = self._config.issuer

        header = {"alg": self._config.algorithm, "typ": "JWT"}
        body = json.dumps(payload, separators=(",", ":")).encode("utf-8")
        token = self._jws.serialize_compact(header, body, self._signing_key)
        return token.decode("ascii") if isinstance(token, bytes) else token

    def verify(self, token: str) -> VerifiedToken:
        """Check a token and return its claims.

        Raises:
            TokenError: MALFORMED, UNSUPPORTED_ALGORITHM, BAD_SIGNATURE,
                EXPIRED or REVOKED, checked in that order
        """
        if not token or token.count(".") != 2:
            raise TokenError(TokenErrorKind.MALFORMED)

        try:
            signed = self._jws.deserialize_compact(token, self._verification_key)
        except (UnsupportedAlgorithmError, MissingAlgorithmError) as exc:
            raise TokenError(TokenErrorKind.UNSUPPORTED_ALGORITHM) from exc
        except BadSignatureError as exc:
            raise TokenError(TokenErrorKind.BAD_SIGNATURE) from exc
        except (DecodeError, ValueError) as exc:
            raise TokenError(TokenErrorKind.MALFORMED) from exc
        except JoseError as exc:
            logger.debug("Token rejected by JWS layer: {}", exc.error)
            raise TokenError(TokenErrorKind.MALFORMED) from exc

        # Padding bits are ignored by base64 decoding; only the canonical
        # encoding of the signed bytes is accepted
        if not all(_is_canonical(segment) for segment in token.split(".")):
            raise TokenError(TokenErrorKind.BAD_SIGNATURE)

        # Signature verified; the payload may be trusted from here on
        claims = self._parse_claims(signed["payload"])

        now = self._clock()
        if now >= claims["exp"] + self._config.clock_skew:
            raise TokenError(TokenErrorKind.EXPIRED)

        if self.revocations.is_revoked(claims["jti"]):
            raise TokenError(TokenErrorKind.REVOKED)

        return VerifiedToken(
            subject=claims["sub"],
            roles=frozenset(claims.get("roles") or ()),
            issued_at=datetime.fromtimestamp(claims["iat"], UTC),
            expires_at=datetime.fromtimestamp(claims["exp"], UTC),
            token_id=claims["jti"],
            issuer=claims.get("iss"),
        )

    def revoke(self, verified: VerifiedToken) -> None:
        """Reject ``verified`` from now until its natural expiry."""
        self.revocations.revoke(verified.token_id, verified.expires_at.timestamp())
        logger.info("Revoked token {} for {}", verified.token_id, verified.subject)

    @staticmethod
    def _parse_claims(payload: bytes) -> dict[str, Any]:
        try:
            claims = json.loads(payload)
        except (UnicodeDecodeError, ValueError) as exc:
            raise TokenError(TokenErrorKind.MALFORMED) from exc

        if not isinstance(claims, dict) or any(name not in claims for name in _REQUIRED_CLAIMS):
            raise TokenError(TokenErrorKind.MALFORMED)
        if not isinstance(claims["sub"], str) or not claims["sub"]:
            raise TokenError(TokenErrorKind.MALFORMED)
        for name in ("iat", "exp"):
            value = claims[name]
            if isinstance(value, bool) or not isinstance(value, int | float):
                raise TokenError(TokenErrorKind.MALFORMED)
        roles = claims.get("roles", [])
        if not isinstance(roles, list) or not all(isinstance(r, str) for r in roles):
            raise TokenError(TokenErrorKind.MALFORMED)
        return claims
