import base64
import json
import time
from typing import Any

from authlib.jose import JsonWebKey, JsonWebToken

B64URL_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"


class FakeClock:
    """Manually advanced replacement for ``time.time``."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def tamper_segment(token: str, segment: int, index: int) -> str:
    """Replace one base64url character of ``segment`` (0 header, 1 payload, 2 signature)."""
    parts = token.split(".")
    chars = list(parts[segment])
    original = chars[index]
    chars[index] = next(c for c in B64URL_ALPHABET if c != original)
    parts[segment] = "".join(chars)
    return ".".join(parts)


def b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def unsigned_token(header: dict, payload: dict, signature: str = "") -> str:
    """Assemble a compact token by hand, for tokens a codec would never issue."""
    return ".".join(
        [
            b64url(json.dumps(header).encode("utf-8")),
            b64url(json.dumps(payload).encode("utf-8")),
            signature,
        ]
    )


def biometric_data(seed: str, length: int = 128) -> str:
    """Deterministic sample payload of ``length`` characters."""
    return (seed * (length // len(seed) + 1))[:length]


TEST_ISSUER = "https://accounts.example.test"
TEST_JWKS_URI = "https://accounts.example.test/certs"
TEST_CLIENT_ID = "authgate-test"


class IdTokenIssuer:
    """Stand-in identity provider signing RS256 ID tokens with its own key."""

    def __init__(self, kid: str = "test-key", issuer: str = TEST_ISSUER):
        self.kid = kid
        self.issuer = issuer
        self.key = JsonWebKey.generate_key("RSA", 2048, is_private=True)

    def jwks(self) -> dict[str, Any]:
        public = self.key.as_dict(is_private=False)
        public["kid"] = self.kid
        return {"keys": [public]}

    def issue(self, header: dict[str, Any] | None = None, **claims: Any) -> str:
        now = int(time.time())
        payload = {
            "iss": self.issuer,
            "aud": TEST_CLIENT_ID,
            "sub": "108",
            "email": "grace@x.com",
            "email_verified": True,
            "name": "Grace Hopper",
            "iat": now,
            "exp": now + 600,
        }
        payload.update(claims)
        # None removes a default claim
        payload = {name: value for name, value in payload.items() if value is not None}
        protected = header or {"alg": "RS256", "kid": self.kid}
        token = JsonWebToken(["RS256"]).encode(protected, payload, self.key)
        return token.decode("ascii")
