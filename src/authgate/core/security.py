"""Security primitives: random tokens, password hashing, template sealing."""

import base64
import hashlib
import secrets

import bcrypt
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from src.authgate.core.errors import ConfigurationError

# bcrypt only looks at the first 72 bytes of its input
BCRYPT_MAX_PASSWORD_BYTES = 72


def generate_secure_token(length: int = 32) -> str:
    """Generate a cryptographically secure random token.

    Args:
        length: Number of random bytes to generate (default 32)

    Returns:
        URL-safe base64 encoded token
    """
    return (
        base64.urlsafe_b64encode(secrets.token_bytes(length))
        .decode("utf-8")
        .rstrip("=")
    )


def content_hash(*parts: str) -> str:
    """SHA-256 hex digest over the given parts, joined unambiguously."""
    digest = hashlib.sha256()
    for part in parts:
        encoded = part.encode("utf-8")
        digest.update(len(encoded).to_bytes(4, "big"))
        digest.update(encoded)
    return digest.hexdigest()


class PasswordHasher:
    """Salted, adaptive password hashing backed by bcrypt.

    ``verify`` always runs one bcrypt comparison, also when no stored hash
    exists, so an unknown account costs the same as a wrong password.
    """

    def __init__(self, rounds: int = 12):
        self.rounds = rounds
        self._dummy_hash = self.hash(generate_secure_token(16))

    def hash(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(self._encode(password), salt).decode("utf-8")

    def verify(self, password: str, password_hash: str | None) -> bool:
        """Check a plaintext password against a stored hash in constant time.

        Args:
            password: Plaintext password supplied by the caller
            password_hash: Stored bcrypt hash, or None for accounts without one

        Returns:
            True only when a hash exists and matches
        """
        candidate = password_hash or self._dummy_hash
        try:
            matches = bcrypt.checkpw(self._encode(password), candidate.encode("utf-8"))
        except ValueError:
            # Stored value is not a bcrypt hash
            return False
        return matches and password_hash is not None

    @staticmethod
    def _encode(password: str) -> bytes:
        return password.encode("utf-8")[:BCRYPT_MAX_PASSWORD_BYTES]


class TemplateCipher:
    """Fernet encryption for enrolled biometric templates.

    The Fernet key is derived from the configured secret with PBKDF2 so the
    secret can be any sufficiently long string.
    """

    _SALT = b"authgate.biometric.template"

    def __init__(self, secret: str | None):
        if not secret:
            raise ConfigurationError("biometric.template_key is not configured")
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=self._SALT,
            iterations=100_000,
        )
        key = base64.urlsafe_b64encode(kdf.derive(secret.encode("utf-8")))
        self._fernet = Fernet(key)

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")

    def decrypt(self, token: str) -> str:
        try:
            return self._fernet.decrypt(token.encode("ascii")).decode("utf-8")
        except InvalidToken as exc:
            raise ValueError("Template could not be decrypted with the current key") from exc
