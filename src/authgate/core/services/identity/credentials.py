"""Local username/password verification."""

from loguru import logger
from sqlmodel import Session

from src.authgate.core.errors import InvalidCredentials
from src.authgate.core.security import PasswordHasher
from src.authgate.entities.core.identity import Identity, IdentityRepository


class CredentialVerifier:
    """Checks a username/password pair against the stored bcrypt hash.

    Unknown usernames, identities without a password and wrong passwords all
    fail with the same ``InvalidCredentials`` after the same amount of work.
    """

    def __init__(self, db_session: Session, hasher: PasswordHasher):
        self._identity_repo = IdentityRepository(db_session)
        self._hasher = hasher

    def verify(self, username: str, password: str) -> Identity:
        identity = self._identity_repo.get_by_username(username)
        stored_hash = identity.password_hash if identity else None

        if not self._hasher.verify(password, stored_hash) or identity is None:
            logger.warning("Local login rejected for {}", username)
            raise InvalidCredentials()

        logger.info("Local login verified for {}", username)
        return identity
