"""Local identity registration."""

from collections.abc import Iterable

from loguru import logger
from sqlmodel import Session

from src.authgate.core.errors import EmailTaken, UnknownRole, UsernameTaken
from src.authgate.core.security import PasswordHasher
from src.authgate.entities.core.identity import Identity, IdentityRepository
from src.authgate.entities.core.role import RoleRepository
from src.authgate.runtime.config.config_data import RolesConfig

_ROLE_PREFIX = "ROLE_"


class RoleVocabulary:
    """The closed set of role names identities may carry."""

    def __init__(self, config: RolesConfig):
        self._names = frozenset(config.vocabulary)
        self.default_role = config.default_role

    @property
    def names(self) -> frozenset[str]:
        return self._names

    @staticmethod
    def normalise(name: str) -> str:
        """``" role_admin "`` -> ``"ADMIN"``."""
        canonical = name.strip().upper()
        if canonical.startswith(_ROLE_PREFIX):
            canonical = canonical[len(_ROLE_PREFIX) :]
        return canonical

    def resolve(self, requested: Iterable[str] | None) -> set[str]:
        """Map requested names onto the vocabulary.

        An empty or absent request yields the default role only. Any name
        outside the vocabulary rejects the whole request.

        Raises:
            UnknownRole: listing every unknown name as given
        """
        requested = [name for name in (requested or ()) if name and name.strip()]
        if not requested:
            return {self.default_role}

        unknown = [name for name in requested if self.normalise(name) not in self._names]
        if unknown:
            raise UnknownRole(unknown)
        return {self.normalise(name) for name in requested}


class RegistrationPolicy:
    """Creates local identities with unique username/email and valid roles."""

    def __init__(
        self,
        db_session: Session,
        hasher: PasswordHasher,
        vocabulary: RoleVocabulary,
    ):
        self._db_session = db_session
        self._identity_repo = IdentityRepository(db_session)
        self._role_repo = RoleRepository(db_session)
        self._hasher = hasher
        self._vocabulary = vocabulary

    def register(
        self,
        username: str,
        email: str,
        password: str,
        requested_roles: Iterable[str] | None = None,
    ) -> Identity:
        """Create a local identity.

        Roles are validated before the directory is touched. The identity
        row and its role links are committed together or not at all; the
        unique constraints settle races the existence checks cannot see.

        Raises:
            UsernameTaken, EmailTaken, UnknownRole
        """
        role_names = self._vocabulary.resolve(requested_roles)

        if self._identity_repo.exists_by_username(username):
            raise UsernameTaken(details={"username": username})
        if self._identity_repo.exists_by_email(email):
            raise EmailTaken(details={"email": email})

        identity = Identity(
            username=username,
            email=email,
            password_hash=self._hasher.hash(password),
        )
        try:
            roles = self._role_repo.require(role_names)
            created = self._identity_repo.create(identity, roles)
            self._db_session.commit()
        except Exception:
            self._db_session.rollback()
            raise

        logger.info("Registered identity {} with roles {}", username, sorted(role_names))
        return created
