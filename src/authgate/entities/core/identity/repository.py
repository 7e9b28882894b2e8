"""Identity repository: the directory capability used by the core services."""

from collections.abc import Iterable

from loguru import logger
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from src.authgate.core.errors import EmailTaken, ProviderAlreadyBound, UsernameTaken
from src.authgate.entities.core._base import utc_now
from src.authgate.entities.core.identity.entity import Identity
from src.authgate.entities.core.identity.table import IdentityRoleLink, IdentityTable
from src.authgate.entities.core.role.entity import Role
from src.authgate.entities.core.role.table import RoleTable


class IdentityRepository:
    """Data-access layer for identities and their role associations.

    Write methods flush but never commit; the calling service owns the
    transaction. Unique-constraint violations are rolled back and reported
    as the matching domain error.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    # ---------------------------- reads ----------------------------------

    def get(self, identity_id: str) -> Identity | None:
        return self._to_entity(self._session.get(IdentityTable, identity_id))

    def get_by_username(self, username: str) -> Identity | None:
        statement = select(IdentityTable).where(IdentityTable.username == username)
        return self._to_entity(self._session.exec(statement).first())

    def get_by_email(self, email: str) -> Identity | None:
        statement = select(IdentityTable).where(IdentityTable.email == email)
        return self._to_entity(self._session.exec(statement).first())

    def get_by_provider(self, provider: str, external_id: str) -> Identity | None:
        statement = select(IdentityTable).where(
            (IdentityTable.provider == provider)
            & (IdentityTable.external_id == external_id)
        )
        return self._to_entity(self._session.exec(statement).first())

    def exists_by_username(self, username: str) -> bool:
        statement = select(IdentityTable.id).where(IdentityTable.username == username)
        return self._session.exec(statement).first() is not None

    def exists_by_email(self, email: str) -> bool:
        statement = select(IdentityTable.id).where(IdentityTable.email == email)
        return self._session.exec(statement).first() is not None

    def count(self) -> int:
        return self._session.exec(select(func.count()).select_from(IdentityTable)).one()

    def roles_for(self, identity_id: str) -> frozenset[str]:
        statement = (
            select(RoleTable.name)
            .join(IdentityRoleLink, col(IdentityRoleLink.role_id) == col(RoleTable.id))
            .where(IdentityRoleLink.identity_id == identity_id)
        )
        return frozenset(self._session.exec(statement).all())

    # ---------------------------- writes ---------------------------------

    def create(self, identity: Identity, roles: Iterable[Role]) -> Identity:
        """Insert the identity row and its role links as one unit."""
        row = IdentityTable(
            id=identity.id,
            username=identity.username,
            email=identity.email,
            password_hash=identity.password_hash,
            provider=identity.provider,
            external_id=identity.external_id,
        )
        try:
            self._session.add(row)
            self._session.flush()
            for role in roles:
                self._session.add(IdentityRoleLink(identity_id=row.id, role_id=role.id))
            self._session.flush()
        except IntegrityError as exc:
            self._session.rollback()
            conflict = self._conflict_for(identity)
            if conflict is None:
                raise
            raise conflict from exc

        return self._to_entity(row)  # type: ignore[return-value]

    def bind_provider(self, identity_id: str, provider: str, external_id: str) -> bool:
        """Bind a provider to an identity that has none.

        A single conditional UPDATE, so of two concurrent binds at most one
        sees an unlinked row. Returns False when the identity is already
        linked or does not exist.
        """
        statement = (
            update(IdentityTable)
            .where(col(IdentityTable.id) == identity_id)
            .where(col(IdentityTable.provider).is_(None))
            .values(provider=provider, external_id=external_id, updated_at=utc_now())
        )
        try:
            result = self._session.execute(statement)
            self._session.flush()
        except IntegrityError as exc:
            self._session.rollback()
            raise ProviderAlreadyBound(
                details={"provider": provider, "external_id": external_id}
            ) from exc
        self._session.expire_all()
        return result.rowcount == 1

    def unbind_provider(
        self, provider: str, external_id: str, *, require_password: bool = True
    ) -> bool:
        """Clear a provider binding in one conditional UPDATE.

        With ``require_password`` the row is only touched when it keeps a
        password hash. Returns False when no row was updated.
        """
        statement = (
            update(IdentityTable)
            .where(col(IdentityTable.provider) == provider)
            .where(col(IdentityTable.external_id) == external_id)
        )
        if require_password:
            statement = statement.where(col(IdentityTable.password_hash).is_not(None))
        statement = statement.values(provider=None, external_id=None, updated_at=utc_now())

        result = self._session.execute(statement)
        self._session.flush()
        self._session.expire_all()
        return result.rowcount == 1

    # ---------------------------- helpers --------------------------------

    def _to_entity(self, row: IdentityTable | None) -> Identity | None:
        if row is None:
            return None
        identity = Identity.model_validate(row, from_attributes=True)
        return identity.model_copy(update={"roles": self.roles_for(row.id)})

    def _conflict_for(self, identity: Identity) -> Exception | None:
        """Work out which unique constraint a failed insert tripped."""
        if self.get_by_username(identity.username) is not None:
            logger.info("Rejected duplicate username {}", identity.username)
            return UsernameTaken(details={"username": identity.username})
        if self.get_by_email(identity.email) is not None:
            logger.info("Rejected duplicate email for {}", identity.username)
            return EmailTaken(details={"email": identity.email})
        if identity.provider and identity.external_id:
            return ProviderAlreadyBound(
                details={"provider": identity.provider, "external_id": identity.external_id}
            )
        return None
