"""Role repository."""

from collections.abc import Iterable

from sqlmodel import Session, col, select

from src.authgate.core.errors import ConfigurationError
from src.authgate.entities.core.role.entity import Role
from src.authgate.entities.core.role.table import RoleTable


class RoleRepository:
    """Data-access layer for the role reference table."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_by_name(self, name: str) -> Role | None:
        row = self._session.exec(select(RoleTable).where(RoleTable.name == name)).first()
        if row is None:
            return None
        return Role.model_validate(row, from_attributes=True)

    def get_by_names(self, names: Iterable[str]) -> list[Role]:
        wanted = set(names)
        if not wanted:
            return []
        rows = self._session.exec(
            select(RoleTable).where(col(RoleTable.name).in_(wanted))
        ).all()
        return [Role.model_validate(row, from_attributes=True) for row in rows]

    def require(self, names: Iterable[str]) -> list[Role]:
        """Return the named roles, all of which must already be seeded.

        Raises:
            ConfigurationError: a vocabulary role has no row in the directory
        """
        wanted = set(names)
        roles = self.get_by_names(wanted)
        missing = wanted - {role.name for role in roles}
        if missing:
            raise ConfigurationError(f"Roles not seeded: {', '.join(sorted(missing))}")
        return roles

    def list_all(self) -> list[Role]:
        rows = self._session.exec(select(RoleTable).order_by(RoleTable.name)).all()
        return [Role.model_validate(row, from_attributes=True) for row in rows]

    def ensure(self, names: Iterable[str]) -> list[Role]:
        """Insert any missing role names. Caller commits."""
        existing = {role.name for role in self.get_by_names(names)}
        for name in sorted(set(names) - existing):
            self._session.add(RoleTable(name=name))
        self._session.flush()
        return self.get_by_names(names)
