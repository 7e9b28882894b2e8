"""Database initialization: tables, role vocabulary and seed identities."""

from loguru import logger

from src.authgate.core.errors import AuthError
from src.authgate.core.security import PasswordHasher
from src.authgate.core.services.database.db_session import DbSessionService
from src.authgate.core.services.identity.registration import (
    RegistrationPolicy,
    RoleVocabulary,
)
from src.authgate.entities.core.identity import IdentityRepository
from src.authgate.entities.core.role import RoleRepository
from src.authgate.runtime.config.config_data import ConfigData
from src.authgate.runtime.context import get_config


def seed_data(
    db_service: DbSessionService,
    config: ConfigData,
    hasher: PasswordHasher | None = None,
) -> int:
    """Insert the role vocabulary and any missing seed users.

    Safe to run on every start; existing rows are left alone.

    Returns:
        Number of seed users created
    """
    vocabulary = RoleVocabulary(config.roles)

    if config.seed.roles:
        with db_service.session_scope() as session:
            RoleRepository(session).ensure(vocabulary.names)
        logger.info("Role vocabulary ensured: {}", sorted(vocabulary.names))

    if not config.seed.users:
        return 0

    hasher = hasher or PasswordHasher(rounds=config.password.bcrypt_rounds)
    created = 0
    for seed_user in config.seed.users:
        with db_service.session_scope() as session:
            if IdentityRepository(session).exists_by_username(seed_user.username):
                continue
            try:
                RegistrationPolicy(session, hasher, vocabulary).register(
                    seed_user.username,
                    seed_user.email,
                    seed_user.password,
                    seed_user.roles,
                )
            except AuthError as exc:
                logger.warning("Skipped seed user {}: {}", seed_user.username, exc.message)
                continue
            created += 1
            logger.info("Seeded user {}", seed_user.username)
    return created


def init_db(config: ConfigData | None = None) -> None:
    """Create all database tables and seed reference data."""
    config = config or get_config()
    db_service = DbSessionService(config)
    try:
        db_service.create_all()
        seed_data(db_service, config)
    finally:
        db_service.dispose()


if __name__ == "__main__":
    init_db()
