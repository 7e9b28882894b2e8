"""Tests for local registration and the role vocabulary."""

import pytest
from sqlmodel import Session, func, select

from src.authgate.core.errors import (
    ConfigurationError,
    EmailTaken,
    UnknownRole,
    UsernameTaken,
)
from src.authgate.core.services import RegistrationPolicy, RoleVocabulary
from src.authgate.entities.core.identity import IdentityRepository, IdentityTable
from src.authgate.entities.core.identity.table import IdentityRoleLink
from src.authgate.entities.core.role import RoleRepository
from src.authgate.runtime.config.config_data import RolesConfig


class TestRoleVocabulary:
    """Requested role names resolve against a closed vocabulary."""

    @pytest.fixture
    def roles(self) -> RoleVocabulary:
        return RoleVocabulary(RolesConfig())

    @pytest.mark.parametrize("requested", [None, [], ["", "  "]])
    def test_empty_request_gives_default_role(self, roles: RoleVocabulary, requested):
        assert roles.resolve(requested) == {"USER"}

    @pytest.mark.parametrize(
        "name,expected",
        [("admin", "ADMIN"), (" User ", "USER"), ("ROLE_ADMIN", "ADMIN"), ("role_user", "USER")],
    )
    def test_names_are_normalised(self, roles: RoleVocabulary, name, expected):
        assert roles.resolve([name]) == {expected}

    def test_unknown_name_rejects_whole_request(self, roles: RoleVocabulary):
        with pytest.raises(UnknownRole) as excinfo:
            roles.resolve(["ADMIN", "superuser", "mod"])

        assert excinfo.value.details == {"roles": ["superuser", "mod"]}

    def test_custom_vocabulary(self):
        roles = RoleVocabulary(RolesConfig(vocabulary=["reader", "editor"], default_role="reader"))

        assert roles.names == frozenset({"READER", "EDITOR"})
        assert roles.resolve(None) == {"READER"}
        with pytest.raises(UnknownRole):
            roles.resolve(["ADMIN"])


class TestRegistrationPolicy:
    """Uniqueness, hashing and atomic role assignment."""

    def test_register_assigns_default_role(self, registration_policy: RegistrationPolicy):
        identity = registration_policy.register("alice", "alice@x.com", "pw")

        assert identity.username == "alice"
        assert identity.email == "alice@x.com"
        assert identity.roles == frozenset({"USER"})
        assert identity.provider is None

    def test_password_is_stored_hashed(self, registration_policy: RegistrationPolicy, hasher):
        identity = registration_policy.register("alice", "alice@x.com", "pw")

        assert identity.password_hash != "pw"
        assert hasher.verify("pw", identity.password_hash)

    def test_register_with_requested_roles(self, registration_policy: RegistrationPolicy):
        identity = registration_policy.register(
            "root", "root@x.com", "pw", ["role_admin", "user"]
        )
        assert identity.roles == frozenset({"ADMIN", "USER"})

    def test_duplicate_username_then_email(self, registration_policy: RegistrationPolicy):
        registration_policy.register("alice", "alice@x.com", "pw")

        with pytest.raises(UsernameTaken):
            registration_policy.register("alice", "other@x.com", "pw2")
        with pytest.raises(EmailTaken):
            registration_policy.register("bob", "alice@x.com", "pw3")

    def test_username_checked_before_email(self, registration_policy: RegistrationPolicy):
        registration_policy.register("alice", "alice@x.com", "pw")

        with pytest.raises(UsernameTaken):
            registration_policy.register("alice", "alice@x.com", "pw")

    def test_unknown_role_persists_nothing(
        self, registration_policy: RegistrationPolicy, session: Session
    ):
        with pytest.raises(UnknownRole):
            registration_policy.register("carol", "carol@x.com", "pw", ["USER", "GOD"])

        assert IdentityRepository(session).get_by_username("carol") is None
        assert session.exec(select(func.count()).select_from(IdentityRoleLink)).one() == 0

    def test_concurrent_duplicate_username_rejected_by_constraint(
        self, registration_policy: RegistrationPolicy, session: Session, monkeypatch
    ):
        """Two requests that both passed the existence check: only one row survives."""
        registration_policy.register("alice", "alice@x.com", "pw")

        # Simulate the second request having checked before the first committed
        monkeypatch.setattr(
            IdentityRepository, "exists_by_username", lambda self, username: False
        )
        monkeypatch.setattr(IdentityRepository, "exists_by_email", lambda self, email: False)

        with pytest.raises(UsernameTaken):
            registration_policy.register("alice", "racer@x.com", "pw")

        rows = session.exec(select(IdentityTable).where(IdentityTable.username == "alice")).all()
        assert len(rows) == 1
        assert rows[0].email == "alice@x.com"
        assert session.exec(select(func.count()).select_from(IdentityRoleLink)).one() == 1

    def test_concurrent_duplicate_email_rejected_by_constraint(
        self, registration_policy: RegistrationPolicy, session: Session, monkeypatch
    ):
        registration_policy.register("alice", "alice@x.com", "pw")
        monkeypatch.setattr(IdentityRepository, "exists_by_email", lambda self, email: False)

        with pytest.raises(EmailTaken):
            registration_policy.register("bob", "alice@x.com", "pw")

        assert IdentityRepository(session).get_by_username("bob") is None

    def test_registration_usable_after_conflict(self, registration_policy: RegistrationPolicy):
        """A rolled-back conflict leaves the session usable."""
        registration_policy.register("alice", "alice@x.com", "pw")
        with pytest.raises(UsernameTaken):
            registration_policy.register("alice", "x@x.com", "pw")

        bob = registration_policy.register("bob", "bob@x.com", "pw")
        assert bob.roles == frozenset({"USER"})

    def test_registration_never_creates_roles(
        self, session: Session, hasher, test_config
    ):
        """Roles come from seeding only; an unseeded directory is a configuration fault."""
        policy = RegistrationPolicy(session, hasher, RoleVocabulary(test_config.roles))

        with pytest.raises(ConfigurationError, match="Roles not seeded: USER"):
            policy.register("alice", "alice@x.com", "pw")

        assert RoleRepository(session).list_all() == []
        assert IdentityRepository(session).get_by_username("alice") is None
