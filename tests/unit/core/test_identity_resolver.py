"""Tests for OAuth2 and biometric identity resolution."""

from unittest.mock import Mock

import pytest
from sqlmodel import Session, func, select

from src.authgate.core.errors import (
    AlreadyLinked,
    LastAuthenticationMethod,
    LivenessCheckFailed,
    NoMatch,
    NotFound,
    ProviderAlreadyBound,
)
from src.authgate.core.models import BiometricSample, ExternalAssertion
from src.authgate.core.services import (
    BiometricEnrollmentService,
    IdentityResolver,
    RoleVocabulary,
)
from src.authgate.core.services.biometric import MatchCandidate
from src.authgate.core.services.identity import slugify_username
from src.authgate.entities.core.biometric_template import BiometricModality
from src.authgate.entities.core.identity import Identity, IdentityRepository, IdentityTable
from src.authgate.runtime.config.config_data import ConfigData


def _google(external_id: str = "42", email: str = "g@x.com", name: str | None = "Grace Hopper"):
    return ExternalAssertion(
        provider="google", external_id=external_id, email=email, display_name=name
    )


def _identity_count(session: Session) -> int:
    return session.exec(select(func.count()).select_from(IdentityTable)).one()


class TestResolve:
    """Find, then link by email, then create."""

    def test_unseen_principal_creates_one_identity(
        self, identity_resolver: IdentityResolver, session: Session
    ):
        identity = identity_resolver.resolve(_google())

        assert identity.provider == "google"
        assert identity.external_id == "42"
        assert identity.email == "g@x.com"
        assert identity.username == "grace_hopper"
        assert identity.password_hash is None
        assert identity.roles == frozenset({"USER"})
        assert _identity_count(session) == 1

    def test_resolving_again_is_idempotent(
        self, identity_resolver: IdentityResolver, session: Session
    ):
        first = identity_resolver.resolve(_google())
        second = identity_resolver.resolve(_google())

        assert first.id == second.id
        assert _identity_count(session) == 1

    def test_existing_email_is_linked(
        self, identity_resolver: IdentityResolver, alice: Identity, session: Session
    ):
        identity = identity_resolver.resolve(_google(email="alice@x.com"))

        assert identity.id == alice.id
        assert identity.provider == "google"
        assert identity.external_id == "42"
        assert identity.has_password
        assert _identity_count(session) == 1

    def test_email_match_with_other_provider_already_linked(
        self, identity_resolver: IdentityResolver, alice: Identity
    ):
        identity_resolver.link("alice", "github", "7")

        with pytest.raises(AlreadyLinked):
            identity_resolver.resolve(_google(email="alice@x.com"))

    def test_blank_display_name_gets_placeholder(self, identity_resolver: IdentityResolver):
        identity = identity_resolver.resolve(_google(name="  "))

        assert identity.username.startswith("user_")
        assert len(identity.username) == len("user_") + 12

    def test_taken_username_gets_suffix(
        self, identity_resolver: IdentityResolver, registration_policy
    ):
        registration_policy.register("grace_hopper", "gh@x.com", "pw")

        identity = identity_resolver.resolve(_google())

        assert identity.username.startswith("grace_hopper_")
        assert identity.username != "grace_hopper"

    def test_exhausted_suffixes_fall_back_to_placeholder(
        self, identity_resolver: IdentityResolver, monkeypatch
    ):
        monkeypatch.setattr(
            IdentityRepository, "exists_by_username", lambda self, username: not username.startswith("user_")
        )
        identity = identity_resolver.resolve(_google())
        assert identity.username.startswith("user_")


    def test_username_taken_between_check_and_insert(
        self,
        identity_resolver: IdentityResolver,
        registration_policy,
        session: Session,
        monkeypatch,
    ):
        """A name claimed by another principal after the check falls back to a placeholder."""
        registration_policy.register("grace_hopper", "gh@x.com", "pw")
        monkeypatch.setattr(IdentityRepository, "exists_by_username", lambda self, username: False)

        identity = identity_resolver.resolve(_google())

        assert identity.username.startswith("user_")
        assert identity.provider == "google"
        assert _identity_count(session) == 2


class TestLinkUnlink:
    """At most one provider per identity; unlink keeps identities usable."""

    def test_link_local_identity(self, identity_resolver: IdentityResolver, alice: Identity):
        linked = identity_resolver.link("alice", "github", "7")

        assert linked.id == alice.id
        assert linked.provider == "github"
        assert linked.external_id == "7"

    def test_link_twice_fails(self, identity_resolver: IdentityResolver, alice: Identity):
        identity_resolver.link("alice", "github", "7")

        with pytest.raises(AlreadyLinked):
            identity_resolver.link("alice", "google", "42")

    def test_unlink_then_relink(self, identity_resolver: IdentityResolver, alice: Identity):
        identity_resolver.link("alice", "github", "7")

        unlinked = identity_resolver.unlink("github", "7")
        assert unlinked.provider is None
        assert unlinked.external_id is None

        relinked = identity_resolver.link("alice", "google", "42")
        assert relinked.provider == "google"

    def test_link_unknown_username(self, identity_resolver: IdentityResolver):
        with pytest.raises(NotFound):
            identity_resolver.link("nobody", "github", "7")

    def test_link_account_owned_by_someone_else(
        self, identity_resolver: IdentityResolver, alice: Identity
    ):
        identity_resolver.resolve(_google())

        with pytest.raises(ProviderAlreadyBound):
            identity_resolver.link("alice", "google", "42")

    def test_unlink_unknown_binding(self, identity_resolver: IdentityResolver):
        with pytest.raises(NotFound):
            identity_resolver.unlink("github", "404")

    def test_unlink_restricted_to_named_identity(
        self, identity_resolver: IdentityResolver, alice: Identity, session: Session
    ):
        identity_resolver.link("alice", "github", "7")

        with pytest.raises(NotFound):
            identity_resolver.unlink("github", "7", username="mallory")

        assert IdentityRepository(session).get(alice.id).provider == "github"
        assert identity_resolver.unlink("github", "7", username="alice").provider is None

    def test_unlink_last_authentication_method_rejected(
        self, identity_resolver: IdentityResolver, session: Session
    ):
        created = identity_resolver.resolve(_google())

        with pytest.raises(LastAuthenticationMethod):
            identity_resolver.unlink("google", "42")

        still_bound = IdentityRepository(session).get(created.id)
        assert still_bound.provider == "google"

    def test_concurrent_link_loses_the_race(
        self, identity_resolver: IdentityResolver, alice: Identity, session: Session
    ):
        """The conditional update refuses a second binding even after a stale read."""
        repo = IdentityRepository(session)
        assert repo.bind_provider(alice.id, "github", "7") is True
        assert repo.bind_provider(alice.id, "google", "42") is False
        session.commit()

        assert repo.get(alice.id).provider == "github"


class TestBiometricResolution:
    """Liveness first, then a match at or above the threshold."""

    def test_enrolled_sample_resolves(
        self,
        identity_resolver: IdentityResolver,
        enrollment_service: BiometricEnrollmentService,
        alice: Identity,
        fingerprint_sample: BiometricSample,
    ):
        enrollment_service.register("alice", fingerprint_sample)

        identity = identity_resolver.resolve_by_biometric_match(fingerprint_sample)

        assert identity.id == alice.id

    def test_unknown_sample_no_match(
        self, identity_resolver: IdentityResolver, fingerprint_sample: BiometricSample
    ):
        with pytest.raises(NoMatch):
            identity_resolver.resolve_by_biometric_match(fingerprint_sample)

    def test_same_data_other_modality_no_match(
        self,
        identity_resolver: IdentityResolver,
        enrollment_service: BiometricEnrollmentService,
        alice: Identity,
        fingerprint_sample: BiometricSample,
    ):
        enrollment_service.register("alice", fingerprint_sample)
        as_face = fingerprint_sample.model_copy(update={"modality": BiometricModality.FACE})

        with pytest.raises(NoMatch):
            identity_resolver.resolve_by_biometric_match(as_face)

    def test_liveness_checked_before_matching(
        self,
        session: Session,
        vocabulary: RoleVocabulary,
        test_config: ConfigData,
        fingerprint_sample: BiometricSample,
    ):
        matcher = Mock()
        liveness = Mock()
        liveness.is_live.return_value = False
        resolver = IdentityResolver(
            session, vocabulary, test_config.oauth2, matcher, liveness, 0.9
        )

        with pytest.raises(LivenessCheckFailed):
            resolver.resolve_by_biometric_match(fingerprint_sample)

        matcher.best_match.assert_not_called()

    def test_low_liveness_score_rejected(
        self,
        identity_resolver: IdentityResolver,
        enrollment_service: BiometricEnrollmentService,
        alice: Identity,
        fingerprint_sample: BiometricSample,
    ):
        enrollment_service.register("alice", fingerprint_sample)
        replayed = fingerprint_sample.model_copy(update={"liveness_score": 0.2})

        with pytest.raises(LivenessCheckFailed):
            identity_resolver.resolve_by_biometric_match(replayed)

    @pytest.mark.parametrize("score,resolves", [(0.89, False), (0.9, True), (0.99, True)])
    def test_confidence_threshold(
        self,
        session: Session,
        vocabulary: RoleVocabulary,
        test_config: ConfigData,
        alice: Identity,
        fingerprint_sample: BiometricSample,
        score: float,
        resolves: bool,
    ):
        matcher = Mock()
        matcher.best_match.return_value = MatchCandidate(identity_id=alice.id, score=score)
        liveness = Mock()
        liveness.is_live.return_value = True
        resolver = IdentityResolver(
            session, vocabulary, test_config.oauth2, matcher, liveness, 0.9
        )

        if resolves:
            assert resolver.resolve_by_biometric_match(fingerprint_sample).id == alice.id
        else:
            with pytest.raises(NoMatch):
                resolver.resolve_by_biometric_match(fingerprint_sample)

    def test_candidate_for_missing_identity_no_match(
        self,
        session: Session,
        vocabulary: RoleVocabulary,
        test_config: ConfigData,
        fingerprint_sample: BiometricSample,
    ):
        matcher = Mock()
        matcher.best_match.return_value = MatchCandidate(identity_id="gone", score=1.0)
        liveness = Mock()
        liveness.is_live.return_value = True
        resolver = IdentityResolver(
            session, vocabulary, test_config.oauth2, matcher, liveness, 0.9
        )

        with pytest.raises(NoMatch):
            resolver.resolve_by_biometric_match(fingerprint_sample)


class TestSlugifyUsername:
    @pytest.mark.parametrize(
        "display_name,expected",
        [
            ("Ada Lovelace", "ada_lovelace"),
            ("octocat", "octocat"),
            ("  J. R. R. Tolkien ", "j._r._r._tolkien"),
            ("émile@zola!", "mile_zola"),
            ("", ""),
            (None, ""),
            ("!!!", ""),
        ],
    )
    def test_slugify(self, display_name, expected):
        assert slugify_username(display_name) == expected
