"""Maps external assertions onto local identities."""

import re
import secrets

from loguru import logger
from sqlmodel import Session

from src.authgate.core.errors import (
    AlreadyLinked,
    EmailTaken,
    LastAuthenticationMethod,
    LivenessCheckFailed,
    NoMatch,
    NotFound,
    ProviderAlreadyBound,
    UsernameTaken,
)
from src.authgate.core.models.assertion import BiometricSample, ExternalAssertion
from src.authgate.core.services.biometric.oracles import LivenessOracle, MatchOracle
from src.authgate.core.services.identity.registration import RoleVocabulary
from src.authgate.entities.core.biometric_template import BiometricTemplateRepository
from src.authgate.entities.core.identity import Identity, IdentityRepository
from src.authgate.entities.core.role import RoleRepository
from src.authgate.runtime.config.config_data import OAuth2Config

_USERNAME_INVALID_CHARS = re.compile(r"[^a-z0-9._-]+")


def slugify_username(display_name: str | None) -> str:
    """``"Ada Lovelace"`` -> ``"ada_lovelace"``; blank input gives ``""``."""
    if not display_name:
        return ""
    return _USERNAME_INVALID_CHARS.sub("_", display_name.strip().lower()).strip("_.-")


class IdentityResolver:
    """Find-or-link-or-create resolution for OAuth2 and biometric assertions.

    Link and unlink are single conditional updates in the directory, so two
    concurrent requests can never both see an identity as unlinked.
    """

    def __init__(
        self,
        db_session: Session,
        vocabulary: RoleVocabulary,
        oauth2_config: OAuth2Config,
        match_oracle: MatchOracle,
        liveness_oracle: LivenessOracle,
        confidence_threshold: float,
    ):
        self._db_session = db_session
        self._identity_repo = IdentityRepository(db_session)
        self._role_repo = RoleRepository(db_session)
        self._template_repo = BiometricTemplateRepository(db_session)
        self._vocabulary = vocabulary
        self._oauth2_config = oauth2_config
        self._match_oracle = match_oracle
        self._liveness_oracle = liveness_oracle
        self._confidence_threshold = confidence_threshold

    # ------------------------------------------------------------------ OAuth2

    def resolve(self, assertion: ExternalAssertion) -> Identity:
        """Return the identity for ``assertion``, linking or creating as needed.

        1. exact (provider, external id) match, returned unchanged
        2. email match, bound to this provider
        3. a new provider-only identity with the default role
        """
        identity = self._identity_repo.get_by_provider(
            assertion.provider, assertion.external_id
        )
        if identity is not None:
            logger.info("Resolved {} principal to {}", assertion.provider, identity.username)
            return identity

        identity = self._identity_repo.get_by_email(assertion.email)
        if identity is not None:
            return self._bind(identity, assertion.provider, assertion.external_id)

        return self._create_from(assertion)

    def link(self, username: str, provider: str, external_id: str) -> Identity:
        """Bind an external account to an existing local identity.

        Raises:
            NotFound: no identity with ``username``
            AlreadyLinked: the identity already has a provider binding
            ProviderAlreadyBound: the external account belongs to another identity
        """
        identity = self._identity_repo.get_by_username(username)
        if identity is None:
            raise NotFound(f"Identity {username} not found")
        if identity.is_linked:
            raise AlreadyLinked(details={"username": username, "provider": identity.provider})

        owner = self._identity_repo.get_by_provider(provider, external_id)
        if owner is not None and owner.id != identity.id:
            raise ProviderAlreadyBound(details={"provider": provider, "external_id": external_id})

        return self._bind(identity, provider, external_id)

    def unlink(
        self, provider: str, external_id: str, username: str | None = None
    ) -> Identity:
        """Clear the provider binding of the identity holding it.

        An identity without a password keeps its binding: removing it would
        leave no way to authenticate. With ``username`` only that identity's
        binding may be cleared.

        Raises:
            NotFound: no identity (or not ``username``) is bound to the external account
            LastAuthenticationMethod: the identity has no password
        """
        identity = self._identity_repo.get_by_provider(provider, external_id)
        if identity is None or (username is not None and identity.username != username):
            raise NotFound(f"No identity linked to {provider} account {external_id}")
        if not identity.has_password:
            raise LastAuthenticationMethod(details={"username": identity.username})

        try:
            cleared = self._identity_repo.unbind_provider(
                provider, external_id, require_password=True
            )
            if not cleared:
                # Lost a race with another unlink
                raise NotFound(f"No identity linked to {provider} account {external_id}")
            self._db_session.commit()
        except Exception:
            self._db_session.rollback()
            raise

        logger.info("Unlinked {} from {}", provider, identity.username)
        return self._identity_repo.get(identity.id)  # type: ignore[return-value]

    # --------------------------------------------------------------- Biometric

    def resolve_by_biometric_match(self, sample: BiometricSample) -> Identity:
        """Return the identity whose enrolled template matches ``sample``.

        Liveness is checked first; a failed liveness check never reaches
        the matcher.

        Raises:
            LivenessCheckFailed: the liveness oracle rejected the sample
            NoMatch: no candidate at or above the confidence threshold
        """
        if not self._liveness_oracle.is_live(sample):
            logger.warning("Biometric {} sample failed liveness", sample.modality.value)
            raise LivenessCheckFailed()

        candidate = self._match_oracle.best_match(sample, self._template_repo)
        if candidate is None or candidate.score < self._confidence_threshold:
            logger.warning("Biometric {} sample matched no identity", sample.modality.value)
            raise NoMatch()

        identity = self._identity_repo.get(candidate.identity_id)
        if identity is None:
            raise NoMatch()

        logger.info(
            "Biometric {} match for {} (score {:.2f})",
            sample.modality.value,
            identity.username,
            candidate.score,
        )
        return identity

    # ----------------------------------------------------------------- helpers

    def _bind(self, identity: Identity, provider: str, external_id: str) -> Identity:
        if identity.is_linked:
            if identity.provider == provider and identity.external_id == external_id:
                return identity
            raise AlreadyLinked(details={"username": identity.username, "provider": identity.provider})

        try:
            bound = self._identity_repo.bind_provider(identity.id, provider, external_id)
            if not bound:
                current = self._identity_repo.get(identity.id)
                if (
                    current is not None
                    and current.provider == provider
                    and current.external_id == external_id
                ):
                    return current
                raise AlreadyLinked(details={"username": identity.username})
            self._db_session.commit()
        except Exception:
            self._db_session.rollback()
            raise

        logger.info("Linked {} account to {}", provider, identity.username)
        return self._identity_repo.get(identity.id)  # type: ignore[return-value]

    def _create_from(
        self, assertion: ExternalAssertion, username: str | None = None
    ) -> Identity:
        identity = Identity(
            username=username or self._derive_username(assertion.display_name),
            email=assertion.email,
            provider=assertion.provider,
            external_id=assertion.external_id,
        )
        try:
            roles = self._role_repo.require({self._vocabulary.default_role})
            created = self._identity_repo.create(identity, roles)
            self._db_session.commit()
        except (UsernameTaken, EmailTaken, ProviderAlreadyBound) as exc:
            # A concurrent resolve of the same principal won the insert
            existing = self._identity_repo.get_by_provider(
                assertion.provider, assertion.external_id
            )
            if existing is not None:
                return existing
            if isinstance(exc, UsernameTaken) and username is None:
                # Another principal took the derived name after it was checked
                logger.info("Derived username {} was taken; using a placeholder", identity.username)
                return self._create_from(assertion, self._placeholder_username())
            raise
        except Exception:
            self._db_session.rollback()
            raise

        logger.info("Created identity {} from {} principal", created.username, assertion.provider)
        return created

    def _derive_username(self, display_name: str | None) -> str:
        base = slugify_username(display_name)
        if not base:
            return self._placeholder_username()
        if not self._identity_repo.exists_by_username(base):
            return base

        for _ in range(self._oauth2_config.username_attempts):
            candidate = f"{base}_{secrets.token_hex(2)}"
            if not self._identity_repo.exists_by_username(candidate):
                return candidate
        return self._placeholder_username()

    def _placeholder_username(self) -> str:
        return f"{self._oauth2_config.placeholder_prefix}{secrets.token_hex(6)}"
