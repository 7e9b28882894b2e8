"""Composition of the login channels into one uniform result envelope."""

from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TypeVar

from loguru import logger
from sqlalchemy.exc import OperationalError
from sqlmodel import Session

from src.authgate.core.errors import AuthError, DirectoryUnavailable
from src.authgate.core.models import (
    ActionSuccess,
    AuthFailure,
    AuthSuccess,
    BiometricSample,
    ExternalAssertion,
    LoginResponse,
    VerifiedToken,
)
from src.authgate.core.models.results import ActionResult, LoginResult
from src.authgate.core.security import PasswordHasher, TemplateCipher
from src.authgate.core.services.biometric import (
    BiometricEnrollmentService,
    LivenessOracle,
    MatchOracle,
    TemplateHashMatcher,
    ThresholdLivenessOracle,
)
from src.authgate.core.services.identity.credentials import CredentialVerifier
from src.authgate.core.services.identity.registration import (
    RegistrationPolicy,
    RoleVocabulary,
)
from src.authgate.core.services.identity.resolver import IdentityResolver
from src.authgate.core.services.jwt import TokenCodec
from src.authgate.core.services.oauth2 import IdTokenVerifier, JwksCache, JwksService
from src.authgate.entities.core.biometric_template import BiometricModality
from src.authgate.entities.core.identity import Identity
from src.authgate.runtime.config.config_data import ConfigData

T = TypeVar("T")


@dataclass
class AuthComponents:
    """Long-lived, request-independent collaborators of the orchestrator."""

    config: ConfigData
    codec: TokenCodec
    hasher: PasswordHasher
    vocabulary: RoleVocabulary
    cipher: TemplateCipher
    match_oracle: MatchOracle
    liveness_oracle: LivenessOracle
    id_tokens: IdTokenVerifier

    @classmethod
    def from_config(cls, config: ConfigData) -> "AuthComponents":
        """Build every component from configuration.

        Raises:
            ConfigurationError: a signing or encryption key is missing or weak
        """
        return cls(
            config=config,
            codec=TokenCodec(config.jwt),
            hasher=PasswordHasher(rounds=config.password.bcrypt_rounds),
            vocabulary=RoleVocabulary(config.roles),
            cipher=TemplateCipher(config.biometric.template_key),
            match_oracle=TemplateHashMatcher(),
            liveness_oracle=ThresholdLivenessOracle(config.biometric.liveness_threshold),
            id_tokens=IdTokenVerifier(
                config.oauth2, JwksService(JwksCache(ttl=config.oauth2.jwks_cache_ttl))
            ),
        )


@contextmanager
def _directory_guard() -> Iterator[None]:
    try:
        yield
    except OperationalError as exc:
        logger.error("Identity directory unavailable: {}", exc.orig)
        raise DirectoryUnavailable("Identity directory unavailable") from exc


class AuthenticationOrchestrator:
    """Entry point for every authentication operation of one request.

    Domain failures come back as ``AuthFailure`` values; directory outages
    are raised as ``DirectoryUnavailable``.
    """

    def __init__(self, db_session: Session, components: AuthComponents):
        config = components.config
        self._codec = components.codec
        self._id_tokens = components.id_tokens
        self.credentials = CredentialVerifier(db_session, components.hasher)
        self.registration = RegistrationPolicy(
            db_session, components.hasher, components.vocabulary
        )
        self.resolver = IdentityResolver(
            db_session,
            components.vocabulary,
            config.oauth2,
            components.match_oracle,
            components.liveness_oracle,
            config.biometric.confidence_threshold,
        )
        self.biometrics = BiometricEnrollmentService(
            db_session, components.cipher, config.biometric
        )

    # ------------------------------------------------------------ login flows

    def login_local(self, username: str, password: str) -> LoginResult:
        return self._login(lambda: self.credentials.verify(username, password))

    def login_oauth2(self, assertion: ExternalAssertion) -> LoginResult:
        return self._login(lambda: self.resolver.resolve(assertion))

    def login_biometric(self, sample: BiometricSample) -> LoginResult:
        return self._login(lambda: self.resolver.resolve_by_biometric_match(sample))

    # ------------------------------------------------------------- management

    def register(
        self,
        username: str,
        email: str,
        password: str,
        roles: Iterable[str] | None = None,
    ) -> ActionResult:
        return self._action(
            lambda: self.registration.register(username, email, password, roles),
            "User registered successfully",
        )

    def link_account(self, assertion: ExternalAssertion, local_username: str) -> ActionResult:
        return self._action(
            lambda: self.resolver.link(
                local_username, assertion.provider, assertion.external_id
            ),
            f"Account linked to {assertion.provider}",
        )

    def unlink_account(
        self, assertion: ExternalAssertion, local_username: str | None = None
    ) -> ActionResult:
        return self._action(
            lambda: self.resolver.unlink(
                assertion.provider, assertion.external_id, local_username
            ),
            f"Account unlinked from {assertion.provider}",
        )

    def register_biometric(self, username: str, sample: BiometricSample) -> ActionResult:
        return self._action(
            lambda: self.biometrics.register(username, sample),
            f"{sample.modality.value.capitalize()} template registered",
        )

    def remove_biometric(self, username: str, modality: BiometricModality) -> ActionResult:
        return self._action(
            lambda: self.biometrics.remove(username, modality),
            f"{modality.value.capitalize()} template removed",
        )

    def biometric_stats(self) -> dict[str, int]:
        with _directory_guard():
            return self.biometrics.stats()

    def verify_id_token(self, provider: str, id_token: str) -> ExternalAssertion:
        """Verify a provider ID token; raises ``InvalidAssertion`` when it is not valid."""
        return self._id_tokens.verify(provider, id_token)

    # ----------------------------------------------------------------- tokens

    def verify_token(self, token: str) -> VerifiedToken:
        """Verify a bearer token; raises ``TokenError`` when it is not valid."""
        return self._codec.verify(token)

    def logout(self, token: str) -> ActionResult:
        def revoke() -> None:
            self._codec.revoke(self._codec.verify(token))

        return self._action(revoke, "Logged out")

    # ---------------------------------------------------------------- helpers

    def _login(self, authenticate: Callable[[], Identity]) -> LoginResult:
        try:
            with _directory_guard():
                identity = authenticate()
        except AuthError as exc:
            return AuthFailure.from_error(exc)

        token = self._codec.issue(identity.username, identity.roles)
        return AuthSuccess(response=LoginResponse.for_identity(token, identity))

    def _action(self, operation: Callable[[], T], message: str) -> ActionResult:
        try:
            with _directory_guard():
                operation()
        except AuthError as exc:
            return AuthFailure.from_error(exc)
        return ActionSuccess.with_message(message)
