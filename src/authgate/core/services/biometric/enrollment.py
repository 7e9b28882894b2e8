"""Biometric template enrollment for existing identities."""

from loguru import logger
from sqlmodel import Session

from src.authgate.core.errors import InvalidBiometricSample, NotFound
from src.authgate.core.models.assertion import BiometricSample
from src.authgate.core.security import TemplateCipher
from src.authgate.core.services.biometric.oracles import template_hash
from src.authgate.entities.core.biometric_template import (
    BiometricModality,
    BiometricTemplate,
    BiometricTemplateRepository,
)
from src.authgate.entities.core.identity import IdentityRepository
from src.authgate.runtime.config.config_data import BiometricConfig


class BiometricEnrollmentService:
    """Stores, replaces and removes encrypted templates per identity and modality."""

    def __init__(
        self,
        db_session: Session,
        cipher: TemplateCipher,
        config: BiometricConfig,
    ):
        self._db_session = db_session
        self._identity_repo = IdentityRepository(db_session)
        self._template_repo = BiometricTemplateRepository(db_session)
        self._cipher = cipher
        self._config = config

    def register(self, username: str, sample: BiometricSample) -> BiometricTemplate:
        """Enroll ``sample`` for ``username``, replacing any earlier template.

        Raises:
            NotFound: the identity does not exist
            InvalidBiometricSample: the sample fails the quality check or is
                already enrolled for another identity
        """
        identity = self._identity_repo.get_by_username(username)
        if identity is None:
            raise NotFound(f"Identity {username} not found")

        self._check_quality(sample)
        digest = template_hash(sample)

        existing = self._template_repo.get_by_hash(digest)
        if existing is not None and existing.identity_id != identity.id:
            raise InvalidBiometricSample("Sample is already enrolled")

        template = BiometricTemplate(
            identity_id=identity.id,
            modality=sample.modality,
            content_hash=digest,
            encrypted_template=self._cipher.encrypt(sample.data),
        )
        try:
            stored = self._template_repo.upsert(template)
            self._db_session.commit()
        except Exception:
            self._db_session.rollback()
            raise

        logger.info("Enrolled {} template for {}", sample.modality.value, username)
        return stored

    def remove(self, username: str, modality: BiometricModality) -> None:
        identity = self._identity_repo.get_by_username(username)
        if identity is None:
            raise NotFound(f"Identity {username} not found")

        try:
            removed = self._template_repo.delete_for_identity(identity.id, modality)
            if not removed:
                raise NotFound(f"No {modality.value} template enrolled for {username}")
            self._db_session.commit()
        except Exception:
            self._db_session.rollback()
            raise

        logger.info("Removed {} template for {}", modality.value, username)

    def stats(self) -> dict[str, int]:
        return self._template_repo.count_by_modality()

    def _check_quality(self, sample: BiometricSample) -> None:
        data = sample.data.strip()
        if not data:
            raise InvalidBiometricSample("Sample is empty")
        if len(data) < self._config.min_sample_length:
            raise InvalidBiometricSample(
                f"Sample shorter than {self._config.min_sample_length} characters",
                details={"length": len(data)},
            )
