"""Biometric template repository."""

from sqlalchemy import delete, func
from sqlmodel import Session, col, select

from src.authgate.entities.core._base import utc_now
from src.authgate.entities.core.biometric_template.entity import (
    BiometricModality,
    BiometricTemplate,
)
from src.authgate.entities.core.biometric_template.table import BiometricTemplateTable


class BiometricTemplateRepository:
    """Data-access layer for enrolled biometric templates."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_by_hash(self, content_hash: str) -> BiometricTemplate | None:
        statement = select(BiometricTemplateTable).where(
            BiometricTemplateTable.content_hash == content_hash
        )
        row = self._session.exec(statement).first()
        if row is None:
            return None
        return BiometricTemplate.model_validate(row, from_attributes=True)

    def get_for_identity(
        self, identity_id: str, modality: BiometricModality
    ) -> BiometricTemplate | None:
        row = self._row_for(identity_id, modality)
        if row is None:
            return None
        return BiometricTemplate.model_validate(row, from_attributes=True)

    def upsert(self, template: BiometricTemplate) -> BiometricTemplate:
        """Store the template, replacing any earlier one of the same modality."""
        row = self._row_for(template.identity_id, template.modality)
        if row is None:
            row = BiometricTemplateTable(
                id=template.id,
                identity_id=template.identity_id,
                modality=template.modality.value,
                content_hash=template.content_hash,
                encrypted_template=template.encrypted_template,
            )
        else:
            row.content_hash = template.content_hash
            row.encrypted_template = template.encrypted_template
            row.updated_at = utc_now()
        self._session.add(row)
        self._session.flush()
        self._session.refresh(row)
        return BiometricTemplate.model_validate(row, from_attributes=True)

    def delete_for_identity(self, identity_id: str, modality: BiometricModality) -> int:
        statement = (
            delete(BiometricTemplateTable)
            .where(col(BiometricTemplateTable.identity_id) == identity_id)
            .where(col(BiometricTemplateTable.modality) == modality.value)
        )
        result = self._session.execute(statement)
        self._session.flush()
        return result.rowcount

    def count_by_modality(self) -> dict[str, int]:
        statement = select(
            BiometricTemplateTable.modality, func.count()
        ).group_by(BiometricTemplateTable.modality)
        counts = {modality.value: 0 for modality in BiometricModality}
        for modality, total in self._session.exec(statement).all():
            counts[modality] = total
        return counts

    def _row_for(
        self, identity_id: str, modality: BiometricModality
    ) -> BiometricTemplateTable | None:
        statement = select(BiometricTemplateTable).where(
            (BiometricTemplateTable.identity_id == identity_id)
            & (BiometricTemplateTable.modality == modality.value)
        )
        return self._session.exec(statement).first()
