"""Matching and liveness oracles for the biometric channel.

The resolver only relies on the two protocols below. The default
implementations are deterministic: the matcher recognises a sample only
when it is byte-identical to an enrolled one, and the liveness oracle
trusts the capture device's own liveness score.
"""

from typing import NamedTuple, Protocol

from src.authgate.core.models.assertion import BiometricSample
from src.authgate.core.security import content_hash
from src.authgate.entities.core.biometric_template import BiometricTemplateRepository


class MatchCandidate(NamedTuple):
    identity_id: str
    score: float


class MatchOracle(Protocol):
    def best_match(
        self, sample: BiometricSample, templates: BiometricTemplateRepository
    ) -> MatchCandidate | None:
        """Return the best enrolled candidate for ``sample``, if any."""
        ...


class LivenessOracle(Protocol):
    def is_live(self, sample: BiometricSample) -> bool:
        """Return True when ``sample`` was captured from a present subject."""
        ...


def template_hash(sample: BiometricSample) -> str:
    return content_hash(sample.modality.value, sample.data)


class TemplateHashMatcher:
    """Exact-match oracle keyed by the template content hash."""

    def best_match(
        self, sample: BiometricSample, templates: BiometricTemplateRepository
    ) -> MatchCandidate | None:
        template = templates.get_by_hash(template_hash(sample))
        if template is None or template.modality != sample.modality:
            return None
        return MatchCandidate(identity_id=template.identity_id, score=1.0)


class ThresholdLivenessOracle:
    def __init__(self, threshold: float):
        self.threshold = threshold

    def is_live(self, sample: BiometricSample) -> bool:
        return sample.liveness_score >= self.threshold
