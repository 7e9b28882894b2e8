from .enrollment import BiometricEnrollmentService
from .oracles import (
    LivenessOracle,
    MatchCandidate,
    MatchOracle,
    TemplateHashMatcher,
    ThresholdLivenessOracle,
)

__all__ = [
    "BiometricEnrollmentService",
    "LivenessOracle",
    "MatchCandidate",
    "MatchOracle",
    "TemplateHashMatcher",
    "ThresholdLivenessOracle",
]
