"""
Quality Scorer.

WHAT THIS DOES:
Converts a four-dimension QualityAnalysis into a single 0-100 score that
the submission flow and the reputation rules act on.

FORMULA:
score = relevance/5 × 40      (0-40, relevance is 1-5)
      + 25 if evidence present
      + 20 if specificity concrete
      + 15 if no fallacy

The weights sum to 100, so valid input is already in range. The result is
still clamped because relevance comes from a model and may fall outside 1-5;
relevance itself is bounded to 0-5 and a non-finite value counts as 0.

EXAMPLE:
    relevance 3, evidence present, vague, no fallacy
    → 24 + 25 + 0 + 15 = 64  (ACCEPTABLE: submittable with a warning)

USAGE:
    score = calculate_quality_score(analysis)
    tier = classify_quality(score)
"""

import math
from enum import Enum

from agora.services.quality.analysis import (
    EvidenceStatus,
    QualityAnalysis,
    SpecificityStatus,
)

RELEVANCE_WEIGHT = 40
EVIDENCE_WEIGHT = 25
SPECIFICITY_WEIGHT = 20
NO_FALLACY_WEIGHT = 15

MAX_RELEVANCE = 5

HIGH_QUALITY_THRESHOLD = 70
MINIMUM_QUALITY_THRESHOLD = 30


class QualityTier(str, Enum):
    HIGH = "high"
    ACCEPTABLE = "acceptable"
    BLOCKED = "blocked"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _bounded_relevance(relevance: float) -> float:
    # NaN and infinities carry no usable rating
    if not math.isfinite(relevance):
        return 0.0
    return max(0.0, min(float(MAX_RELEVANCE), relevance))


def calculate_quality_score(analysis: QualityAnalysis) -> int:
    """
    Deterministic weighted score for an analysis, clamped to [0, 100].

    Pure function: no I/O, same input always gives the same output.
    """
    score = (_bounded_relevance(analysis.relevance.score) / MAX_RELEVANCE) * RELEVANCE_WEIGHT

    if analysis.evidence.status == EvidenceStatus.PRESENT:
        score += EVIDENCE_WEIGHT
    if analysis.specificity.status == SpecificityStatus.CONCRETE:
        score += SPECIFICITY_WEIGHT
    if not analysis.fallacy.has_fallacy:
        score += NO_FALLACY_WEIGHT

    return max(0, min(100, _round_half_up(score)))


def classify_quality(
    score: int,
    high_threshold: int = HIGH_QUALITY_THRESHOLD,
    minimum_threshold: int = MINIMUM_QUALITY_THRESHOLD,
) -> QualityTier:
    """
    Map a score onto the submission policy.

    HIGH (>= 70): eligible for the high_quality_argument award
    ACCEPTABLE (30-69): submittable, caller shows a warning
    BLOCKED (< 30): the submission flow refuses it
    """
    if score >= high_threshold:
        return QualityTier.HIGH
    if score >= minimum_threshold:
        return QualityTier.ACCEPTABLE
    return QualityTier.BLOCKED


def quality_message(score: int) -> str:
    """Human-readable quality band shown next to the score."""
    if score >= 80:
        return "Ausgezeichnete Argumentqualität"
    if score >= 60:
        return "Solide Argumentqualität"
    if score >= 40:
        return "Verbesserungsbedarf"
    return "Argument benötigt Überarbeitung"
