"""
Argument Analysis contract.

WHAT THIS DOES:
Turns the raw JSON returned by the analysis model into a typed
QualityAnalysis, or into AnalysisUnavailable when the payload can't be
trusted.

WIRE FORMAT:
The analysis prompt asks for German keys, but the model (and older
callers) sometimes answer with English keys or English status words:

    {
        "relevanz":        {"score": 1-5, "begruendung": "..."},
        "substantiierung": {"status": "Vorhanden" | "Nicht vorhanden", "begruendung": "..."},
        "spezifitaet":     {"status": "Konkret" | "Vage", "begruendung": "..."},
        "fehlschluss":     {"status": "Keiner" | "<Name des Fehlschlusses>", "begruendung": "..."}
    }

Both vocabularies are normalized here into enums, once. Nothing downstream
compares raw status strings; display labels come from status_label().

FAILS CLOSED:
Missing sections, unknown statuses, a non-numeric relevance score or an
{"error": ...} payload all produce AnalysisUnavailable. parse_analysis()
never raises.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)

# Shown to users when the enrichment is missing
ANALYSIS_FAILED_MESSAGE = "Analyse fehlgeschlagen."


class EvidenceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"


class SpecificityStatus(str, Enum):
    CONCRETE = "concrete"
    VAGUE = "vague"


_EVIDENCE_STATUSES = {
    "vorhanden": EvidenceStatus.PRESENT,
    "present": EvidenceStatus.PRESENT,
    "nicht vorhanden": EvidenceStatus.ABSENT,
    "fehlt": EvidenceStatus.ABSENT,
    "absent": EvidenceStatus.ABSENT,
    "missing": EvidenceStatus.ABSENT,
}

_SPECIFICITY_STATUSES = {
    "konkret": SpecificityStatus.CONCRETE,
    "concrete": SpecificityStatus.CONCRETE,
    "vage": SpecificityStatus.VAGUE,
    "vague": SpecificityStatus.VAGUE,
}

_NO_FALLACY = {
    "keiner",
    "kein",
    "kein fehlschluss",
    "kein fehlschluss erkannt",
    "none",
    "no fallacy",
}

# German key first, English alias second
_SECTION_KEYS = {
    "relevance": ("relevanz", "relevance"),
    "evidence": ("substantiierung", "evidence"),
    "specificity": ("spezifitaet", "specificity"),
    "fallacy": ("fehlschluss", "fallacy"),
}
_JUSTIFICATION_KEYS = ("begruendung", "justification")


@dataclass(frozen=True)
class RelevanceAssessment:
    score: float
    justification: str = ""


@dataclass(frozen=True)
class EvidenceAssessment:
    status: EvidenceStatus
    justification: str = ""


@dataclass(frozen=True)
class SpecificityAssessment:
    status: SpecificityStatus
    justification: str = ""


@dataclass(frozen=True)
class FallacyAssessment:
    name: Optional[str]
    """Name of the detected fallacy; None when the argument has none."""

    justification: str = ""

    @property
    def has_fallacy(self) -> bool:
        return self.name is not None


@dataclass(frozen=True)
class QualityAnalysis:
    """Four-dimension analysis of a single argument."""

    relevance: RelevanceAssessment
    evidence: EvidenceAssessment
    specificity: SpecificityAssessment
    fallacy: FallacyAssessment


@dataclass(frozen=True)
class AnalysisUnavailable:
    """The analysis could not be produced or trusted."""

    error: str = ANALYSIS_FAILED_MESSAGE


AnalysisOutcome = Union[QualityAnalysis, AnalysisUnavailable]


class _MalformedAnalysis(ValueError):
    pass


def _section(payload: dict, name: str) -> dict:
    for key in _SECTION_KEYS[name]:
        value = payload.get(key)
        if isinstance(value, dict):
            return value
    raise _MalformedAnalysis(f"missing section '{name}'")


def _justification(section: dict) -> str:
    for key in _JUSTIFICATION_KEYS:
        value = section.get(key)
        if isinstance(value, str):
            return value.strip()
    return ""


def _status(section: dict, name: str) -> str:
    status = section.get("status")
    if not isinstance(status, str) or not status.strip():
        raise _MalformedAnalysis(f"missing status in '{name}'")
    return status.strip()


def _parse_relevance(payload: dict) -> RelevanceAssessment:
    section = _section(payload, "relevance")
    score = section.get("score")
    # bool is an int subclass; a boolean score is never meaningful
    if isinstance(score, bool):
        raise _MalformedAnalysis("relevance score is not numeric")
    if isinstance(score, str):
        try:
            score = float(score.strip())
        except ValueError:
            raise _MalformedAnalysis("relevance score is not numeric")
    if not isinstance(score, (int, float)):
        raise _MalformedAnalysis("relevance score is not numeric")
    try:
        score = float(score)
    except OverflowError:
        raise _MalformedAnalysis("relevance score is out of range")
    # float() accepts "nan" and "Infinity", and JSON decoding allows NaN too
    if not math.isfinite(score):
        raise _MalformedAnalysis("relevance score is not finite")
    return RelevanceAssessment(score=score, justification=_justification(section))


def _parse_evidence(payload: dict) -> EvidenceAssessment:
    section = _section(payload, "evidence")
    raw = _status(section, "evidence")
    status = _EVIDENCE_STATUSES.get(raw.lower())
    if status is None:
        raise _MalformedAnalysis(f"unknown evidence status '{raw}'")
    return EvidenceAssessment(status=status, justification=_justification(section))


def _parse_specificity(payload: dict) -> SpecificityAssessment:
    section = _section(payload, "specificity")
    raw = _status(section, "specificity")
    status = _SPECIFICITY_STATUSES.get(raw.lower())
    if status is None:
        raise _MalformedAnalysis(f"unknown specificity status '{raw}'")
    return SpecificityAssessment(status=status, justification=_justification(section))


def _parse_fallacy(payload: dict) -> FallacyAssessment:
    section = _section(payload, "fallacy")
    raw = _status(section, "fallacy")
    name = None if raw.lower().rstrip(".") in _NO_FALLACY else raw
    return FallacyAssessment(name=name, justification=_justification(section))


def parse_analysis(payload: Any) -> AnalysisOutcome:
    """
    Parse a raw analysis payload into a typed result.

    Accepts the bare analysis object or the {"analysis": {...}} envelope.

    Example:
        parse_analysis({"analysis": {"error": "timeout"}})
        # AnalysisUnavailable(error="Analyse fehlgeschlagen.")
    """
    if isinstance(payload, dict) and isinstance(payload.get("analysis"), dict):
        payload = payload["analysis"]

    if not isinstance(payload, dict):
        logger.warning("Analysis payload is not an object; treating as unavailable")
        return AnalysisUnavailable()

    if "error" in payload:
        logger.warning(f"Analysis reported an error: {payload.get('error')}")
        return AnalysisUnavailable()

    try:
        return QualityAnalysis(
            relevance=_parse_relevance(payload),
            evidence=_parse_evidence(payload),
            specificity=_parse_specificity(payload),
            fallacy=_parse_fallacy(payload),
        )
    except _MalformedAnalysis as e:
        logger.warning(f"Malformed analysis payload: {e}")
        return AnalysisUnavailable()


# =============================================================================
# PRESENTATION LABELS
# =============================================================================

_LABELS = {
    "de": {
        EvidenceStatus.PRESENT: "Vorhanden",
        EvidenceStatus.ABSENT: "Nicht vorhanden",
        SpecificityStatus.CONCRETE: "Konkret",
        SpecificityStatus.VAGUE: "Vage",
        None: "Keiner",
    },
    "en": {
        EvidenceStatus.PRESENT: "Present",
        EvidenceStatus.ABSENT: "Absent",
        SpecificityStatus.CONCRETE: "Concrete",
        SpecificityStatus.VAGUE: "Vague",
        None: "None",
    },
}


def status_label(
    status: Union[EvidenceStatus, SpecificityStatus, None],
    language: str = "de",
) -> str:
    """Display label for a canonical status. None means "no fallacy"."""
    labels = _LABELS.get(language, _LABELS["de"])
    return labels[status]
