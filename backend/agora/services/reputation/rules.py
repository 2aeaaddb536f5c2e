"""
Reputation Rules.

WHAT THIS DOES:
The fixed table of scored actions: which action is worth how many points,
and the reason text written to the ledger. Also decides which rules fire
when a new argument is created.

RULE TABLE:
| action                | points | fires when                                        |
|-----------------------|--------|---------------------------------------------------|
| high_quality_argument | +20    | new argument scores >= 70                         |
| steel_manning         | +30    | a steel-man reformulation is accepted             |
| source_provided       | +10    | new argument carries a source URL + description   |
| argument_conceded     | +50    | author concedes their own argument                |
| concede_point_rating  | +20    | another user rates the argument "concede point"   |
| insightful_rating     | +5     | another user rates the argument "insightful"      |
| fallacy_penalty       | -5     | analysis of the new argument names a fallacy      |

argument_conceded, concede_point_rating and fallacy_penalty are
configurable (Settings) because their values differed between product flows.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from agora.config import Settings, get_settings
from agora.services.quality.analysis import QualityAnalysis
from agora.services.quality.scorer import HIGH_QUALITY_THRESHOLD


class ReputationAction(str, Enum):
    HIGH_QUALITY_ARGUMENT = "high_quality_argument"
    STEEL_MANNING = "steel_manning"
    SOURCE_PROVIDED = "source_provided"
    ARGUMENT_CONCEDED = "argument_conceded"
    CONCEDE_POINT_RATING = "concede_point_rating"
    INSIGHTFUL_RATING = "insightful_rating"
    FALLACY_PENALTY = "fallacy_penalty"


class RatingType(str, Enum):
    INSIGHTFUL = "insightful"
    CONCEDE_POINT = "concede_point"


# Rating type → the action credited to the rated argument's author
RATING_ACTIONS = {
    RatingType.INSIGHTFUL: ReputationAction.INSIGHTFUL_RATING,
    RatingType.CONCEDE_POINT: ReputationAction.CONCEDE_POINT_RATING,
}


@dataclass(frozen=True)
class ReputationRule:
    action: ReputationAction
    points: int
    reason: str


RuleTable = dict[ReputationAction, ReputationRule]


def build_rule_table(settings: Optional[Settings] = None) -> RuleTable:
    """Build the rule table, taking the configurable values from settings."""
    settings = settings or get_settings()

    rules = [
        ReputationRule(
            ReputationAction.HIGH_QUALITY_ARGUMENT,
            20,
            "Argument mit hoher KI-Qualitätsbewertung eingereicht",
        ),
        ReputationRule(
            ReputationAction.STEEL_MANNING,
            30,
            "Faire Steel-Manning-Darstellung eines Gegenarguments",
        ),
        ReputationRule(
            ReputationAction.SOURCE_PROVIDED,
            10,
            "Relevante Quelle für eine Behauptung geliefert",
        ),
        ReputationRule(
            ReputationAction.ARGUMENT_CONCEDED,
            settings.argument_conceded_points,
            "Eigenes Argument zurückgezogen oder Gegenargument anerkannt",
        ),
        ReputationRule(
            ReputationAction.CONCEDE_POINT_RATING,
            settings.concede_point_rating_points,
            "Punkt zugestanden",
        ),
        ReputationRule(
            ReputationAction.INSIGHTFUL_RATING,
            5,
            "Argument als einsichtig bewertet",
        ),
        ReputationRule(
            ReputationAction.FALLACY_PENALTY,
            settings.fallacy_penalty_points,
            "Logischer Fehlschluss in Argument erkannt",
        ),
    ]
    return {rule.action: rule for rule in rules}


def rules_for_new_argument(
    quality_score: Optional[int],
    analysis: Optional[QualityAnalysis],
    has_source: bool,
    high_quality_threshold: int = HIGH_QUALITY_THRESHOLD,
) -> list[ReputationAction]:
    """
    Decide which rules fire for the author of a newly created argument.

    quality_score and analysis are None when the AI analysis was unavailable;
    then only the source rule can fire.
    """
    actions = []

    if quality_score is not None and quality_score >= high_quality_threshold:
        actions.append(ReputationAction.HIGH_QUALITY_ARGUMENT)

    if has_source:
        actions.append(ReputationAction.SOURCE_PROVIDED)

    if analysis is not None and analysis.fallacy.has_fallacy:
        actions.append(ReputationAction.FALLACY_PENALTY)

    return actions


# =============================================================================
# LEVELS
# =============================================================================

# (minimum score, level name), highest first
REPUTATION_LEVELS = [
    (1000, "Debattier-Meister"),
    (500, "Diskurs-Experte"),
    (200, "Aktiver Teilnehmer"),
    (50, "Neuling"),
]
BASE_LEVEL = "Anfänger"


def reputation_level(score: int) -> str:
    """Display level for a reputation total."""
    for minimum, level in REPUTATION_LEVELS:
        if score >= minimum:
            return level
    return BASE_LEVEL
