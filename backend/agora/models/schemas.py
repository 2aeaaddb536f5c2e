"""
Pydantic schemas for API request/response validation.

Request models only check shape. Content rules (lengths, suspicious
patterns, URL schemes) live in services/input_validation and come back as
a list of readable errors instead of a pydantic error tree.
"""

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from agora.services.quality.scorer import QualityTier
from agora.services.reputation.rules import RatingType, ReputationAction
from agora.services.reputation.service import RatingStatus


# =============================================================================
# DEBATES
# =============================================================================

class DebateCreate(BaseModel):
    """
    USED BY: POST /api/debates
    """
    title: str
    description: Optional[str] = None


class DebateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    description: Optional[str] = None
    creator_id: str
    created_at: datetime
    updated_at: datetime


class DebateSummaryResponse(DebateResponse):
    """
    USED BY: GET /api/debates?sort=trending|active|recent

    activity_score = 10 × arguments in the last 7 days + 5 × participants
    """
    argument_count: int = 0
    participant_count: int = 0
    activity_score: int = 0
    recent_activity: Optional[datetime] = None


# =============================================================================
# ARGUMENTS
# =============================================================================

ArgumentType = Literal["Thesis", "Pro", "Contra"]


class ArgumentCreate(BaseModel):
    """
    USED BY: POST /api/debates/{debate_id}/arguments

    Example:
        {"text": "Ein Tempolimit senkt ...", "type": "Pro",
         "source_url": "https://www.destatis.de/...", "source_description": "Unfallstatistik 2023"}
    """
    text: str
    type: ArgumentType
    parent_id: Optional[uuid.UUID] = None
    author_display_name: Optional[str] = None
    source_url: Optional[str] = None
    source_description: Optional[str] = None
    analyze: bool = Field(
        default=True,
        description="Run the AI quality analysis before storing",
    )


class ArgumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    debate_id: uuid.UUID
    parent_id: Optional[uuid.UUID] = None
    text: str
    type: ArgumentType
    author_id: str
    author_display_name: Optional[str] = None
    source_url: Optional[str] = None
    source_description: Optional[str] = None
    quality_score: Optional[int] = Field(default=None, ge=0, le=100)
    conceded_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    # Filled in by the argument listing; not columns of the argument itself
    insightful_count: int = 0
    concede_count: int = 0
    my_ratings: list[RatingType] = Field(
        default_factory=list,
        description="Rating types the requesting user has given this argument",
    )


class ArgumentThreadResponse(ArgumentResponse):
    """A top-level argument with its direct replies."""
    replies: list[ArgumentResponse] = Field(default_factory=list)


class ArgumentPreviewRequest(BaseModel):
    text: str


class ValidationResponse(BaseModel):
    is_valid: bool
    sanitized_value: str
    errors: list[str] = Field(default_factory=list)


# =============================================================================
# QUALITY ANALYSIS
# =============================================================================

class AnalyzeRequest(BaseModel):
    """
    USED BY: POST /api/arguments/analyze

    Either pass debate_id (context is taken from the debate) or a free-form
    debate_context.
    """
    argument_text: str
    debate_id: Optional[uuid.UUID] = None
    debate_context: str = ""


class RelevanceResponse(BaseModel):
    score: float
    justification: str = ""


class StatusResponse(BaseModel):
    status: str = Field(description="Canonical status value")
    label: str = Field(description="Display label")
    justification: str = ""


class FallacyResponse(BaseModel):
    has_fallacy: bool
    name: Optional[str] = None
    label: str
    justification: str = ""


class QualityAnalysisResponse(BaseModel):
    relevance: RelevanceResponse
    evidence: StatusResponse
    specificity: StatusResponse
    fallacy: FallacyResponse


class AnalysisReport(BaseModel):
    """
    Analysis result plus the derived score.

    available=False means the AI enrichment could not be produced; error
    carries the message to show instead.
    """
    available: bool
    error: Optional[str] = None
    analysis: Optional[QualityAnalysisResponse] = None
    quality_score: Optional[int] = Field(default=None, ge=0, le=100)
    quality_tier: Optional[QualityTier] = None
    quality_message: Optional[str] = None


# =============================================================================
# REPUTATION
# =============================================================================

class ReputationTransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: str
    points: int
    reason: str
    action_type: Optional[str] = None
    related_argument_id: Optional[uuid.UUID] = None
    granted_by_user_id: Optional[str] = None
    created_at: datetime


class ArgumentSubmissionResponse(BaseModel):
    argument: ArgumentResponse
    analysis: Optional[AnalysisReport] = None
    warnings: list[str] = Field(default_factory=list)
    reputation_awarded: list[ReputationTransactionResponse] = Field(default_factory=list)


class RatingRequest(BaseModel):
    rating_type: RatingType


class RatingResponse(BaseModel):
    success: bool
    status: RatingStatus
    message: str
    points_awarded: int = 0


class SteelManRequest(BaseModel):
    reformulation: str


class SteelManResponse(BaseModel):
    accepted: bool
    rationale: str
    points_awarded: int = 0


class ConcedeResponse(BaseModel):
    argument_id: uuid.UUID
    points_awarded: int
    already_conceded: bool = False
    conceded_at: Optional[datetime] = None


class UserReputationResponse(BaseModel):
    user_id: str
    username: Optional[str] = None
    reputation_score: int
    level: str
    history: list[ReputationTransactionResponse] = Field(default_factory=list)


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: str
    username: Optional[str] = None
    reputation_score: int
    level: str


class ReputationRuleResponse(BaseModel):
    action: ReputationAction
    points: int
    reason: str
