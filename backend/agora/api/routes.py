"""
API Routes.

ENDPOINTS:
- POST /api/debates                          → Create a debate
- GET  /api/debates                          → List debates (sort=trending/active/recent)
- GET  /api/debates/{debate_id}              → Single debate
- GET  /api/debates/{debate_id}/arguments    → Threaded arguments with rating counts
- POST /api/debates/{debate_id}/arguments    → Submit an argument (gated, scored, rewarded)
- POST /api/arguments/preview                → Validate + sanitized preview, nothing stored
- POST /api/arguments/analyze                → AI analysis + quality score for a draft
- POST /api/arguments/{argument_id}/ratings  → Rate as insightful / concede point
- POST /api/arguments/{argument_id}/steelman → Steel-man an opposing argument
- POST /api/arguments/{argument_id}/concede  → Author concedes their own argument
- GET  /api/users/{user_id}/reputation       → Total, level and ledger history
- GET  /api/leaderboard                      → Top users by reputation
- GET  /api/reputation/rules                 → The rule table

Mutations need the X-User-Id header (see api/deps.py).
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from agora.api.deps import (
    get_argument_analyzer,
    get_current_user_id,
    get_optional_user_id,
    get_rate_limiter,
    get_rule_table,
    get_steelman_validator,
)
from agora.config import Settings, get_settings
from agora.database import get_db
from agora.models.debate import Argument
from agora.models.schemas import (
    AnalysisReport,
    AnalyzeRequest,
    ArgumentCreate,
    ArgumentPreviewRequest,
    ArgumentResponse,
    ArgumentSubmissionResponse,
    ArgumentThreadResponse,
    ConcedeResponse,
    DebateCreate,
    DebateResponse,
    DebateSummaryResponse,
    FallacyResponse,
    LeaderboardEntry,
    QualityAnalysisResponse,
    RatingRequest,
    RatingResponse,
    RelevanceResponse,
    ReputationRuleResponse,
    ReputationTransactionResponse,
    StatusResponse,
    SteelManRequest,
    SteelManResponse,
    UserReputationResponse,
    ValidationResponse,
)
from agora.services.argument_pipeline import (
    ArgumentSubmissionPipeline,
    RejectionReason,
    SubmissionRejected,
)
from agora.services.debate_service import DebateService, DebateSort, RatingSummary
from agora.services.input_validation import (
    validate_and_sanitize_argument,
    validate_description,
    validate_title,
)
from agora.services.quality.analysis import (
    AnalysisOutcome,
    AnalysisUnavailable,
    status_label,
)
from agora.services.quality.analyzer import ArgumentAnalyzer
from agora.services.quality.scorer import (
    calculate_quality_score,
    classify_quality,
    quality_message,
)
from agora.services.quality.steelman import SteelManValidator
from agora.services.rate_limiter import (
    ANALYZE_ARGUMENT,
    CREATE_ARGUMENT,
    CREATE_DEBATE,
    RATE_ARGUMENT,
    STEEL_MAN,
    RateLimiter,
    policy_for,
)
from agora.services.reputation.rules import (
    ReputationAction,
    RuleTable,
    reputation_level,
)
from agora.services.reputation.service import (
    ConcessionStatus,
    RatingStatus,
    ReputationService,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["api"])

# How each pipeline rejection surfaces over HTTP
REJECTION_STATUS = {
    RejectionReason.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
    RejectionReason.INVALID_INPUT: 422,
    RejectionReason.DEBATE_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    RejectionReason.INVALID_PARENT: 422,
    RejectionReason.QUALITY_TOO_LOW: 422,
}

RATING_STATUS = {
    RatingStatus.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    RatingStatus.SELF_RATING: status.HTTP_409_CONFLICT,
    RatingStatus.ALREADY_RATED: status.HTTP_409_CONFLICT,
}


def _enforce_rate_limit(
    limiter: RateLimiter,
    user_id: str,
    action_type: str,
    settings: Settings,
) -> None:
    policy = policy_for(action_type, settings)
    if not limiter.check(user_id, action_type, policy):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Zu viele Anfragen. Bitte warten Sie einen Moment.",
            headers={"Retry-After": str(policy.window_seconds)},
        )


def _analysis_report(outcome: AnalysisOutcome, settings: Settings) -> AnalysisReport:
    """Convert an analysis outcome into its API shape, score included."""
    if isinstance(outcome, AnalysisUnavailable):
        return AnalysisReport(available=False, error=outcome.error)

    score = calculate_quality_score(outcome)
    return AnalysisReport(
        available=True,
        analysis=QualityAnalysisResponse(
            relevance=RelevanceResponse(
                score=outcome.relevance.score,
                justification=outcome.relevance.justification,
            ),
            evidence=StatusResponse(
                status=outcome.evidence.status.value,
                label=status_label(outcome.evidence.status),
                justification=outcome.evidence.justification,
            ),
            specificity=StatusResponse(
                status=outcome.specificity.status.value,
                label=status_label(outcome.specificity.status),
                justification=outcome.specificity.justification,
            ),
            fallacy=FallacyResponse(
                has_fallacy=outcome.fallacy.has_fallacy,
                name=outcome.fallacy.name,
                label=outcome.fallacy.name or status_label(None),
                justification=outcome.fallacy.justification,
            ),
        ),
        quality_score=score,
        quality_tier=classify_quality(
            score,
            settings.high_quality_threshold,
            settings.minimum_quality_threshold,
        ),
        quality_message=quality_message(score),
    )


# =============================================================================
# DEBATES
# =============================================================================

@router.post("/debates", response_model=DebateResponse, status_code=status.HTTP_201_CREATED)
async def create_debate(
    request: DebateCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    limiter: RateLimiter = Depends(get_rate_limiter),
    settings: Settings = Depends(get_settings),
) -> DebateResponse:
    """
    Create a debate topic.

    Example:
        POST /api/debates
        {"title": "Tempolimit auf Autobahnen", "description": "Sollte Deutschland ..."}
    """
    _enforce_rate_limit(limiter, user_id, CREATE_DEBATE, settings)

    title = validate_title(request.title)
    description = validate_description(request.description)
    errors = title.errors + description.errors
    if errors:
        raise HTTPException(status_code=422, detail=errors)

    debate = await DebateService(db).create_debate(
        title=title.sanitized_value,
        description=description.sanitized_value,
        creator_id=user_id,
    )
    return DebateResponse.model_validate(debate)


@router.get("/debates", response_model=list[DebateSummaryResponse])
async def list_debates(
    sort: DebateSort = Query(default="recent"),
    limit: int = Query(default=50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
) -> list[DebateSummaryResponse]:
    """
    Debates with engagement figures.

    Example:
        GET /api/debates?sort=trending&limit=6
    """
    debates = await DebateService(db).list_debates(limit, sort)
    return [
        DebateSummaryResponse(
            **DebateResponse.model_validate(d.debate).model_dump(),
            argument_count=d.argument_count,
            participant_count=d.participant_count,
            activity_score=d.activity_score,
            recent_activity=d.recent_activity,
        )
        for d in debates
    ]


@router.get("/debates/{debate_id}", response_model=DebateResponse)
async def get_debate(
    debate_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> DebateResponse:
    debate = await DebateService(db).get_debate(debate_id)
    if not debate:
        raise HTTPException(status_code=404, detail=f"Debate {debate_id} not found")
    return DebateResponse.model_validate(debate)


# =============================================================================
# ARGUMENTS
# =============================================================================

@router.get("/debates/{debate_id}/arguments", response_model=list[ArgumentThreadResponse])
async def list_arguments(
    debate_id: uuid.UUID,
    user_id: Optional[str] = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db),
) -> list[ArgumentThreadResponse]:
    """
    Top-level arguments in creation order, each with its direct replies.

    Every argument carries its rating counts; with X-User-Id, my_ratings
    lists what that user has already given.
    """
    service = DebateService(db)
    if not await service.get_debate(debate_id):
        raise HTTPException(status_code=404, detail=f"Debate {debate_id} not found")

    threads = await service.list_arguments_threaded(debate_id)
    argument_ids = [t.argument.id for t in threads] + [
        r.id for t in threads for r in t.replies
    ]
    summaries = await service.rating_summaries(argument_ids, user_id)

    return [
        ArgumentThreadResponse(
            **_argument_response(thread.argument, summaries).model_dump(),
            replies=[_argument_response(r, summaries) for r in thread.replies],
        )
        for thread in threads
    ]


def _argument_response(
    argument: Argument,
    summaries: dict[uuid.UUID, RatingSummary],
) -> ArgumentResponse:
    summary = summaries.get(argument.id, RatingSummary())
    return ArgumentResponse.model_validate(argument).model_copy(
        update={
            "insightful_count": summary.insightful_count,
            "concede_count": summary.concede_count,
            "my_ratings": summary.my_ratings,
        }
    )


@router.post(
    "/debates/{debate_id}/arguments",
    response_model=ArgumentSubmissionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_argument(
    debate_id: uuid.UUID,
    request: ArgumentCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    limiter: RateLimiter = Depends(get_rate_limiter),
    analyzer: ArgumentAnalyzer = Depends(get_argument_analyzer),
    rules: RuleTable = Depends(get_rule_table),
    settings: Settings = Depends(get_settings),
) -> ArgumentSubmissionResponse:
    """
    Submit an argument. Runs the full submission pipeline:
    rate limit → validation → placement → AI analysis → store → reputation.

    Example:
        POST /api/debates/{id}/arguments
        {"text": "Ein Tempolimit von 130 km/h senkt laut Destatis ...", "type": "Pro"}

        Returns the stored argument, its analysis and any reputation awarded.
    """
    pipeline = ArgumentSubmissionPipeline(db, limiter, analyzer, settings, rules)
    outcome = await pipeline.submit(
        debate_id=debate_id,
        author_id=user_id,
        text=request.text,
        argument_type=request.type,
        parent_id=request.parent_id,
        author_display_name=request.author_display_name,
        source_url=request.source_url,
        source_description=request.source_description,
        analyze=request.analyze,
    )

    if isinstance(outcome, SubmissionRejected):
        headers = None
        if outcome.reason == RejectionReason.RATE_LIMITED:
            policy = policy_for(CREATE_ARGUMENT, settings)
            headers = {"Retry-After": str(policy.window_seconds)}
        raise HTTPException(
            status_code=REJECTION_STATUS[outcome.reason],
            detail=outcome.errors,
            headers=headers,
        )

    return ArgumentSubmissionResponse(
        argument=ArgumentResponse.model_validate(outcome.argument),
        analysis=_analysis_report(outcome.analysis, settings) if outcome.analysis else None,
        warnings=outcome.warnings,
        reputation_awarded=[
            ReputationTransactionResponse.model_validate(t) for t in outcome.awarded
        ],
    )


@router.post("/arguments/preview", response_model=ValidationResponse)
async def preview_argument(request: ArgumentPreviewRequest) -> ValidationResponse:
    """Validate a draft and return its sanitized form. Nothing is stored."""
    result = validate_and_sanitize_argument(request.text)
    return ValidationResponse(
        is_valid=result.is_valid,
        sanitized_value=result.sanitized_value,
        errors=result.errors,
    )


@router.post("/arguments/analyze", response_model=AnalysisReport)
async def analyze_argument(
    request: AnalyzeRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    limiter: RateLimiter = Depends(get_rate_limiter),
    analyzer: ArgumentAnalyzer = Depends(get_argument_analyzer),
    settings: Settings = Depends(get_settings),
) -> AnalysisReport:
    """
    Analyze a draft argument and score it, without storing anything.

    An unavailable analysis is a normal 200 response with available=false.
    """
    _enforce_rate_limit(limiter, user_id, ANALYZE_ARGUMENT, settings)

    validation = validate_and_sanitize_argument(request.argument_text)
    if not validation.is_valid:
        raise HTTPException(status_code=422, detail=validation.errors)

    debate_context = request.debate_context
    if request.debate_id is not None:
        debate = await DebateService(db).get_debate(request.debate_id)
        if not debate:
            raise HTTPException(status_code=404, detail=f"Debate {request.debate_id} not found")
        debate_context = (
            f"{debate.title}: {debate.description}" if debate.description else debate.title
        )

    outcome = await analyzer.analyze(validation.sanitized_value, debate_context)
    return _analysis_report(outcome, settings)


@router.post("/arguments/{argument_id}/ratings", response_model=RatingResponse)
async def rate_argument(
    argument_id: uuid.UUID,
    request: RatingRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    limiter: RateLimiter = Depends(get_rate_limiter),
    rules: RuleTable = Depends(get_rule_table),
    settings: Settings = Depends(get_settings),
) -> RatingResponse:
    """
    Rate someone else's argument. Self-ratings and repeated ratings of the
    same type are rejected with 409.
    """
    _enforce_rate_limit(limiter, user_id, RATE_ARGUMENT, settings)

    outcome = await ReputationService(db, rules).rate_argument(
        argument_id, user_id, request.rating_type
    )
    if not outcome.success:
        raise HTTPException(status_code=RATING_STATUS[outcome.status], detail=outcome.message)

    return RatingResponse(
        success=True,
        status=outcome.status,
        message=outcome.message,
        points_awarded=outcome.points_awarded,
    )


@router.post("/arguments/{argument_id}/steelman", response_model=SteelManResponse)
async def steel_man_argument(
    argument_id: uuid.UUID,
    request: SteelManRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    limiter: RateLimiter = Depends(get_rate_limiter),
    validator: SteelManValidator = Depends(get_steelman_validator),
    rules: RuleTable = Depends(get_rule_table),
    settings: Settings = Depends(get_settings),
) -> SteelManResponse:
    """
    Submit a steel-man reformulation of an opposing argument.
    An accepted reformulation earns the caller the steel_manning award
    (once per argument).
    """
    _enforce_rate_limit(limiter, user_id, STEEL_MAN, settings)

    argument = await DebateService(db).get_argument(argument_id)
    if not argument:
        raise HTTPException(status_code=404, detail=f"Argument {argument_id} not found")
    if argument.author_id == user_id:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Steel-Manning ist nur für Argumente anderer Nutzer möglich.",
        )

    validation = validate_and_sanitize_argument(request.reformulation)
    if not validation.is_valid:
        raise HTTPException(status_code=422, detail=validation.errors)

    verdict = await validator.validate(argument.text, validation.sanitized_value)

    points = 0
    if verdict.accepted:
        transaction = await ReputationService(db, rules).apply_action(
            user_id, ReputationAction.STEEL_MANNING, related_argument_id=argument.id
        )
        points = transaction.points if transaction else 0

    return SteelManResponse(
        accepted=verdict.accepted,
        rationale=verdict.rationale,
        points_awarded=points,
    )


@router.post("/arguments/{argument_id}/concede", response_model=ConcedeResponse)
async def concede_argument(
    argument_id: uuid.UUID,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    rules: RuleTable = Depends(get_rule_table),
) -> ConcedeResponse:
    """
    The author publicly concedes their own argument.

    Only arguments another user has replied to can be conceded (409
    otherwise). Conceding again returns already_conceded=true and no points.
    """
    argument = await DebateService(db).get_argument(argument_id)
    if not argument:
        raise HTTPException(status_code=404, detail=f"Argument {argument_id} not found")
    if argument.author_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Nur der Autor kann ein Argument zurückziehen.",
        )

    outcome = await ReputationService(db, rules).concede_argument(argument)
    if outcome.status == ConcessionStatus.UNCHALLENGED:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=outcome.message)

    return ConcedeResponse(
        argument_id=argument.id,
        points_awarded=outcome.points_awarded,
        already_conceded=outcome.status == ConcessionStatus.ALREADY_CONCEDED,
        conceded_at=argument.conceded_at,
    )


# =============================================================================
# REPUTATION
# =============================================================================

@router.get("/users/{user_id}/reputation", response_model=UserReputationResponse)
async def get_user_reputation(
    user_id: str,
    limit: int = Query(default=50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
) -> UserReputationResponse:
    service = ReputationService(db)
    summary = await service.get_profile_summary(user_id)
    history = await service.get_history(user_id, limit)
    return UserReputationResponse(
        user_id=summary.user_id,
        username=summary.username,
        reputation_score=summary.reputation_score,
        level=summary.level,
        history=[ReputationTransactionResponse.model_validate(t) for t in history],
    )


@router.get("/leaderboard", response_model=list[LeaderboardEntry])
async def get_leaderboard(
    limit: int = Query(default=10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> list[LeaderboardEntry]:
    profiles = await ReputationService(db).get_leaderboard(limit)
    return [
        LeaderboardEntry(
            rank=i + 1,
            user_id=p.user_id,
            username=p.username,
            reputation_score=p.reputation_score,
            level=reputation_level(p.reputation_score),
        )
        for i, p in enumerate(profiles)
    ]


@router.get("/reputation/rules", response_model=list[ReputationRuleResponse])
async def list_reputation_rules(
    rules: RuleTable = Depends(get_rule_table),
) -> list[ReputationRuleResponse]:
    return [
        ReputationRuleResponse(action=rule.action, points=rule.points, reason=rule.reason)
        for rule in rules.values()
    ]
