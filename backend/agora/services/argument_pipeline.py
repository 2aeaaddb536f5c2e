"""
Argument Submission Pipeline — from form input to stored, scored argument.

WHAT THIS DOES:
Runs every gate a new argument must pass, stores it, and applies the
reputation rules it triggers. Routes stay thin; this is the one place
to read the whole submission flow.

STAGES:
1. Rate limit: at most N new arguments per user per window
2. Validation: argument text, display name, source URL + description
3. Placement: debate must exist, parent must be in the same debate
4. Analysis: AI four-dimension analysis → 0-100 quality score
   - score < minimum → rejected (quality too low)
   - analysis unavailable → carry on without a score
5. Persist the argument (a display name is also kept on the author's profile)
6. Reputation: high quality (+), source provided (+), fallacy (-)

A rejection at any stage returns SubmissionRejected and nothing is stored.

USAGE:
    pipeline = ArgumentSubmissionPipeline(db, rate_limiter, analyzer)
    outcome = await pipeline.submit(
        debate_id=debate.id,
        author_id="user-1",
        text="Ein Tempolimit senkt die Zahl schwerer Unfälle deutlich...",
        argument_type="Pro",
    )
    if isinstance(outcome, SubmissionRejected):
        ...
"""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from agora.config import Settings, get_settings
from agora.models.debate import Argument, Debate, ReputationTransaction
from agora.services.debate_service import DebateService, InvalidParentError
from agora.services.input_validation import (
    validate_and_sanitize_argument,
    validate_source_description,
    validate_source_url,
    validate_username,
)
from agora.services.quality.analysis import (
    AnalysisOutcome,
    QualityAnalysis,
)
from agora.services.quality.analyzer import ArgumentAnalyzer
from agora.services.quality.scorer import (
    QualityTier,
    calculate_quality_score,
    classify_quality,
    quality_message,
)
from agora.services.rate_limiter import CREATE_ARGUMENT, RateLimiter, policy_for
from agora.services.reputation.rules import RuleTable, rules_for_new_argument
from agora.services.reputation.service import ReputationService

logger = logging.getLogger(__name__)


class RejectionReason(str, Enum):
    RATE_LIMITED = "rate_limited"
    INVALID_INPUT = "invalid_input"
    DEBATE_NOT_FOUND = "debate_not_found"
    INVALID_PARENT = "invalid_parent"
    QUALITY_TOO_LOW = "quality_too_low"


@dataclass
class SubmissionRejected:
    reason: RejectionReason
    errors: list[str] = field(default_factory=list)
    quality_score: Optional[int] = None


@dataclass
class SubmissionResult:
    argument: Argument
    analysis: Optional[AnalysisOutcome] = None
    quality_score: Optional[int] = None
    quality_tier: Optional[QualityTier] = None
    warnings: list[str] = field(default_factory=list)
    awarded: list[ReputationTransaction] = field(default_factory=list)


@dataclass
class _SanitizedInput:
    text: str
    author_display_name: Optional[str] = None
    source_url: Optional[str] = None
    source_description: Optional[str] = None

    @property
    def has_source(self) -> bool:
        return bool(self.source_url and self.source_description)


class ArgumentSubmissionPipeline:
    """
    Orchestrates argument creation: gates, analysis, persistence, rewards.

    Args:
        db: SQLAlchemy async session
        rate_limiter: Shared per-app limiter
        analyzer: AI analyzer; None skips analysis entirely
        settings: Thresholds and limits (defaults to app settings)
        rules: Reputation rule table (defaults to configured table)
    """

    def __init__(
        self,
        db: AsyncSession,
        rate_limiter: RateLimiter,
        analyzer: Optional[ArgumentAnalyzer] = None,
        settings: Optional[Settings] = None,
        rules: Optional[RuleTable] = None,
    ):
        self.db = db
        self.rate_limiter = rate_limiter
        self.analyzer = analyzer
        self.settings = settings or get_settings()
        self.debates = DebateService(db)
        self.reputation = ReputationService(db, rules)

    async def submit(
        self,
        debate_id: uuid.UUID,
        author_id: str,
        text: str,
        argument_type: str,
        parent_id: Optional[uuid.UUID] = None,
        author_display_name: Optional[str] = None,
        source_url: Optional[str] = None,
        source_description: Optional[str] = None,
        analyze: bool = True,
    ) -> Union[SubmissionResult, SubmissionRejected]:
        # Stage 1: rate limit
        policy = policy_for(CREATE_ARGUMENT, self.settings)
        if not self.rate_limiter.check(author_id, CREATE_ARGUMENT, policy):
            return SubmissionRejected(
                RejectionReason.RATE_LIMITED,
                [
                    "Zu viele Anfragen. Bitte warten Sie, bevor Sie ein "
                    "neues Argument erstellen."
                ],
            )

        # Stage 2: validation
        sanitized = self._validate(text, author_display_name, source_url, source_description)
        if isinstance(sanitized, SubmissionRejected):
            return sanitized

        # Stage 3: placement
        debate = await self.debates.get_debate(debate_id)
        if debate is None:
            return SubmissionRejected(
                RejectionReason.DEBATE_NOT_FOUND, ["Debatte nicht gefunden"]
            )
        try:
            await self.debates.check_parent(debate_id, parent_id)
        except InvalidParentError as e:
            return SubmissionRejected(RejectionReason.INVALID_PARENT, [str(e)])

        # Stage 4: analysis
        result_analysis: Optional[AnalysisOutcome] = None
        quality_score: Optional[int] = None
        quality_tier: Optional[QualityTier] = None
        warnings: list[str] = []

        if analyze and self.analyzer is not None:
            result_analysis = await self.analyzer.analyze(
                sanitized.text, self._debate_context(debate)
            )
            if isinstance(result_analysis, QualityAnalysis):
                quality_score = calculate_quality_score(result_analysis)
                quality_tier = classify_quality(
                    quality_score,
                    self.settings.high_quality_threshold,
                    self.settings.minimum_quality_threshold,
                )
                if quality_tier == QualityTier.BLOCKED:
                    logger.info(
                        f"Argument by {author_id} blocked: quality {quality_score} "
                        f"< {self.settings.minimum_quality_threshold}"
                    )
                    return SubmissionRejected(
                        RejectionReason.QUALITY_TOO_LOW,
                        [
                            f"Argumentqualität zu niedrig ({quality_score}%). "
                            f"Bitte überarbeiten Sie Ihr Argument."
                        ],
                        quality_score=quality_score,
                    )
                if quality_tier == QualityTier.ACCEPTABLE:
                    warnings.append(
                        f"{quality_message(quality_score)} ({quality_score}%)"
                    )
            else:
                warnings.append(result_analysis.error)

        # Stage 5: persist
        argument = await self.debates.create_argument(
            debate_id=debate_id,
            text=sanitized.text,
            argument_type=argument_type,
            author_id=author_id,
            parent_id=parent_id,
            author_display_name=sanitized.author_display_name,
            source_url=sanitized.source_url,
            source_description=sanitized.source_description,
            quality_score=quality_score,
        )
        if sanitized.author_display_name:
            await self.reputation.remember_username(author_id, sanitized.author_display_name)

        # Stage 6: reputation
        awarded = await self._apply_reputation(
            argument,
            quality_score,
            result_analysis if isinstance(result_analysis, QualityAnalysis) else None,
            sanitized.has_source,
        )

        logger.info(
            f"Argument {argument.id} submitted: score={quality_score}, "
            f"awards={[t.action_type for t in awarded]}"
        )

        return SubmissionResult(
            argument=argument,
            analysis=result_analysis,
            quality_score=quality_score,
            quality_tier=quality_tier,
            warnings=warnings,
            awarded=awarded,
        )

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _validate(
        self,
        text: str,
        author_display_name: Optional[str],
        source_url: Optional[str],
        source_description: Optional[str],
    ) -> Union[_SanitizedInput, SubmissionRejected]:
        errors: list[str] = []

        text_result = validate_and_sanitize_argument(text)
        errors.extend(text_result.errors)
        sanitized = _SanitizedInput(text=text_result.sanitized_value)

        if author_display_name:
            name_result = validate_username(author_display_name)
            errors.extend(name_result.errors)
            sanitized.author_display_name = name_result.sanitized_value

        if source_url or source_description:
            if not (source_url and source_description):
                errors.append("Quelle benötigt sowohl eine URL als auch eine Beschreibung")
            else:
                url_result = validate_source_url(
                    source_url, production=self.settings.is_production
                )
                description_result = validate_source_description(source_description)
                errors.extend(url_result.errors)
                errors.extend(description_result.errors)
                sanitized.source_url = url_result.sanitized_value
                sanitized.source_description = description_result.sanitized_value

        if errors:
            return SubmissionRejected(RejectionReason.INVALID_INPUT, errors)
        return sanitized

    @staticmethod
    def _debate_context(debate: Debate) -> str:
        if debate.description:
            return f"{debate.title}: {debate.description}"
        return debate.title

    async def _apply_reputation(
        self,
        argument: Argument,
        quality_score: Optional[int],
        analysis: Optional[QualityAnalysis],
        has_source: bool,
    ) -> list[ReputationTransaction]:
        actions = rules_for_new_argument(
            quality_score,
            analysis,
            has_source,
            high_quality_threshold=self.settings.high_quality_threshold,
        )

        awarded = []
        for action in actions:
            transaction = await self.reputation.apply_action(
                argument.author_id, action, related_argument_id=argument.id
            )
            if transaction is not None:
                awarded.append(transaction)
        return awarded
