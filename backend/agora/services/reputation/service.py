"""
Reputation Service — the ledger and the rating flow.

WHAT THIS DOES:
- apply_action(): append a ledger row and bump the user's running total,
  in one transaction
- rate_argument(): self-rating and duplicate-rating guards, then record
  the rating and credit the argument's author, in one transaction
- history / leaderboard / profile summary reads

GUARDS:
- A user can never rate their own argument.
- One rating per (argument, rater, rating_type). Enforced by a pre-check
  and by the unique constraint on argument_ratings; a concurrent insert
  that loses the race is reported as "already rated" as well.
- System awards tied to an argument (high quality, source, fallacy,
  concession, steel-man) are granted at most once per
  (user, action, argument).
- An argument can only be conceded once it has been challenged, i.e. has
  at least one reply from another user. Conceding is final (conceded_at).
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from agora.models.debate import Argument, Rating, ReputationTransaction, UserProfile
from agora.services.reputation.rules import (
    RATING_ACTIONS,
    RatingType,
    ReputationAction,
    RuleTable,
    build_rule_table,
    reputation_level,
)

logger = logging.getLogger(__name__)


class RatingStatus(str, Enum):
    RATED = "rated"
    SELF_RATING = "self_rating"
    ALREADY_RATED = "already_rated"
    NOT_FOUND = "not_found"


@dataclass
class RatingOutcome:
    """Result of a rating attempt. Rejections are outcomes, not errors."""

    status: RatingStatus
    message: str
    points_awarded: int = 0
    rating_id: Optional[uuid.UUID] = None

    @property
    def success(self) -> bool:
        return self.status == RatingStatus.RATED


class ConcessionStatus(str, Enum):
    CONCEDED = "conceded"
    ALREADY_CONCEDED = "already_conceded"
    UNCHALLENGED = "unchallenged"


@dataclass
class ConcessionOutcome:
    status: ConcessionStatus
    message: str
    transaction: Optional[ReputationTransaction] = None

    @property
    def points_awarded(self) -> int:
        return self.transaction.points if self.transaction else 0


@dataclass
class ProfileSummary:
    user_id: str
    username: Optional[str]
    reputation_score: int
    level: str


class ReputationService:
    """
    Reputation ledger operations on a database session.

    Args:
        db: SQLAlchemy async session
        rules: Rule table; defaults to the configured one
    """

    def __init__(self, db: AsyncSession, rules: Optional[RuleTable] = None):
        self.db = db
        self.rules = rules or build_rule_table()

    # =========================================================================
    # LEDGER
    # =========================================================================

    async def apply_action(
        self,
        target_user_id: str,
        action: ReputationAction,
        related_argument_id: Optional[uuid.UUID] = None,
        granted_by_user_id: Optional[str] = None,
    ) -> Optional[ReputationTransaction]:
        """
        Apply one rule to a user's reputation and commit.

        Returns the ledger row, or None if this system award was already
        granted for the same argument.
        """
        rule = self.rules[action]

        if related_argument_id is not None and granted_by_user_id is None:
            if await self._already_awarded(target_user_id, action, related_argument_id):
                logger.info(
                    f"Skipping {action.value} for {target_user_id}: "
                    f"already awarded for argument {related_argument_id}"
                )
                return None

        transaction = ReputationTransaction(
            user_id=target_user_id,
            points=rule.points,
            reason=rule.reason,
            action_type=action.value,
            related_argument_id=related_argument_id,
            granted_by_user_id=granted_by_user_id,
        )

        try:
            self.db.add(transaction)
            await self._increment_total(target_user_id, rule.points)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            f"Reputation {rule.points:+d} for {target_user_id} ({action.value})"
        )
        return transaction

    async def _already_awarded(
        self,
        user_id: str,
        action: ReputationAction,
        argument_id: uuid.UUID,
    ) -> bool:
        result = await self.db.execute(
            select(ReputationTransaction.id).where(
                ReputationTransaction.user_id == user_id,
                ReputationTransaction.action_type == action.value,
                ReputationTransaction.related_argument_id == argument_id,
            ).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def _increment_total(self, user_id: str, points: int) -> None:
        """Bump the denormalized total, creating the profile on first award."""
        result = await self.db.execute(
            update(UserProfile)
            .where(UserProfile.user_id == user_id)
            .values(reputation_score=UserProfile.reputation_score + points)
        )
        if result.rowcount == 0:
            self.db.add(UserProfile(user_id=user_id, reputation_score=points))

    async def remember_username(self, user_id: str, username: str) -> None:
        """Store the latest validated display name on the user's profile."""
        try:
            result = await self.db.execute(
                update(UserProfile)
                .where(UserProfile.user_id == user_id)
                .values(username=username)
            )
            if result.rowcount == 0:
                self.db.add(UserProfile(user_id=user_id, username=username, reputation_score=0))
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

    # =========================================================================
    # CONCESSIONS
    # =========================================================================

    async def concede_argument(self, argument: Argument) -> ConcessionOutcome:
        """
        Mark an argument as conceded by its author and award the concession.

        The caller checks authorship. Conceding needs a reply from another
        user, so creating and conceding an unanswered argument earns nothing.
        """
        if argument.conceded_at is not None:
            return ConcessionOutcome(
                ConcessionStatus.ALREADY_CONCEDED,
                "Argument wurde bereits zurückgezogen.",
            )

        if not await self._has_challenge(argument):
            logger.info(f"Rejected concession of unanswered argument {argument.id}")
            return ConcessionOutcome(
                ConcessionStatus.UNCHALLENGED,
                "Ein Argument kann erst nach einer Erwiderung zurückgezogen werden.",
            )

        argument.conceded_at = datetime.utcnow()
        # Commits conceded_at together with the ledger row
        transaction = await self.apply_action(
            argument.author_id,
            ReputationAction.ARGUMENT_CONCEDED,
            related_argument_id=argument.id,
        )
        if transaction is None:
            await self.db.commit()

        return ConcessionOutcome(
            ConcessionStatus.CONCEDED,
            "Argument zurückgezogen",
            transaction=transaction,
        )

    async def _has_challenge(self, argument: Argument) -> bool:
        result = await self.db.execute(
            select(Argument.id).where(
                Argument.parent_id == argument.id,
                Argument.author_id != argument.author_id,
            ).limit(1)
        )
        return result.scalar_one_or_none() is not None

    # =========================================================================
    # RATINGS
    # =========================================================================

    async def rate_argument(
        self,
        argument_id: uuid.UUID,
        rater_user_id: str,
        rating_type: RatingType,
    ) -> RatingOutcome:
        """
        Rate an argument and credit its author.

        Example:
            outcome = await service.rate_argument(arg_id, "user-2", RatingType.INSIGHTFUL)
            # RatingOutcome(status=RATED, points_awarded=5, ...)
            outcome = await service.rate_argument(arg_id, "user-2", RatingType.INSIGHTFUL)
            # RatingOutcome(status=ALREADY_RATED, points_awarded=0, ...)
        """
        argument = await self.db.get(Argument, argument_id)
        if argument is None:
            return RatingOutcome(RatingStatus.NOT_FOUND, "Argument nicht gefunden")

        if argument.author_id == rater_user_id:
            logger.info(f"Rejected self-rating by {rater_user_id} on {argument_id}")
            return RatingOutcome(
                RatingStatus.SELF_RATING,
                "Sie können Ihre eigenen Argumente nicht bewerten.",
            )

        if await self._has_rated(argument_id, rater_user_id, rating_type):
            return self._already_rated(rater_user_id, argument_id)

        author_id = argument.author_id
        rating = Rating(
            argument_id=argument_id,
            rater_user_id=rater_user_id,
            rating_type=rating_type.value,
        )
        self.db.add(rating)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            return self._already_rated(rater_user_id, argument_id)

        # Commits the rating together with the ledger row
        transaction = await self.apply_action(
            author_id,
            RATING_ACTIONS[rating_type],
            related_argument_id=argument_id,
            granted_by_user_id=rater_user_id,
        )

        return RatingOutcome(
            RatingStatus.RATED,
            "Bewertung erfolgreich",
            points_awarded=transaction.points,
            rating_id=rating.id,
        )

    async def _has_rated(
        self,
        argument_id: uuid.UUID,
        rater_user_id: str,
        rating_type: RatingType,
    ) -> bool:
        result = await self.db.execute(
            select(Rating.id).where(
                Rating.argument_id == argument_id,
                Rating.rater_user_id == rater_user_id,
                Rating.rating_type == rating_type.value,
            ).limit(1)
        )
        return result.scalar_one_or_none() is not None

    def _already_rated(self, rater_user_id: str, argument_id: uuid.UUID) -> RatingOutcome:
        logger.info(f"Rejected duplicate rating by {rater_user_id} on {argument_id}")
        return RatingOutcome(
            RatingStatus.ALREADY_RATED,
            "Sie haben dieses Argument bereits so bewertet.",
        )

    # =========================================================================
    # READS
    # =========================================================================

    async def get_reputation(self, user_id: str) -> int:
        profile = await self.db.get(UserProfile, user_id)
        return profile.reputation_score if profile else 0

    async def get_profile_summary(self, user_id: str) -> ProfileSummary:
        profile = await self.db.get(UserProfile, user_id)
        score = profile.reputation_score if profile else 0
        return ProfileSummary(
            user_id=user_id,
            username=profile.username if profile else None,
            reputation_score=score,
            level=reputation_level(score),
        )

    async def get_history(self, user_id: str, limit: int = 50) -> list[ReputationTransaction]:
        """Ledger rows for a user, newest first."""
        result = await self.db.execute(
            select(ReputationTransaction)
            .where(ReputationTransaction.user_id == user_id)
            .order_by(ReputationTransaction.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_leaderboard(self, limit: int = 10) -> list[UserProfile]:
        result = await self.db.execute(
            select(UserProfile)
            .order_by(UserProfile.reputation_score.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
