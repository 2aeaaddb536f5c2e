"""
Debate Service — storage and retrieval of debates and arguments.

Callers pass values that have already been validated and sanitized
(see input_validation); this layer only enforces relational rules,
e.g. that a reply's parent lives in the same debate.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, Literal, Optional

from sqlalchemy import case, distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from agora.models.debate import Argument, Debate, Rating
from agora.services.reputation.rules import RatingType

logger = logging.getLogger(__name__)

ARGUMENT_TYPES = ("Thesis", "Pro", "Contra")

DebateSort = Literal["trending", "active", "recent"]

# Activity score: recent arguments weigh 10, each participant 5
ACTIVITY_WINDOW = timedelta(days=7)
RECENT_ARGUMENT_WEIGHT = 10
PARTICIPANT_WEIGHT = 5


class InvalidParentError(ValueError):
    """The requested parent argument is missing or belongs to another debate."""


@dataclass
class ArgumentThread:
    """A top-level argument with its direct replies."""

    argument: Argument
    replies: list[Argument] = field(default_factory=list)


@dataclass
class DebateActivity:
    """A debate with its engagement figures."""

    debate: Debate
    argument_count: int = 0
    participant_count: int = 0
    activity_score: int = 0
    # Newest argument, or the debate's creation time if it has none
    recent_activity: Optional[datetime] = None


@dataclass
class RatingSummary:
    insightful_count: int = 0
    concede_count: int = 0
    # Rating types the requesting user has given this argument
    my_ratings: list[RatingType] = field(default_factory=list)


class DebateService:
    """
    Service for debate and argument storage.

    Handles:
    - Creating and listing debates
    - Creating arguments (with the same-debate parent check)
    - Listing a debate's arguments as threads
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    # =========================================================================
    # DEBATES
    # =========================================================================

    async def create_debate(
        self,
        title: str,
        creator_id: str,
        description: Optional[str] = None,
    ) -> Debate:
        debate = Debate(title=title, description=description or None, creator_id=creator_id)
        self.db.add(debate)
        await self.db.commit()
        logger.info(f"Created debate {debate.id} by {creator_id}")
        return debate

    async def get_debate(self, debate_id: uuid.UUID) -> Optional[Debate]:
        return await self.db.get(Debate, debate_id)

    async def list_debates(
        self,
        limit: int = 50,
        sort: DebateSort = "recent",
        now: Optional[datetime] = None,
    ) -> list[DebateActivity]:
        """
        Debates with argument count, participant count and activity score.

        SORT ORDERS:
        - recent:   newest debate first
        - active:   most recent argument first (debate creation time if none)
        - trending: highest activity score first, where
                    score = 10 × arguments in the last 7 days + 5 × participants
        """
        now = now or datetime.utcnow()
        window_start = now - ACTIVITY_WINDOW

        stats = (
            select(
                Argument.debate_id.label("debate_id"),
                func.count(Argument.id).label("argument_count"),
                func.count(distinct(Argument.author_id)).label("participant_count"),
                func.max(Argument.created_at).label("last_argument_at"),
                func.sum(case((Argument.created_at >= window_start, 1), else_=0)).label(
                    "recent_arguments"
                ),
            )
            .group_by(Argument.debate_id)
            .subquery()
        )

        argument_count = func.coalesce(stats.c.argument_count, 0)
        participant_count = func.coalesce(stats.c.participant_count, 0)
        activity_score = (
            func.coalesce(stats.c.recent_arguments, 0) * RECENT_ARGUMENT_WEIGHT
            + participant_count * PARTICIPANT_WEIGHT
        )
        recent_activity = func.coalesce(stats.c.last_argument_at, Debate.created_at)

        order_by = {
            "recent": [Debate.created_at.desc()],
            "active": [recent_activity.desc(), Debate.created_at.desc()],
            "trending": [activity_score.desc(), Debate.created_at.desc()],
        }[sort]

        result = await self.db.execute(
            select(
                Debate,
                argument_count.label("argument_count"),
                participant_count.label("participant_count"),
                activity_score.label("activity_score"),
                recent_activity.label("recent_activity"),
            )
            .outerjoin(stats, stats.c.debate_id == Debate.id)
            .order_by(*order_by)
            .limit(limit)
        )
        return [
            DebateActivity(
                debate=row.Debate,
                argument_count=row.argument_count,
                participant_count=row.participant_count,
                activity_score=row.activity_score,
                recent_activity=row.recent_activity,
            )
            for row in result.all()
        ]

    # =========================================================================
    # ARGUMENTS
    # =========================================================================

    async def get_argument(self, argument_id: uuid.UUID) -> Optional[Argument]:
        return await self.db.get(Argument, argument_id)

    async def check_parent(self, debate_id: uuid.UUID, parent_id: Optional[uuid.UUID]) -> None:
        """
        Raise InvalidParentError unless parent_id is None or an argument of
        the same debate.
        """
        if parent_id is None:
            return
        parent = await self.get_argument(parent_id)
        if parent is None:
            raise InvalidParentError("Übergeordnetes Argument nicht gefunden")
        if parent.debate_id != debate_id:
            raise InvalidParentError(
                "Übergeordnetes Argument gehört zu einer anderen Debatte"
            )

    async def create_argument(
        self,
        debate_id: uuid.UUID,
        text: str,
        argument_type: str,
        author_id: str,
        parent_id: Optional[uuid.UUID] = None,
        author_display_name: Optional[str] = None,
        source_url: Optional[str] = None,
        source_description: Optional[str] = None,
        quality_score: Optional[int] = None,
    ) -> Argument:
        """
        Insert an argument and commit.

        Raises:
            ValueError: unknown argument type
            InvalidParentError: parent missing or in another debate
        """
        if argument_type not in ARGUMENT_TYPES:
            raise ValueError(f"Unknown argument type: {argument_type}")

        await self.check_parent(debate_id, parent_id)

        argument = Argument(
            debate_id=debate_id,
            parent_id=parent_id,
            text=text,
            type=argument_type,
            author_id=author_id,
            author_display_name=author_display_name,
            source_url=source_url,
            source_description=source_description,
            quality_score=quality_score,
        )
        self.db.add(argument)
        await self.db.commit()

        logger.info(f"Created argument {argument.id} in debate {debate_id} by {author_id}")
        return argument

    async def list_arguments(self, debate_id: uuid.UUID) -> list[Argument]:
        """All arguments of a debate, oldest first."""
        result = await self.db.execute(
            select(Argument)
            .where(Argument.debate_id == debate_id)
            .order_by(Argument.created_at.asc())
        )
        return list(result.scalars().all())

    async def list_arguments_threaded(self, debate_id: uuid.UUID) -> list[ArgumentThread]:
        """
        Group a debate's arguments into threads: each top-level argument
        with its direct replies, both in creation order.
        """
        arguments = await self.list_arguments(debate_id)

        threads = {
            arg.id: ArgumentThread(argument=arg)
            for arg in arguments
            if arg.parent_id is None
        }
        for arg in arguments:
            if arg.parent_id is not None and arg.parent_id in threads:
                threads[arg.parent_id].replies.append(arg)

        return list(threads.values())

    async def rating_summaries(
        self,
        argument_ids: Iterable[uuid.UUID],
        user_id: Optional[str] = None,
    ) -> dict[uuid.UUID, RatingSummary]:
        """
        Rating counts per argument, plus which types user_id has given.

        Arguments without ratings are absent from the result.
        """
        argument_ids = list(argument_ids)
        if not argument_ids:
            return {}

        summaries: dict[uuid.UUID, RatingSummary] = {}
        counts = await self.db.execute(
            select(Rating.argument_id, Rating.rating_type, func.count(Rating.id))
            .where(Rating.argument_id.in_(argument_ids))
            .group_by(Rating.argument_id, Rating.rating_type)
        )
        for argument_id, rating_type, count in counts.all():
            summary = summaries.setdefault(argument_id, RatingSummary())
            if rating_type == RatingType.INSIGHTFUL.value:
                summary.insightful_count = count
            elif rating_type == RatingType.CONCEDE_POINT.value:
                summary.concede_count = count

        if user_id:
            own = await self.db.execute(
                select(Rating.argument_id, Rating.rating_type)
                .where(
                    Rating.argument_id.in_(argument_ids),
                    Rating.rater_user_id == user_id,
                )
                .order_by(Rating.rating_type)
            )
            for argument_id, rating_type in own.all():
                summary = summaries.setdefault(argument_id, RatingSummary())
                summary.my_ratings.append(RatingType(rating_type))

        return summaries
