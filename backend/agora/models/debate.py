"""
SQLAlchemy models for debates, arguments, ratings and the reputation ledger.

User ids are opaque strings issued by the upstream auth provider; we never
own a users table, only a denormalized profile row per user that carries
the running reputation total.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    String,
    Text,
    Integer,
    DateTime,
    ForeignKey,
    UniqueConstraint,
    CheckConstraint,
    Index,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from agora.database import Base


USER_ID_LENGTH = 64


class Debate(Base):
    """A debate topic that arguments are posted under."""

    __tablename__ = "debates"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(200))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    creator_id: Mapped[str] = mapped_column(String(USER_ID_LENGTH), index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<Debate id={self.id} title={self.title[:50]}>"


class Argument(Base):
    """
    A single argument in a debate.

    parent_id threads replies; the parent must live in the same debate
    (checked by DebateService before insert).
    """

    __tablename__ = "arguments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    debate_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("debates.id", ondelete="CASCADE"), index=True
    )
    parent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("arguments.id", ondelete="CASCADE"), nullable=True
    )

    text: Mapped[str] = mapped_column(Text)
    # 'Thesis', 'Pro', 'Contra'
    type: Mapped[str] = mapped_column(String(16))

    author_id: Mapped[str] = mapped_column(String(USER_ID_LENGTH), index=True)
    author_display_name: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Optional source attached at creation time
    source_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    source_description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # 0-100 score from the AI analysis; null when analysis was unavailable
    quality_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Set once when the author concedes; a conceded argument stays conceded
    conceded_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __table_args__ = (
        CheckConstraint("type IN ('Thesis', 'Pro', 'Contra')", name="valid_argument_type"),
        Index("idx_arguments_debate_created", "debate_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Argument id={self.id} type={self.type} text={self.text[:50]}>"


class Rating(Base):
    """One rating of one type per (argument, rater)."""

    __tablename__ = "argument_ratings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    argument_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("arguments.id", ondelete="CASCADE"), index=True
    )
    rater_user_id: Mapped[str] = mapped_column(String(USER_ID_LENGTH))
    # 'insightful', 'concede_point'
    rating_type: Mapped[str] = mapped_column(String(32))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint(
            "argument_id", "rater_user_id", "rating_type", name="uq_rating_per_rater"
        ),
        CheckConstraint(
            "rating_type IN ('insightful', 'concede_point')", name="valid_rating_type"
        ),
    )


class ReputationTransaction(Base):
    """Append-only ledger row. A user's reputation is the sum of their rows."""

    __tablename__ = "reputation_transactions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(USER_ID_LENGTH), index=True)
    points: Mapped[int] = mapped_column(Integer)
    reason: Mapped[str] = mapped_column(Text)
    # ReputationAction value; lets us detect repeated awards
    action_type: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    related_argument_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("arguments.id", ondelete="SET NULL"), nullable=True
    )
    granted_by_user_id: Mapped[Optional[str]] = mapped_column(
        String(USER_ID_LENGTH), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class UserProfile(Base):
    """Denormalized running reputation total, updated with each ledger row."""

    __tablename__ = "user_profiles"

    user_id: Mapped[str] = mapped_column(String(USER_ID_LENGTH), primary_key=True)
    username: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    reputation_score: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )
