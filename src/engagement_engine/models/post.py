"""SQLAlchemy models for posts and their like set."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from engagement_engine.db.session import Base
from engagement_engine.db.time import utcnow

MODERATION_STATE_PENDING = "pending"
MODERATION_STATE_APPROVED = "approved"
MODERATION_STATE_REJECTED = "rejected"
MODERATION_STATE_PAID = "paid"

MODERATION_STATES = (
    MODERATION_STATE_PENDING,
    MODERATION_STATE_APPROVED,
    MODERATION_STATE_REJECTED,
    MODERATION_STATE_PAID,
)

MONEY = Numeric(14, 4)


class Post(Base):
    """Monetizable post with its engagement counters and payout state.

    Counters are only ever changed through SQL-side increments issued by the
    view ledger and like toggle; revenue columns cache the last computation.
    """

    __tablename__ = "post"
    __table_args__ = (
        CheckConstraint("bot_view_count <= view_count", name="ck_post_bot_views_subset"),
        CheckConstraint("bot_like_count >= 0", name="ck_post_bot_likes_non_negative"),
        Index("ix_post_moderation_state", "moderation_state"),
        Index("ix_post_city", "city"),
        Index("ix_post_paid_at", "paid_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    author_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    city: Mapped[str] = mapped_column(String(64), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    bot_view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    bot_like_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    view_revenue: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    like_revenue: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    total_revenue: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))

    # pending -> approved -> paid, or pending -> rejected.
    moderation_state: Mapped[str] = mapped_column(
        String(16), nullable=False, default=MODERATION_STATE_PENDING
    )
    approved_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    paid_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    paid_amount: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)

    # Soft-deactivation only; paid posts are never hard-deleted.
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)

    @property
    def approved(self) -> bool:
        """Return True once the post has passed moderation (including paid)."""
        return self.moderation_state in (MODERATION_STATE_APPROVED, MODERATION_STATE_PAID)

    @property
    def paid(self) -> bool:
        return self.moderation_state == MODERATION_STATE_PAID

    @property
    def rejected(self) -> bool:
        return self.moderation_state == MODERATION_STATE_REJECTED


class PostLike(Base):
    """Membership row meaning ``user_id`` currently likes ``post_id``.

    The composite primary key is the compare-and-swap point for like toggles.
    """

    __tablename__ = "post_like"
    __table_args__ = (Index("ix_post_like_post_created", "post_id", "created_at"),)

    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("post.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
