"""Append-only ledger of raw view events."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    SmallInteger,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from engagement_engine.db.session import Base
from engagement_engine.db.time import utcnow

VIEW_SOURCES = ("feed", "profile", "direct", "search")
DEVICE_TYPES = ("desktop", "mobile", "tablet", "unknown")


class ViewEvent(Base):
    """Single view interaction as submitted by a client.

    Rows are never updated except for the ``counted`` flag, which records that
    the post counters already include this entry.
    """

    __tablename__ = "view_event"
    __table_args__ = (
        Index("ix_view_event_user_created", "user_id", "created_at"),
        Index("ix_view_event_ip_created", "ip_address", "created_at"),
        Index("ix_view_event_post_created", "post_id", "created_at"),
        Index("ix_view_event_counted", "counted"),
        UniqueConstraint(
            "post_id", "user_id", "idempotency_key", name="uq_view_event_idempotency"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("post.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    ip_address: Mapped[str] = mapped_column(String(64), nullable=False)
    user_agent: Mapped[str] = mapped_column(Text, nullable=False, default="")
    session_id: Mapped[str] = mapped_column(String(128), nullable=False)
    idempotency_key: Mapped[str | None] = mapped_column(String(128), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    is_bot: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    bot_score: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=0)
    scroll_percentage: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    view_duration_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_valid_view: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    device_type: Mapped[str] = mapped_column(String(16), nullable=False, default="unknown")
    screen_resolution: Mapped[str | None] = mapped_column(String(32), nullable=True)
    referrer: Mapped[str] = mapped_column(Text, nullable=False, default="")
    view_source: Mapped[str] = mapped_column(String(16), nullable=False, default="feed")

    counted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
