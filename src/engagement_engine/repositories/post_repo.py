"""Data access helpers for working with posts and their like sets."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.orm import Session

from engagement_engine.models.post import MODERATION_STATE_PAID, Post, PostLike

__all__ = ["PostRepository"]


class PostRepository:
    """Thin wrapper around database access for post entities.

    Counter and state mutations are issued as single SQL statements so that
    concurrent requests never overwrite each other's increments.
    """

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def get_by_id(self, post_id: int, *, fresh: bool = False) -> Post | None:
        """Return a post by identifier.

        Args:
            post_id: Post identifier.
            fresh: Reload column values from the database, discarding any state
                cached in the identity map.
        """
        return self.session.get(Post, post_id, populate_existing=fresh)

    def create(self, *, author_id: str, city: str, body: str) -> Post:
        """Insert a new pending post with zeroed counters."""
        post = Post(author_id=author_id, city=city, body=body)
        self.session.add(post)
        self.session.flush()
        return post

    # --- Counters ---------------------------------------------------------------
    def increment_views(self, post_id: int, *, is_bot: bool) -> bool:
        """Add one view (and one bot view when flagged) to the post counters."""
        values: dict[str, Any] = {"view_count": Post.view_count + 1}
        if is_bot:
            values["bot_view_count"] = Post.bot_view_count + 1
        result = self.session.execute(
            update(Post)
            .where(Post.id == post_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount)

    def increment_bot_likes(self, post_id: int) -> None:
        self.session.execute(
            update(Post)
            .where(Post.id == post_id)
            .values(bot_like_count=Post.bot_like_count + 1)
            .execution_options(synchronize_session=False)
        )

    def decrement_bot_likes(self, post_id: int) -> None:
        """Decrement the bot like counter, never going below zero."""
        self.session.execute(
            update(Post)
            .where(Post.id == post_id)
            .values(
                bot_like_count=case(
                    (Post.bot_like_count > 0, Post.bot_like_count - 1),
                    else_=0,
                )
            )
            .execution_options(synchronize_session=False)
        )

    def store_revenue(
        self,
        post_id: int,
        *,
        view_revenue: Decimal,
        like_revenue: Decimal,
        total_revenue: Decimal,
    ) -> bool:
        """Overwrite the cached revenue columns unless the post has been paid.

        Returns:
            True if the row was updated, False if the post is paid or missing.
        """
        result = self.session.execute(
            update(Post)
            .where(Post.id == post_id, Post.moderation_state != MODERATION_STATE_PAID)
            .values(
                view_revenue=view_revenue,
                like_revenue=like_revenue,
                total_revenue=total_revenue,
            )
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount)

    # --- Likes ------------------------------------------------------------------
    def likes_count(self, post_id: int) -> int:
        return int(
            self.session.scalar(
                select(func.count()).select_from(PostLike).where(PostLike.post_id == post_id)
            )
            or 0
        )

    def has_like(self, post_id: int, user_id: str) -> bool:
        return self.session.get(PostLike, (post_id, user_id)) is not None

    def add_like(self, post_id: int, user_id: str, created_at: datetime) -> None:
        """Insert a membership row; raises IntegrityError if it already exists."""
        self.session.add(PostLike(post_id=post_id, user_id=user_id, created_at=created_at))
        self.session.flush()

    def remove_like(self, post_id: int, user_id: str) -> bool:
        """Delete a membership row, returning True if this call removed it."""
        result = self.session.execute(
            delete(PostLike).where(PostLike.post_id == post_id, PostLike.user_id == user_id)
        )
        return bool(result.rowcount)

    def list_likes(self, post_id: int, *, offset: int, limit: int) -> list[PostLike]:
        """Return likes newest first."""
        result = self.session.execute(
            select(PostLike)
            .where(PostLike.post_id == post_id)
            .order_by(PostLike.created_at.desc(), PostLike.user_id)
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars())

    # --- Moderation state -------------------------------------------------------
    def transition(self, post_id: int, *, from_state: str, values: dict[str, Any]) -> bool:
        """Atomically apply ``values`` only if the post is still in ``from_state``.

        Returns:
            True if this call performed the transition.
        """
        result = self.session.execute(
            update(Post)
            .where(Post.id == post_id, Post.moderation_state == from_state)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount)
