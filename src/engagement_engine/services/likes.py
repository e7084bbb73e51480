"""Rate-limited like/unlike toggling."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from engagement_engine.core.settings import settings
from engagement_engine.db.time import utcnow
from engagement_engine.repositories.post_repo import PostRepository
from engagement_engine.repositories.view_repo import ViewEventRepository
from engagement_engine.services.bot_classifier import BotClassifier, ClientHints
from engagement_engine.services.cooldown import CooldownStore, get_cooldown_store
from engagement_engine.services.errors import (
    EngineValidationError,
    NotFoundError,
    RateLimitedError,
)
from engagement_engine.services.notifications import Notifier, get_notifier, like_event
from engagement_engine.services.revenue import RevenueService

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class InteractionMetadata:
    """Request metadata used to classify a like toggle."""

    ip_address: str
    user_agent: str | None
    client_hints: ClientHints = field(default_factory=ClientHints)


@dataclass(frozen=True)
class LikeResult:
    is_liked: bool
    likes_count: int
    is_bot: bool = False


class LikeToggle:
    """Flips like-set membership for a user on a post."""

    def __init__(
        self,
        cooldowns: CooldownStore | None = None,
        notifier: Notifier | None = None,
        classifier: BotClassifier | None = None,
        revenue: RevenueService | None = None,
    ) -> None:
        self.cooldowns = cooldowns or get_cooldown_store()
        self.notifier = notifier or get_notifier()
        self.classifier = classifier or BotClassifier()
        self.revenue = revenue or RevenueService()

    async def toggle_like(
        self,
        db: Session,
        post_id: int | None,
        user_id: str,
        metadata: InteractionMetadata,
    ) -> LikeResult:
        """Like the post if the user does not currently like it, else unlike it.

        Raises:
            EngineValidationError: If no post id was given.
            NotFoundError: If the post does not exist.
            RateLimitedError: If the user toggled this post within the cool-down.
        """
        if not post_id:
            raise EngineValidationError("Post ID is required", code="MISSING_POST_ID")
        posts = PostRepository(db)
        post = posts.get_by_id(post_id)
        if post is None:
            raise NotFoundError("Post not found", code="POST_NOT_FOUND")
        author_id = post.author_id

        if not self.cooldowns.claim_like_toggle(user_id, post_id, settings.like_cooldown_seconds):
            raise RateLimitedError("Please wait before toggling like again")

        verdict = self.classifier.classify(
            metadata.ip_address,
            metadata.user_agent,
            user_id,
            metadata.client_hints,
            history=ViewEventRepository(db),
        )

        try:
            if posts.remove_like(post_id, user_id):
                liked = False
                if verdict.is_bot:
                    posts.decrement_bot_likes(post_id)
                db.commit()
            else:
                try:
                    posts.add_like(post_id, user_id, utcnow())
                    if verdict.is_bot:
                        posts.increment_bot_likes(post_id)
                    db.commit()
                    liked = True
                except IntegrityError:
                    # A concurrent toggle inserted the row first; membership is settled.
                    db.rollback()
                    liked = True
        except SQLAlchemyError:
            db.rollback()
            self.cooldowns.release_like_toggle(user_id, post_id)
            raise

        likes_count = posts.likes_count(post_id)
        refreshed = posts.get_by_id(post_id, fresh=True)
        if refreshed is not None:
            try:
                self.revenue.refresh(db, refreshed)
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                logger.warning("Revenue refresh failed for post %s: %s", post_id, exc)

        logger.debug(
            "User %s %s post %s (bot=%s)",
            user_id, "liked" if liked else "unliked", post_id, verdict.is_bot,
        )
        if liked and user_id != author_id:
            await self.notifier.publish(like_event(author_id, user_id, post_id))
        return LikeResult(is_liked=liked, likes_count=likes_count, is_bot=verdict.is_bot)

    def get_likes(
        self, db: Session, post_id: int, *, page: int = 1, limit: int = 20
    ) -> dict[str, Any]:
        """Return one page of likes, newest first."""
        posts = PostRepository(db)
        if posts.get_by_id(post_id) is None:
            raise NotFoundError("Post not found", code="POST_NOT_FOUND")
        page = max(1, page)
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        likes = posts.list_likes(post_id, offset=(page - 1) * limit, limit=limit)
        total = posts.likes_count(post_id)
        return {
            "post_id": post_id,
            "likes": [{"user_id": like.user_id, "created_at": like.created_at} for like in likes],
            "total": total,
            "page": page,
            "limit": limit,
            "has_more": page * limit < total,
        }
