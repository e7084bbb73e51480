"""Moderation and payment workflow for monetized posts.

Posts move ``pending -> approved -> paid`` or ``pending -> rejected``. Every
transition is a single conditional UPDATE keyed on the current state, so two
concurrent approvals or payments of the same post cannot both succeed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from engagement_engine.db.time import utcnow
from engagement_engine.models.post import (
    MODERATION_STATE_APPROVED,
    MODERATION_STATE_PAID,
    MODERATION_STATE_PENDING,
    MODERATION_STATE_REJECTED,
    MODERATION_STATES,
    Post,
    PostLike,
)
from engagement_engine.repositories.post_repo import PostRepository
from engagement_engine.services.audit import record_audit
from engagement_engine.services.errors import ConflictError, EngineValidationError, NotFoundError
from engagement_engine.services.notifications import (
    Notifier,
    approved_event,
    get_notifier,
    paid_event,
    rejected_event,
)
from engagement_engine.services.revenue import CENTS, RevenueService

logger = logging.getLogger(__name__)

TIMEFRAMES = {"7d": 7, "30d": 30, "90d": 90}
DEFAULT_TIMEFRAME = "30d"
DEFAULT_REJECTION_REASON = "No reason provided"
STATUS_FILTERS = (*MODERATION_STATES, "all")
MAX_PAGE_SIZE = 100
TOP_CITIES = 5


def timeframe_start(timeframe: str, now: datetime | None = None) -> datetime:
    """Return the start of a ``7d``/``30d``/``90d`` reporting window."""
    days = TIMEFRAMES.get(timeframe)
    if days is None:
        raise EngineValidationError(
            f"Timeframe must be one of {', '.join(TIMEFRAMES)}", code="INVALID_TIMEFRAME"
        )
    return (now or utcnow()) - timedelta(days=days)


def _money(value: Any) -> Decimal:
    return Decimal(str(value or 0)).quantize(CENTS)


def _page_bounds(page: int, limit: int) -> tuple[int, int]:
    page = max(1, page)
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    return page, limit


class ModerationService:
    """State machine guarding approval, rejection and payout of posts."""

    def __init__(
        self,
        revenue: RevenueService | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self.revenue = revenue or RevenueService()
        self.notifier = notifier or get_notifier()

    def _require_post(self, db: Session, post_id: int) -> Post:
        post = PostRepository(db).get_by_id(post_id, fresh=True)
        if post is None:
            raise NotFoundError("Post not found", code="POST_NOT_FOUND")
        return post

    # --- Transitions ------------------------------------------------------------
    async def approve(
        self, db: Session, post_id: int, moderator_id: str, *, actor_role: str = "admin"
    ) -> Post:
        """Approve a pending post and snapshot its revenue.

        Raises:
            NotFoundError: If the post does not exist.
            ConflictError: ``ALREADY_APPROVED`` or ``POST_REJECTED``.
        """
        self._require_post(db, post_id)
        now = utcnow()
        moved = PostRepository(db).transition(
            post_id,
            from_state=MODERATION_STATE_PENDING,
            values={
                "moderation_state": MODERATION_STATE_APPROVED,
                "approved_by": moderator_id,
                "approved_at": now,
            },
        )
        if not moved:
            db.rollback()
            post = self._require_post(db, post_id)
            if post.rejected:
                raise ConflictError("Cannot approve a rejected post", code="POST_REJECTED")
            raise ConflictError("Post is already approved", code="ALREADY_APPROVED")

        post = self._require_post(db, post_id)
        breakdown = self.revenue.refresh(db, post)
        record_audit(
            db,
            actor_id=moderator_id,
            actor_role=actor_role,
            action="APPROVE",
            resource="POST",
            resource_id=post_id,
            details={"total_revenue": str(breakdown.total_revenue), "city": post.city},
        )
        db.commit()
        logger.info("Post %s approved by %s (revenue %s)", post_id, moderator_id,
                    breakdown.total_revenue)
        await self.notifier.publish(
            approved_event(post.author_id, post_id, breakdown.total_revenue)
        )
        return self._require_post(db, post_id)

    async def reject(
        self,
        db: Session,
        post_id: int,
        moderator_id: str,
        reason: str | None = None,
        *,
        actor_role: str = "admin",
    ) -> Post:
        """Reject a pending post and deactivate it.

        Raises:
            NotFoundError: If the post does not exist.
            ConflictError: ``CANNOT_REJECT_APPROVED`` or ``ALREADY_REJECTED``.
        """
        self._require_post(db, post_id)
        reason = (reason or "").strip() or DEFAULT_REJECTION_REASON
        moved = PostRepository(db).transition(
            post_id,
            from_state=MODERATION_STATE_PENDING,
            values={
                "moderation_state": MODERATION_STATE_REJECTED,
                "rejected_by": moderator_id,
                "rejected_at": utcnow(),
                "rejection_reason": reason,
                "is_active": False,
            },
        )
        if not moved:
            db.rollback()
            post = self._require_post(db, post_id)
            if post.rejected:
                raise ConflictError("Post is already rejected", code="ALREADY_REJECTED")
            raise ConflictError("Cannot reject an approved post", code="CANNOT_REJECT_APPROVED")

        record_audit(
            db,
            actor_id=moderator_id,
            actor_role=actor_role,
            action="REJECT",
            resource="POST",
            resource_id=post_id,
            details={"reason": reason},
        )
        db.commit()
        post = self._require_post(db, post_id)
        logger.info("Post %s rejected by %s", post_id, moderator_id)
        await self.notifier.publish(rejected_event(post.author_id, post_id, reason))
        return post

    async def pay(
        self, db: Session, post_id: int, payer_id: str, *, actor_role: str = "accountant"
    ) -> Post:
        """Mark an approved post as paid at its freshly recomputed revenue.

        Raises:
            NotFoundError: If the post does not exist.
            ConflictError: ``ALREADY_PAID`` or ``NOT_APPROVED``.
        """
        post = self._require_post(db, post_id)
        self._ensure_payable(post)

        breakdown = self.revenue.compute(db, post)
        moved = PostRepository(db).transition(
            post_id,
            from_state=MODERATION_STATE_APPROVED,
            values={
                "moderation_state": MODERATION_STATE_PAID,
                "paid_by": payer_id,
                "paid_at": utcnow(),
                "paid_amount": breakdown.total_revenue,
                "view_revenue": breakdown.view_revenue,
                "like_revenue": breakdown.like_revenue,
                "total_revenue": breakdown.total_revenue,
            },
        )
        if not moved:
            db.rollback()
            self._ensure_payable(self._require_post(db, post_id))
            raise ConflictError("Post is already paid", code="ALREADY_PAID")

        record_audit(
            db,
            actor_id=payer_id,
            actor_role=actor_role,
            action="PROCESS_PAYMENT",
            resource="PAYMENT",
            resource_id=post_id,
            details={"amount": str(breakdown.total_revenue), "city": post.city},
        )
        db.commit()
        post = self._require_post(db, post_id)
        logger.info("Post %s paid %s by %s", post_id, breakdown.total_revenue, payer_id)
        await self.notifier.publish(paid_event(post.author_id, post_id, breakdown.total_revenue))
        return post

    @staticmethod
    def _ensure_payable(post: Post) -> None:
        if post.paid:
            raise ConflictError("Post is already paid", code="ALREADY_PAID")
        if not post.approved:
            raise ConflictError(
                "Post must be approved before payment", code="NOT_APPROVED"
            )

    # --- Listings ---------------------------------------------------------------
    def list_posts(
        self,
        db: Session,
        *,
        status: str = "all",
        city: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict[str, Any]:
        """List posts for review, refreshing cached revenue for the page."""
        if status not in STATUS_FILTERS:
            raise EngineValidationError(f"Unknown status: {status}", code="INVALID_STATUS")
        page, limit = _page_bounds(page, limit)
        stmt = select(Post)
        if status != "all":
            stmt = stmt.where(Post.moderation_state == status)
        if city:
            stmt = stmt.where(Post.city == city)
        total = int(db.scalar(select(func.count()).select_from(stmt.subquery())) or 0)
        posts = list(
            db.execute(
                stmt.order_by(Post.created_at.desc(), Post.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            ).scalars()
        )
        for post in posts:
            self.revenue.refresh(db, post)
        db.commit()
        return {
            "posts": posts,
            "total": total,
            "page": page,
            "limit": limit,
            "has_more": page * limit < total,
        }

    def list_pending_payments(
        self, db: Session, *, city: str | None = None, page: int = 1, limit: int = 20
    ) -> dict[str, Any]:
        """Approved, unpaid posts with freshly computed revenue."""
        page, limit = _page_bounds(page, limit)
        stmt = select(Post).where(Post.moderation_state == MODERATION_STATE_APPROVED)
        if city:
            stmt = stmt.where(Post.city == city)
        pending = list(db.execute(stmt.order_by(Post.approved_at, Post.id)).scalars())
        total_pending = Decimal("0")
        for post in pending:
            total_pending += self.revenue.refresh(db, post).total_revenue
        db.commit()
        start = (page - 1) * limit
        return {
            "posts": pending[start:start + limit],
            "total": len(pending),
            "total_pending_revenue": total_pending.quantize(CENTS),
            "page": page,
            "limit": limit,
            "has_more": start + limit < len(pending),
        }

    def payment_history(
        self,
        db: Session,
        *,
        timeframe: str = DEFAULT_TIMEFRAME,
        page: int = 1,
        limit: int = 20,
    ) -> dict[str, Any]:
        """Paid posts within the timeframe plus payout totals."""
        since = timeframe_start(timeframe)
        page, limit = _page_bounds(page, limit)
        window = (Post.moderation_state == MODERATION_STATE_PAID, Post.paid_at >= since)
        total_amount, count, average = db.execute(
            select(
                func.coalesce(func.sum(Post.paid_amount), 0),
                func.count(Post.id),
                func.avg(Post.paid_amount),
            ).where(*window)
        ).one()
        posts = list(
            db.execute(
                select(Post)
                .where(*window)
                .order_by(Post.paid_at.desc(), Post.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            ).scalars()
        )
        return {
            "posts": posts,
            "timeframe": timeframe,
            "total_paid": _money(total_amount),
            "payment_count": int(count or 0),
            "average_payment": _money(average),
            "page": page,
            "limit": limit,
            "has_more": page * limit < int(count or 0),
        }

    def analytics_overview(
        self, db: Session, *, timeframe: str = DEFAULT_TIMEFRAME
    ) -> dict[str, Any]:
        """Moderation and revenue summary for posts created within the timeframe."""
        since = timeframe_start(timeframe)
        by_state = {state: 0 for state in MODERATION_STATES}
        for state, count in db.execute(
            select(Post.moderation_state, func.count(Post.id))
            .where(Post.created_at >= since)
            .group_by(Post.moderation_state)
        ).all():
            by_state[state] = int(count)

        monetized = (
            Post.created_at >= since,
            Post.moderation_state.in_((MODERATION_STATE_APPROVED, MODERATION_STATE_PAID)),
        )
        views, bot_views, revenue = db.execute(
            select(
                func.coalesce(func.sum(Post.view_count), 0),
                func.coalesce(func.sum(Post.bot_view_count), 0),
                func.coalesce(func.sum(Post.total_revenue), 0),
            ).where(Post.created_at >= since)
        ).one()
        likes = db.scalar(
            select(func.count())
            .select_from(PostLike)
            .join(Post, Post.id == PostLike.post_id)
            .where(Post.created_at >= since)
        )
        approved_revenue = db.scalar(
            select(func.coalesce(func.sum(Post.total_revenue), 0)).where(*monetized)
        )
        top_cities = [
            {"city": city, "posts": int(count), "total_revenue": _money(total)}
            for city, count, total in db.execute(
                select(Post.city, func.count(Post.id), func.sum(Post.total_revenue))
                .where(*monetized)
                .group_by(Post.city)
                .order_by(func.sum(Post.total_revenue).desc(), Post.city)
                .limit(TOP_CITIES)
            ).all()
        ]
        return {
            "timeframe": timeframe,
            "total_posts": sum(by_state.values()),
            "by_state": by_state,
            "total_views": int(views or 0),
            "total_bot_views": int(bot_views or 0),
            "total_likes": int(likes or 0),
            "total_revenue": _money(revenue),
            "approved_revenue": _money(approved_revenue),
            "top_cities": top_cities,
        }
