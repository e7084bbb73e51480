"""Revenue calculation from engagement counters and city pricing."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from engagement_engine.models.post import Post
from engagement_engine.models.pricing import PricingRule
from engagement_engine.repositories.post_repo import PostRepository
from engagement_engine.services.pricing import PricingService

logger = logging.getLogger(__name__)

CENTS = Decimal("0.0001")
ZERO = Decimal("0.0000")


@dataclass(frozen=True)
class RevenueBreakdown:
    """Monetizable revenue split by engagement type."""

    view_revenue: Decimal
    like_revenue: Decimal
    total_revenue: Decimal
    priced: bool = True

    @classmethod
    def zero(cls) -> RevenueBreakdown:
        return cls(ZERO, ZERO, ZERO, priced=False)


def calculate_revenue(
    post: Post, likes_count: int, rule: PricingRule | None
) -> RevenueBreakdown:
    """Recompute revenue for ``post`` from its current counters.

    Raw (not multiplier-adjusted) prices apply. Bot views and bot likes are
    excluded; a post whose city has no effective rule earns nothing.
    """
    if rule is None:
        return RevenueBreakdown.zero()
    billable_views = max(0, post.view_count - post.bot_view_count)
    billable_likes = max(0, likes_count - post.bot_like_count)
    view_revenue = (billable_views * Decimal(rule.price_per_view)).quantize(CENTS)
    like_revenue = (billable_likes * Decimal(rule.price_per_like)).quantize(CENTS)
    return RevenueBreakdown(
        view_revenue=view_revenue,
        like_revenue=like_revenue,
        total_revenue=(view_revenue + like_revenue).quantize(CENTS),
    )


def _stored(post: Post) -> RevenueBreakdown:
    return RevenueBreakdown(
        view_revenue=Decimal(post.view_revenue),
        like_revenue=Decimal(post.like_revenue),
        total_revenue=Decimal(post.total_revenue),
    )


class RevenueService:
    """Resolves pricing for a post and keeps its cached revenue current."""

    def __init__(self, pricing: PricingService | None = None) -> None:
        self.pricing = pricing or PricingService()

    def compute(
        self, db: Session, post: Post, *, at: datetime | None = None
    ) -> RevenueBreakdown:
        """Calculate revenue without touching the cached columns."""
        rule = self.pricing.resolve_effective_rule(db, post.city, at)
        likes = PostRepository(db).likes_count(post.id)
        return calculate_revenue(post, likes, rule)

    def refresh(self, db: Session, post: Post, *, at: datetime | None = None) -> RevenueBreakdown:
        """Recompute revenue and overwrite the cache on ``post``.

        Paid posts keep the figures they were paid on. The caller owns the
        transaction; nothing is committed here.
        """
        if post.paid:
            return _stored(post)
        breakdown = self.compute(db, post, at=at)
        posts = PostRepository(db)
        stored = posts.store_revenue(
            post.id,
            view_revenue=breakdown.view_revenue,
            like_revenue=breakdown.like_revenue,
            total_revenue=breakdown.total_revenue,
        )
        if not stored:
            # Paid since ``post`` was loaded; report the figures it was paid on.
            current = posts.get_by_id(post.id, fresh=True)
            return _stored(current if current is not None else post)
        # Keep the loaded object in step without scheduling a second UPDATE.
        set_committed_value(post, "view_revenue", breakdown.view_revenue)
        set_committed_value(post, "like_revenue", breakdown.like_revenue)
        set_committed_value(post, "total_revenue", breakdown.total_revenue)
        if not breakdown.priced:
            logger.debug("No effective pricing for city %s; post %s unpriced", post.city, post.id)
        return breakdown
