"""Tests for revenue calculation and pricing resolution."""

from datetime import timedelta
from decimal import Decimal

import pytest

from engagement_engine.db.time import utcnow
from engagement_engine.models import Post, PostLike
from engagement_engine.services.moderation import ModerationService
from engagement_engine.services.pricing import PricingService
from engagement_engine.services.revenue import RevenueService, calculate_revenue


def _likers(count: int) -> tuple[str, ...]:
    return tuple(f"liker-{index}" for index in range(count))


def test_mumbai_scenario(db_session, make_post, make_pricing) -> None:
    rule = make_pricing("Mumbai", "0.10", "0.25")
    post = make_post(
        city="Mumbai", view_count=100, bot_view_count=10, bot_like_count=2, likers=_likers(20)
    )

    breakdown = RevenueService().compute(db_session, post)

    assert breakdown.view_revenue == Decimal("9.00")
    assert breakdown.like_revenue == Decimal("4.50")
    assert breakdown.total_revenue == Decimal("13.50")
    assert rule.effective_price_per_view == Decimal("0.1500")
    assert rule.effective_price_per_like == Decimal("0.3750")


def test_no_pricing_yields_zero_revenue(db_session, make_post) -> None:
    post = make_post(city="Jaipur", view_count=50, likers=_likers(5))

    breakdown = RevenueService().refresh(db_session, post)
    db_session.commit()

    assert breakdown.total_revenue == Decimal("0")
    assert breakdown.priced is False
    db_session.refresh(post)
    assert post.total_revenue == Decimal("0")


def test_recompute_is_pure(db_session, make_post, make_pricing) -> None:
    make_pricing("Delhi", "0.20", "0.50")
    post = make_post(city="Delhi", view_count=40, bot_view_count=5, likers=_likers(3))
    service = RevenueService()

    results = {service.compute(db_session, post) for _ in range(5)}

    assert len(results) == 1
    assert results.pop().total_revenue == Decimal("8.50")


def test_refresh_overwrites_rather_than_accumulates(db_session, make_post, make_pricing) -> None:
    make_pricing("Pune", "0.10", "0.25")
    post = make_post(city="Pune", view_count=10)
    service = RevenueService()

    service.refresh(db_session, post)
    service.refresh(db_session, post)
    db_session.commit()
    db_session.refresh(post)

    assert post.total_revenue == Decimal("1.00")


def test_bot_counts_above_totals_floor_at_zero(make_post, make_pricing) -> None:
    rule = make_pricing("Surat")
    post = make_post(city="Surat", view_count=3, bot_view_count=3, bot_like_count=4)

    breakdown = calculate_revenue(post, likes_count=1, rule=rule)

    assert breakdown.view_revenue == Decimal("0")
    assert breakdown.like_revenue == Decimal("0")


def test_overlapping_rules_prefer_most_recently_created(db_session, make_pricing) -> None:
    start = utcnow() - timedelta(hours=1)
    older = make_pricing(
        "Chennai", "0.10", "0.25", effective_from=start, created_at=start
    )
    newer = make_pricing(
        "Chennai", "0.30", "0.60", effective_from=start, created_at=start + timedelta(minutes=5)
    )

    resolved = PricingService().resolve_effective_rule(db_session, "Chennai")

    assert resolved is not None
    assert resolved.id == newer.id != older.id


def test_resolution_ignores_inactive_and_expired_rules(db_session, make_pricing) -> None:
    past = utcnow() - timedelta(days=2)
    make_pricing("Kolkata", effective_from=past, effective_to=past + timedelta(days=1))
    make_pricing("Kolkata", is_active=False)
    make_pricing("Kolkata", effective_from=utcnow() + timedelta(days=1))

    assert PricingService().resolve_effective_rule(db_session, "Kolkata") is None


@pytest.mark.asyncio
async def test_stale_refresh_leaves_paid_figures_alone(
    session_factory, db_session, make_post, make_pricing, notifier
) -> None:
    make_pricing("Mumbai", "0.10", "0.25")
    post = make_post(view_count=100)
    moderation = ModerationService(notifier=notifier)
    await moderation.approve(db_session, post.id, "mod-1")

    with session_factory() as other:
        # Loaded while still approved, refreshed only after payment landed.
        stale = other.get(Post, post.id)
        paid = await moderation.pay(db_session, post.id, "acct-1")
        db_session.add(PostLike(post_id=post.id, user_id="late-fan"))
        db_session.commit()

        breakdown = RevenueService().refresh(other, stale)
        other.commit()

    assert breakdown.total_revenue == Decimal("10.00")
    db_session.refresh(paid)
    assert paid.paid_amount == Decimal("10.00")
    assert paid.total_revenue == paid.paid_amount
    assert paid.like_revenue == Decimal("0")
