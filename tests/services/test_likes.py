"""Tests for the like toggle."""

import pytest
from sqlalchemy.exc import OperationalError

from engagement_engine.core.settings import settings
from engagement_engine.models import Post
from engagement_engine.services.cooldown import CooldownStore
from engagement_engine.services.errors import NotFoundError, RateLimitedError
from engagement_engine.services.likes import InteractionMetadata, LikeToggle
from engagement_engine.services.revenue import RevenueService

BROWSER_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)
HUMAN = InteractionMetadata(ip_address="203.0.113.7", user_agent=BROWSER_UA)
BOT = InteractionMetadata(ip_address="203.0.113.8", user_agent="curl/8.4.0")


@pytest.fixture
def likes(notifier) -> LikeToggle:
    return LikeToggle(cooldowns=CooldownStore(), notifier=notifier)


@pytest.fixture
def no_cooldown(monkeypatch) -> None:
    monkeypatch.setattr(settings, "like_cooldown_seconds", 0.0)


@pytest.mark.asyncio
async def test_like_adds_membership(db_session, likes, make_post) -> None:
    post = make_post()

    result = await likes.toggle_like(db_session, post.id, "fan-1", HUMAN)

    assert result.is_liked is True
    assert result.likes_count == 1


@pytest.mark.asyncio
async def test_second_toggle_within_cooldown_is_rate_limited(db_session, likes, make_post) -> None:
    post = make_post()
    await likes.toggle_like(db_session, post.id, "fan-1", HUMAN)

    with pytest.raises(RateLimitedError) as excinfo:
        await likes.toggle_like(db_session, post.id, "fan-1", HUMAN)

    assert excinfo.value.code == "RATE_LIMIT_EXCEEDED"
    assert likes.get_likes(db_session, post.id)["total"] == 1


@pytest.mark.asyncio
async def test_cooldown_is_per_post(db_session, likes, make_post) -> None:
    first, second = make_post(), make_post()

    await likes.toggle_like(db_session, first.id, "fan-1", HUMAN)
    result = await likes.toggle_like(db_session, second.id, "fan-1", HUMAN)

    assert result.is_liked is True


@pytest.mark.asyncio
async def test_double_toggle_is_net_neutral(db_session, likes, make_post, no_cooldown) -> None:
    post = make_post()

    liked = await likes.toggle_like(db_session, post.id, "fan-1", HUMAN)
    unliked = await likes.toggle_like(db_session, post.id, "fan-1", HUMAN)

    assert (liked.is_liked, liked.likes_count) == (True, 1)
    assert (unliked.is_liked, unliked.likes_count) == (False, 0)


@pytest.mark.asyncio
async def test_likes_count_tracks_membership(db_session, likes, make_post, no_cooldown) -> None:
    post = make_post()
    sequence = ["a", "b", "a", "c", "b", "b", "d"]

    for user_id in sequence:
        result = await likes.toggle_like(db_session, post.id, user_id, HUMAN)

    # a: unliked, b: liked, c: liked, d: liked
    assert result.likes_count == 3
    page = likes.get_likes(db_session, post.id, limit=10)
    assert sorted(like["user_id"] for like in page["likes"]) == ["b", "c", "d"]


@pytest.mark.asyncio
async def test_bot_like_and_unlike_adjust_bot_counter(
    db_session, likes, make_post, no_cooldown
) -> None:
    post = make_post()

    await likes.toggle_like(db_session, post.id, "script", BOT)
    db_session.refresh(post)
    assert post.bot_like_count == 1

    await likes.toggle_like(db_session, post.id, "script", BOT)
    db_session.refresh(post)
    assert post.bot_like_count == 0


@pytest.mark.asyncio
async def test_bot_unlike_never_goes_negative(db_session, likes, make_post) -> None:
    post = make_post(likers=("script",), bot_like_count=0)

    result = await likes.toggle_like(db_session, post.id, "script", BOT)

    assert result.is_liked is False
    assert db_session.get(Post, post.id, populate_existing=True).bot_like_count == 0


@pytest.mark.asyncio
async def test_like_notifies_author(db_session, likes, make_post, notifier, no_cooldown) -> None:
    post = make_post(author_id="author-1")

    await likes.toggle_like(db_session, post.id, "fan-1", HUMAN)
    await likes.toggle_like(db_session, post.id, "fan-1", HUMAN)
    await likes.toggle_like(db_session, post.id, "author-1", HUMAN)

    events = notifier.of_type("like")
    assert len(events) == 1
    assert events[0].author_id == "author-1"
    assert events[0].payload == {"liker_id": "fan-1"}


@pytest.mark.asyncio
async def test_revenue_failure_keeps_like(
    db_session, likes, make_post, notifier, monkeypatch, caplog
) -> None:
    post = make_post(author_id="author-1")

    def _fail(self, db, post, *, at=None):
        raise OperationalError("UPDATE post", {}, Exception("lock timeout"))

    monkeypatch.setattr(RevenueService, "refresh", _fail)

    result = await likes.toggle_like(db_session, post.id, "fan-1", HUMAN)

    assert result.is_liked is True
    assert result.likes_count == 1
    assert "Revenue refresh failed" in caplog.text
    assert likes.get_likes(db_session, post.id)["total"] == 1
    assert len(notifier.of_type("like")) == 1


@pytest.mark.asyncio
async def test_unknown_post_is_not_found(db_session, likes) -> None:
    with pytest.raises(NotFoundError):
        await likes.toggle_like(db_session, 999, "fan-1", HUMAN)


def test_get_likes_pages_newest_first(db_session, likes, make_post) -> None:
    post = make_post(likers=("a", "b", "c"))

    first = likes.get_likes(db_session, post.id, page=1, limit=2)
    second = likes.get_likes(db_session, post.id, page=2, limit=2)

    assert first["total"] == 3
    assert first["has_more"] is True
    assert len(first["likes"]) == 2
    assert second["has_more"] is False
    assert len(second["likes"]) == 1
