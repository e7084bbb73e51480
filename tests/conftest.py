# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from decimal import Decimal
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from engagement_engine.core.cities import DEFAULT_CITY_TIERS
from engagement_engine.core.security import Role, create_access_token
from engagement_engine.db.session import Base
from engagement_engine.db.session import get_db as app_get_session
from engagement_engine.db.time import utcnow
from engagement_engine.main import app as fastapi_app
from engagement_engine.models import Post, PostLike, PricingRule
from engagement_engine.services.cooldown import CooldownStore, get_cooldown_store
from engagement_engine.services.notifications import NotificationEvent, get_notifier

TEST_DB_URL = "sqlite://"

BROWSER_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)


class RecordingNotifier:
    """Notifier stand-in that keeps published events in memory."""

    enabled = True

    def __init__(self) -> None:
        self.events: list[NotificationEvent] = []

    async def publish(self, event: NotificationEvent) -> None:
        self.events.append(event)

    async def close(self) -> None:
        return None

    def of_type(self, event_type: str) -> list[NotificationEvent]:
        return [event for event in self.events if event.type == event_type]


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db_session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def cooldowns() -> CooldownStore:
    """Fresh in-process cool-down store per test."""
    return CooldownStore()


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI,
    db_session: Session,
    notifier: RecordingNotifier,
    cooldowns: CooldownStore,
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_cooldown_store] = lambda: cooldowns
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)
        app.dependency_overrides.pop(get_notifier, None)
        app.dependency_overrides.pop(get_cooldown_store, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def auth_headers() -> Callable[..., dict[str, str]]:
    """Build bearer headers for a user id and role."""

    def _build(user_id: str, role: Role = Role.USER, **headers: str) -> dict[str, str]:
        token = create_access_token(user_id, role)
        return {"Authorization": f"Bearer {token}", "User-Agent": BROWSER_UA, **headers}

    return _build


@pytest.fixture()
def make_post(db_session: Session) -> Callable[..., Post]:
    """Persist a post with the given counters."""

    def _make(
        author_id: str = "author-1",
        city: str = "Mumbai",
        *,
        view_count: int = 0,
        bot_view_count: int = 0,
        bot_like_count: int = 0,
        likers: tuple[str, ...] = (),
        **fields: Any,
    ) -> Post:
        post = Post(
            author_id=author_id,
            city=city,
            body="post body",
            view_count=view_count,
            bot_view_count=bot_view_count,
            bot_like_count=bot_like_count,
            **fields,
        )
        db_session.add(post)
        db_session.flush()
        for user_id in likers:
            db_session.add(PostLike(post_id=post.id, user_id=user_id))
        db_session.commit()
        return post

    return _make


@pytest.fixture()
def make_pricing(db_session: Session) -> Callable[..., PricingRule]:
    """Persist a pricing rule effective from now."""

    def _make(
        city: str = "Mumbai",
        price_per_view: str = "0.10",
        price_per_like: str = "0.25",
        **fields: Any,
    ) -> PricingRule:
        now = utcnow()
        tier = DEFAULT_CITY_TIERS.tier_for(city)
        values: dict[str, Any] = {
            "city": city,
            "tier": tier.value,
            "multiplier": DEFAULT_CITY_TIERS.multipliers[tier],
            "price_per_view": Decimal(price_per_view),
            "price_per_like": Decimal(price_per_like),
            "effective_from": now,
            "created_at": now,
            "is_active": True,
            "created_by": "admin-1",
        }
        values.update(fields)
        rule = PricingRule(**values)
        db_session.add(rule)
        db_session.commit()
        return rule

    return _make
