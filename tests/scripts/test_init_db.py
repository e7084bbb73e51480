"""Tests for the database bootstrap script."""

from sqlalchemy import func, select

from engagement_engine.core.cities import DEFAULT_CITY_TIERS
from engagement_engine.db.session import Base
from engagement_engine.models import PricingRule
from engagement_engine.scripts import init_db as init_db_script


def test_init_db_seeds_pricing_once(monkeypatch, engine, session_factory, db_session) -> None:
    monkeypatch.setattr(init_db_script, "SessionLocal", session_factory)
    monkeypatch.setattr(
        init_db_script, "create_tables", lambda: Base.metadata.create_all(bind=engine)
    )

    assert init_db_script.init_db() == len(DEFAULT_CITY_TIERS.cities)
    assert init_db_script.init_db() == 0
    assert init_db_script.init_db(seed_pricing=False) == 0

    seeded = db_session.scalars(select(PricingRule.created_by).distinct()).all()
    assert seeded == ["system"]
    assert db_session.scalar(select(func.count()).select_from(PricingRule)) == len(
        DEFAULT_CITY_TIERS.cities
    )
