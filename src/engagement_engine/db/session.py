"""Engine and session factory for the engagement database."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from engagement_engine.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base for posts, likes, the view ledger, pricing and audit rows."""


# Model modules register their tables on Base.metadata at import time.
import engagement_engine.models  # noqa: E402,F401


def _connect_args(url: str) -> dict[str, Any]:
    # Sessions are used from the request threadpool and the maintenance worker thread.
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.database_url_sync,
    connect_args=_connect_args(settings.database_url_sync),
    pool_pre_ping=True,
    echo=settings.sql_debug,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a request-scoped session; services commit their own units of work."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables() -> None:
    """Create the engine schema without going through Alembic."""
    Base.metadata.create_all(bind=engine)
