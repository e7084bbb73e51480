"""Data access helpers for the view ledger."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import case, delete, distinct, func, or_, select, update
from sqlalchemy.orm import Session

from engagement_engine.models.view_event import ViewEvent

__all__ = ["ViewEventRepository"]


class ViewEventRepository:
    """Append-only access to ``view_event`` rows."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def append(self, event: ViewEvent) -> ViewEvent:
        """Insert a ledger entry and assign its identifier."""
        self.session.add(event)
        self.session.flush()
        return event

    def find_by_idempotency_key(
        self, post_id: int, user_id: str, idempotency_key: str
    ) -> ViewEvent | None:
        return self.session.scalar(
            select(ViewEvent).where(
                ViewEvent.post_id == post_id,
                ViewEvent.user_id == user_id,
                ViewEvent.idempotency_key == idempotency_key,
            )
        )

    def count_recent(self, user_id: str, ip_address: str, since: datetime) -> int:
        """Count entries from this user or this IP created at or after ``since``.

        Served by the ``(user_id, created_at)`` and ``(ip_address, created_at)``
        indexes.
        """
        return int(
            self.session.scalar(
                select(func.count())
                .select_from(ViewEvent)
                .where(
                    or_(ViewEvent.user_id == user_id, ViewEvent.ip_address == ip_address),
                    ViewEvent.created_at >= since,
                )
            )
            or 0
        )

    def mark_counted(self, event_id: int) -> bool:
        """Flip ``counted`` from False to True; only one caller can win."""
        result = self.session.execute(
            update(ViewEvent)
            .where(ViewEvent.id == event_id, ViewEvent.counted.is_(False))
            .values(counted=True)
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount)

    def list_uncounted(self, *, post_id: int | None = None, limit: int = 500) -> list[ViewEvent]:
        stmt = select(ViewEvent).where(ViewEvent.counted.is_(False))
        if post_id is not None:
            stmt = stmt.where(ViewEvent.post_id == post_id)
        stmt = stmt.order_by(ViewEvent.id).limit(limit)
        return list(self.session.execute(stmt).scalars())

    def purge_before(self, cutoff: datetime) -> int:
        """Delete counted entries older than ``cutoff``."""
        result = self.session.execute(
            delete(ViewEvent)
            .where(ViewEvent.created_at < cutoff, ViewEvent.counted.is_(True))
            .execution_options(synchronize_session=False)
        )
        return int(result.rowcount or 0)

    def analytics(self, post_id: int) -> dict[str, Any]:
        """Aggregate ledger figures for a single post."""
        row = self.session.execute(
            select(
                func.count(ViewEvent.id),
                func.count(distinct(ViewEvent.user_id)),
                func.coalesce(func.sum(case((ViewEvent.is_bot.is_(True), 1), else_=0)), 0),
                func.coalesce(
                    func.sum(case((ViewEvent.is_valid_view.is_(True), 1), else_=0)), 0
                ),
                func.avg(ViewEvent.view_duration_ms),
                func.avg(ViewEvent.scroll_percentage),
            ).where(ViewEvent.post_id == post_id)
        ).one()
        total, unique_viewers, bot_views, valid_views, avg_duration, avg_scroll = row
        return {
            "total_views": int(total or 0),
            "unique_viewers": int(unique_viewers or 0),
            "bot_views": int(bot_views or 0),
            "valid_views": int(valid_views or 0),
            "avg_view_duration_ms": round(float(avg_duration or 0.0), 2),
            "avg_scroll_percentage": round(float(avg_scroll or 0.0), 2),
        }
