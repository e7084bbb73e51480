"""View ledger: records view events and keeps post view counters in step.

Every submitted view is classified, written to the append-only ledger and
then applied to the post counters through :meth:`ViewLedger._apply_view`.
The ledger entry's ``counted`` flag is flipped in the same transaction as the
counter increment, so an entry is applied at most once; entries left
uncounted by a failed increment are picked up by :meth:`ViewLedger.reconcile`.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from engagement_engine.core.settings import settings
from engagement_engine.db.session import SessionLocal
from engagement_engine.db.time import utcnow
from engagement_engine.models.post import Post
from engagement_engine.models.view_event import DEVICE_TYPES, VIEW_SOURCES, ViewEvent
from engagement_engine.repositories.post_repo import PostRepository
from engagement_engine.repositories.view_repo import ViewEventRepository
from engagement_engine.services.bot_classifier import BotClassifier, ClientHints
from engagement_engine.services.errors import EngineValidationError, NotFoundError
from engagement_engine.services.revenue import RevenueService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViewMetadata:
    """Request metadata accompanying a view submission."""

    ip_address: str
    user_agent: str | None
    session_id: str
    scroll_percentage: float = 0.0
    view_duration_ms: int = 0
    client_hints: ClientHints = field(default_factory=ClientHints)
    device_type: str = "unknown"
    screen_resolution: str | None = None
    referrer: str = ""
    view_source: str = "feed"
    idempotency_key: str | None = None


@dataclass(frozen=True)
class ViewRecord:
    """Outcome of :meth:`ViewLedger.record_view` with fresh post counters."""

    views: int
    bot_views: int
    is_bot: bool
    bot_score: int
    is_valid_view: bool
    duplicate: bool = False
    degraded: bool = False


def _validate_metadata(metadata: ViewMetadata) -> None:
    if not metadata.ip_address:
        raise EngineValidationError("IP address is required", code="INVALID_METADATA")
    if not metadata.session_id:
        raise EngineValidationError("Session ID is required", code="INVALID_METADATA")
    if not 0 <= metadata.scroll_percentage <= 100:
        raise EngineValidationError(
            "Scroll percentage must be between 0 and 100", code="INVALID_METADATA"
        )
    if metadata.view_duration_ms < 0:
        raise EngineValidationError(
            "View duration cannot be negative", code="INVALID_METADATA"
        )
    if metadata.view_source not in VIEW_SOURCES:
        raise EngineValidationError(
            f"Unknown view source: {metadata.view_source}", code="INVALID_METADATA"
        )
    if metadata.device_type not in DEVICE_TYPES:
        raise EngineValidationError(
            f"Unknown device type: {metadata.device_type}", code="INVALID_METADATA"
        )


class ViewLedger:
    """Coordinates classification, ledger persistence and counter updates."""

    def __init__(
        self,
        classifier: BotClassifier | None = None,
        revenue: RevenueService | None = None,
    ) -> None:
        self.classifier = classifier or BotClassifier()
        self.revenue = revenue or RevenueService()

    @staticmethod
    def is_valid_view(is_bot: bool, scroll_percentage: float, view_duration_ms: int) -> bool:
        """Return True when a view qualifies as genuine, engaged reading."""
        return (
            not is_bot
            and scroll_percentage >= settings.valid_view_min_scroll
            and view_duration_ms >= settings.valid_view_min_duration_ms
        )

    async def record_view(
        self,
        db: Session,
        post_id: int | None,
        user_id: str,
        metadata: ViewMetadata,
        *,
        now: datetime | None = None,
    ) -> ViewRecord:
        """Record one view of ``post_id`` by ``user_id``.

        Args:
            db: Database session.
            post_id: Post being viewed.
            user_id: Authenticated viewer.
            metadata: Request and engagement metadata.
            now: Event time (defaults to current UTC time).

        Returns:
            The verdict for this view and the post counters after it.

        Raises:
            EngineValidationError: If the post id or metadata is malformed.
            NotFoundError: If the post does not exist.
        """
        if not post_id:
            raise EngineValidationError("Post ID is required", code="MISSING_POST_ID")
        _validate_metadata(metadata)

        posts = PostRepository(db)
        if posts.get_by_id(post_id) is None:
            raise NotFoundError("Post not found", code="POST_NOT_FOUND")

        views = ViewEventRepository(db)
        if metadata.idempotency_key:
            existing = views.find_by_idempotency_key(post_id, user_id, metadata.idempotency_key)
            if existing is not None:
                return self._duplicate(db, existing)

        now = now or utcnow()
        verdict = self.classifier.classify(
            metadata.ip_address,
            metadata.user_agent,
            user_id,
            metadata.client_hints,
            history=views,
            now=now,
        )
        valid = self.is_valid_view(
            verdict.is_bot, metadata.scroll_percentage, metadata.view_duration_ms
        )
        event = ViewEvent(
            post_id=post_id,
            user_id=user_id,
            ip_address=metadata.ip_address,
            user_agent=metadata.user_agent or "",
            session_id=metadata.session_id,
            idempotency_key=metadata.idempotency_key,
            created_at=now,
            is_bot=verdict.is_bot,
            bot_score=verdict.bot_score,
            scroll_percentage=metadata.scroll_percentage,
            view_duration_ms=metadata.view_duration_ms,
            is_valid_view=valid,
            device_type=metadata.device_type,
            screen_resolution=metadata.screen_resolution,
            referrer=metadata.referrer,
            view_source=metadata.view_source,
            counted=False,
        )

        event_id: int | None
        try:
            views.append(event)
            db.commit()
            event_id = event.id
        except IntegrityError:
            # Lost a race with a concurrent submission carrying the same key.
            db.rollback()
            if metadata.idempotency_key:
                existing = views.find_by_idempotency_key(
                    post_id, user_id, metadata.idempotency_key
                )
                if existing is not None:
                    return self._duplicate(db, existing)
            raise
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning(
                "Ledger write failed for post %s; counting view without audit entry: %s",
                post_id, exc,
            )
            event_id = None

        degraded = event_id is None
        try:
            self._apply_view(db, post_id, is_bot=verdict.is_bot, event_id=event_id)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            if degraded:
                raise
            logger.warning(
                "Counter update failed for view %s on post %s; left for reconciliation: %s",
                event_id, post_id, exc,
            )

        post = self._refresh_revenue(db, post_id)
        logger.debug(
            "Recorded view on post %s by %s (bot=%s score=%s valid=%s)",
            post_id, user_id, verdict.is_bot, verdict.bot_score, valid,
        )
        return ViewRecord(
            views=post.view_count,
            bot_views=post.bot_view_count,
            is_bot=verdict.is_bot,
            bot_score=verdict.bot_score,
            is_valid_view=valid,
            degraded=degraded,
        )

    def _duplicate(self, db: Session, existing: ViewEvent) -> ViewRecord:
        if not existing.counted:
            self.reconcile(db, post_id=existing.post_id)
        post = PostRepository(db).get_by_id(existing.post_id, fresh=True)
        if post is None:
            raise NotFoundError("Post not found", code="POST_NOT_FOUND")
        return ViewRecord(
            views=post.view_count,
            bot_views=post.bot_view_count,
            is_bot=existing.is_bot,
            bot_score=existing.bot_score,
            is_valid_view=existing.is_valid_view,
            duplicate=True,
        )

    @staticmethod
    def _apply_view(db: Session, post_id: int, *, is_bot: bool, event_id: int | None) -> bool:
        """Apply one view to the post counters.

        With a ledger entry the entry is claimed first and the increment only
        happens if this call flipped ``counted``. Without one (degraded mode)
        the counters are incremented directly. The caller commits.
        """
        if event_id is not None and not ViewEventRepository(db).mark_counted(event_id):
            return False
        return PostRepository(db).increment_views(post_id, is_bot=is_bot)

    def _refresh_revenue(self, db: Session, post_id: int) -> Post:
        post = PostRepository(db).get_by_id(post_id, fresh=True)
        if post is None:
            raise NotFoundError("Post not found", code="POST_NOT_FOUND")
        try:
            self.revenue.refresh(db, post)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning("Revenue refresh failed for post %s: %s", post_id, exc)
            post = PostRepository(db).get_by_id(post_id, fresh=True) or post
        return post

    def reconcile(
        self, db: Session, *, post_id: int | None = None, limit: int | None = None
    ) -> int:
        """Apply ledger entries whose counter increment never landed.

        Returns:
            Number of entries applied by this call.
        """
        views = ViewEventRepository(db)
        pending = views.list_uncounted(
            post_id=post_id, limit=limit or settings.ledger_reconcile_batch_size
        )
        applied = 0
        for entry in pending:
            if self._apply_view(db, entry.post_id, is_bot=entry.is_bot, event_id=entry.id):
                applied += 1
        if pending:
            db.commit()
        if applied:
            logger.warning("Reconciled %d uncounted view entries", applied)
        return applied

    def purge_expired(self, db: Session, *, now: datetime | None = None) -> int:
        """Drop counted ledger entries older than the retention window."""
        cutoff = (now or utcnow()) - timedelta(days=settings.view_retention_days)
        removed = ViewEventRepository(db).purge_before(cutoff)
        db.commit()
        if removed:
            logger.info("Purged %d view entries older than %s", removed, cutoff.isoformat())
        return removed

    def analytics(self, db: Session, post_id: int) -> dict[str, Any]:
        """Return ledger analytics together with the post's counters."""
        self.reconcile(db, post_id=post_id)
        post = PostRepository(db).get_by_id(post_id, fresh=True)
        if post is None:
            raise NotFoundError("Post not found", code="POST_NOT_FOUND")
        figures = ViewEventRepository(db).analytics(post_id)
        figures.update(
            post_id=post.id,
            view_count=post.view_count,
            bot_view_count=post.bot_view_count,
        )
        return figures


class LedgerMaintenanceWorker:
    """Periodically reconciles uncounted ledger entries and purges old ones."""

    def __init__(
        self,
        ledger: ViewLedger | None = None,
        session_factory: Callable[[], Session] = SessionLocal,
        *,
        interval_seconds: float | None = None,
    ) -> None:
        self.ledger = ledger or ViewLedger()
        self._session_factory = session_factory
        self.interval = max(
            0.1,
            float(
                settings.ledger_maintenance_interval_seconds
                if interval_seconds is None
                else interval_seconds
            ),
        )
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    async def start(self) -> None:
        """Start the background maintenance loop."""
        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background maintenance loop."""
        if self._task is None:
            return
        self._stopping.set()
        await self._task
        self._task = None

    def run_once(self) -> tuple[int, int]:
        """Run one reconcile-and-purge pass.

        Returns:
            ``(reconciled, purged)`` entry counts.
        """
        with self._session_factory() as db:
            reconciled = self.ledger.reconcile(db)
            purged = self.ledger.purge_expired(db)
        return reconciled, purged

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                await asyncio.to_thread(self.run_once)
            except SQLAlchemyError as e:
                logger.warning("LedgerMaintenanceWorker encountered database error: %s", e)
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval)
            except TimeoutError:
                continue
