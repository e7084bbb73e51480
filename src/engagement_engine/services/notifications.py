"""Fire-and-forget notifications to post authors.

Events are delivered as JSON to an external webhook owned by the notification
collaborator. Delivery problems are logged and never propagate to the
mutation that triggered them.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import time
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Any

import httpx
from jose import jwt

from engagement_engine.core.settings import settings
from engagement_engine.db.time import utcnow
from engagement_engine.services.errors import NotificationError

logger = logging.getLogger(__name__)

EVENT_LIKE = "like"
EVENT_APPROVED = "approved"
EVENT_REJECTED = "rejected"
EVENT_PAID = "paid"


@dataclass(frozen=True)
class NotificationEvent:
    """Event addressed to a post author."""

    type: str
    author_id: str
    post_id: int
    payload: dict[str, Any] = field(default_factory=dict)
    created_at: str = field(default_factory=lambda: utcnow().isoformat())

    def to_json(self) -> dict[str, Any]:
        return asdict(self)


def like_event(author_id: str, liker_id: str, post_id: int) -> NotificationEvent:
    return NotificationEvent(EVENT_LIKE, author_id, post_id, {"liker_id": liker_id})


def approved_event(author_id: str, post_id: int, total_revenue: Decimal) -> NotificationEvent:
    return NotificationEvent(
        EVENT_APPROVED, author_id, post_id, {"total_revenue": str(total_revenue)}
    )


def rejected_event(author_id: str, post_id: int, reason: str) -> NotificationEvent:
    return NotificationEvent(EVENT_REJECTED, author_id, post_id, {"reason": reason})


def paid_event(author_id: str, post_id: int, amount: Decimal) -> NotificationEvent:
    return NotificationEvent(EVENT_PAID, author_id, post_id, {"amount": str(amount)})


@dataclass(frozen=True)
class NotifierConfig:
    """Immutable configuration for webhook delivery."""

    webhook_url: str | None
    shared_secret: str | None
    timeout_seconds: float

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)


def load_notifier_config() -> NotifierConfig:
    """Build configuration object from global settings."""
    return NotifierConfig(
        webhook_url=settings.notification_webhook_url,
        shared_secret=settings.notification_shared_secret,
        timeout_seconds=float(settings.notification_timeout_seconds),
    )


class Notifier:
    """Webhook client for the notification collaborator."""

    def __init__(self, config: NotifierConfig | None = None) -> None:
        self.config = config or load_notifier_config()
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                )
        return self._client

    def _build_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.shared_secret:
            now = int(time.time())
            token = jwt.encode(
                {"iat": now, "exp": now + 60, "jti": secrets.token_hex(8)},
                self.config.shared_secret,
                algorithm="HS256",
            )
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def send(self, event: NotificationEvent) -> None:
        """Deliver an event, raising on failure."""
        if not self.enabled:
            logger.debug("Notifications disabled; dropping %s event for post %s",
                         event.type, event.post_id)
            return
        client = await self._ensure_client()
        try:
            response = await client.post(
                self.config.webhook_url or "",
                json=event.to_json(),
                headers=self._build_headers(),
            )
        except httpx.HTTPError as exc:
            raise NotificationError(f"Notification delivery failed: {exc}") from exc
        if response.status_code >= 400:
            raise NotificationError(
                f"Notification webhook answered {response.status_code}",
            )

    async def publish(self, event: NotificationEvent) -> None:
        """Deliver an event, logging instead of raising on failure."""
        try:
            await self.send(event)
        except NotificationError as exc:
            logger.warning(
                "Dropped %s notification for post %s: %s", event.type, event.post_id, exc
            )

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


class _NotifierSingleton:
    """Singleton wrapper for Notifier."""

    _instance: Notifier | None = None

    @classmethod
    def get_instance(cls) -> Notifier:
        if cls._instance is None:
            cls._instance = Notifier()
        return cls._instance


def get_notifier() -> Notifier:
    """Return a singleton notifier instance."""
    return _NotifierSingleton.get_instance()
