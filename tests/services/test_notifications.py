"""Tests for webhook notification delivery."""

import httpx
import pytest
from jose import jwt

from engagement_engine.services.errors import NotificationError
from engagement_engine.services.notifications import Notifier, NotifierConfig, like_event

WEBHOOK = "http://notify.test/events"


def _notifier(handler, *, secret: str | None = None) -> Notifier:
    notifier = Notifier(NotifierConfig(webhook_url=WEBHOOK, shared_secret=secret, timeout_seconds=1))
    notifier._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return notifier


@pytest.mark.asyncio
async def test_send_posts_event_with_signed_token() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(202)

    notifier = _notifier(handler, secret="hook-secret")
    await notifier.send(like_event("author-1", "fan-1", 7))
    await notifier.close()

    assert len(seen) == 1
    assert str(seen[0].url) == WEBHOOK
    token = seen[0].headers["Authorization"].removeprefix("Bearer ")
    assert "jti" in jwt.decode(token, "hook-secret", algorithms=["HS256"])


@pytest.mark.asyncio
async def test_send_raises_on_error_status() -> None:
    notifier = _notifier(lambda request: httpx.Response(500))

    with pytest.raises(NotificationError):
        await notifier.send(like_event("author-1", "fan-1", 7))
    await notifier.close()


@pytest.mark.asyncio
async def test_publish_drops_failures(caplog) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    notifier = _notifier(handler)

    await notifier.publish(like_event("author-1", "fan-1", 7))
    await notifier.close()

    assert "Dropped like notification" in caplog.text


@pytest.mark.asyncio
async def test_disabled_notifier_sends_nothing() -> None:
    notifier = Notifier(NotifierConfig(webhook_url=None, shared_secret=None, timeout_seconds=1))
    assert notifier.enabled is False
    await notifier.send(like_event("author-1", "fan-1", 7))
    assert notifier._client is None
