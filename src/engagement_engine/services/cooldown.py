"""Cool-down bookkeeping used to rate limit engagement actions."""

from __future__ import annotations

import logging
import time
from threading import Lock
from typing import Any

import redis

from engagement_engine.core.settings import settings

logger = logging.getLogger(__name__)


class CooldownStore:
    """Atomic cool-down claims backed by Redis or an in-process cache.

    ``claim`` both checks and starts a cool-down, so two concurrent callers for
    the same key can never both succeed. Redis is used when ``REDIS_URL`` is
    configured; any Redis failure degrades to the local cache.
    """

    def __init__(self, redis_client: Any | None = None, *, redis_url: str | None = None) -> None:
        self._redis = redis_client
        if self._redis is None and redis_url:
            self._redis = redis.Redis.from_url(redis_url)
        self._cache: dict[str, float] = {}
        self._lock = Lock()

    def claim(self, key: str, ttl_seconds: float) -> bool:
        """Start a cool-down for ``key`` unless one is already running.

        Returns:
            True if the caller now holds the cool-down, False if it was active.
        """
        if ttl_seconds <= 0:
            return True
        if self._redis is not None:
            try:
                ttl_ms = max(1, int(ttl_seconds * 1000))
                return bool(self._redis.set(key, "1", nx=True, px=ttl_ms))
            except redis.RedisError as exc:
                logger.warning("Redis cool-down claim failed, using local cache: %s", exc)
                self._redis = None

        now = time.monotonic()
        with self._lock:
            expiry = self._cache.get(key)
            if expiry is not None and expiry > now:
                return False
            self._cache[key] = now + ttl_seconds
            self._purge_expired(now)
            return True

    def is_active(self, key: str) -> bool:
        """Return True if a cool-down key is currently active."""
        if self._redis is not None:
            try:
                return bool(self._redis.exists(key))
            except redis.RedisError as exc:
                logger.warning("Redis cool-down lookup failed, using local cache: %s", exc)
                self._redis = None
        now = time.monotonic()
        with self._lock:
            expiry = self._cache.get(key)
            if expiry is None:
                return False
            if expiry <= now:
                self._cache.pop(key, None)
                return False
            return True

    def release(self, key: str) -> None:
        """Drop a cool-down early, e.g. when the guarded action never happened."""
        if self._redis is not None:
            try:
                self._redis.delete(key)
                return
            except redis.RedisError as exc:
                logger.warning("Redis cool-down release failed, using local cache: %s", exc)
                self._redis = None
        with self._lock:
            self._cache.pop(key, None)

    def _purge_expired(self, now: float) -> None:
        # Called with the lock held.
        expired = [key for key, expiry in self._cache.items() if expiry <= now]
        for key in expired:
            del self._cache[key]

    # --- Specific cool-downs --------------------------------------------------------
    def claim_like_toggle(self, user_id: str, post_id: int, ttl_seconds: float) -> bool:
        return self.claim(f"likecool:{user_id}:{post_id}", ttl_seconds)

    def release_like_toggle(self, user_id: str, post_id: int) -> None:
        self.release(f"likecool:{user_id}:{post_id}")


class _CooldownStoreSingleton:
    """Process-wide cool-down store so cool-downs span requests."""

    _instance: CooldownStore | None = None

    @classmethod
    def get_instance(cls) -> CooldownStore:
        if cls._instance is None:
            cls._instance = CooldownStore(redis_url=settings.redis_url)
        return cls._instance


def get_cooldown_store() -> CooldownStore:
    """Return the shared cool-down store."""
    return _CooldownStoreSingleton.get_instance()
