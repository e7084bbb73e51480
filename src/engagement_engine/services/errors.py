"""Exceptions raised by the engagement services.

Every error carries a stable ``code`` so clients can tell a cooldown apart
from a permanent conflict or a missing resource.
"""

from __future__ import annotations


class EngineError(RuntimeError):
    """Base exception for all engagement-engine failures."""

    default_code = "ENGINE_ERROR"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def as_detail(self) -> dict[str, str]:
        """Return the error body exposed to API clients."""
        return {"message": self.message, "code": self.code}


class EngineValidationError(EngineError):
    """Raised for malformed input rejected before any side effect."""

    default_code = "VALIDATION_FAILED"


class NotFoundError(EngineError):
    """Raised when a post or pricing rule does not exist."""

    default_code = "NOT_FOUND"


class ConflictError(EngineError):
    """Raised when the current state forbids the requested transition."""

    default_code = "CONFLICT"


class RateLimitedError(ConflictError):
    """Raised when an action is repeated inside its cool-down window."""

    default_code = "RATE_LIMIT_EXCEEDED"


class NotificationError(EngineError):
    """Raised by notifier backends when delivery fails."""

    default_code = "NOTIFICATION_FAILED"
