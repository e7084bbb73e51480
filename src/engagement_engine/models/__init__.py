"""SQLAlchemy models for the engagement engine."""

from .audit import AuditLog
from .post import Post, PostLike
from .pricing import PricingRule
from .view_event import ViewEvent

__all__ = [
    "AuditLog",
    "Post", "PostLike",
    "PricingRule",
    "ViewEvent",
]
