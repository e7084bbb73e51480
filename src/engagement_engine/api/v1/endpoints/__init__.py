"""API endpoint modules for version 1."""

from .audit import router as audit_router
from .engagement import router as engagement_router
from .moderation import router as moderation_router
from .payments import router as payments_router
from .posts import router as posts_router
from .pricing import router as pricing_router

__all__ = [
    "audit_router",
    "engagement_router",
    "moderation_router",
    "payments_router",
    "posts_router",
    "pricing_router",
]
