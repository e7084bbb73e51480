"""Version 1 API endpoints."""

from .endpoints import (
    audit_router,
    engagement_router,
    moderation_router,
    payments_router,
    posts_router,
    pricing_router,
)

__all__ = [
    "audit_router",
    "engagement_router",
    "moderation_router",
    "payments_router",
    "posts_router",
    "pricing_router",
]
