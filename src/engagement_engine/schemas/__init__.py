"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .audit import AuditEntryResponse
from .engagement import (
    ClientHintsPayload,
    LikesPage,
    LikeToggleRequest,
    LikeToggleResponse,
    TrackViewRequest,
    TrackViewResponse,
    ViewAnalyticsResponse,
)
from .moderation import AnalyticsOverview, PaymentHistory, PendingPayments, RejectRequest
from .post import PostCreate, PostPage, PostResponse
from .pricing import (
    PricingCreate,
    PricingInitResponse,
    PricingRuleResponse,
    PricingStats,
    PricingUpdate,
    PricingWriteResponse,
)

__all__ = [
    "AuditEntryResponse",
    "ClientHintsPayload", "LikesPage", "LikeToggleRequest", "LikeToggleResponse",
    "TrackViewRequest", "TrackViewResponse", "ViewAnalyticsResponse",
    "AnalyticsOverview", "PaymentHistory", "PendingPayments", "RejectRequest",
    "PostCreate", "PostPage", "PostResponse",
    "PricingCreate", "PricingInitResponse", "PricingRuleResponse", "PricingStats",
    "PricingUpdate", "PricingWriteResponse",
]
