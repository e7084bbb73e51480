"""Moderation and payment schemas."""

from pydantic import BaseModel, Field

from .post import PostResponse


class RejectRequest(BaseModel):
    """Schema for rejecting a pending post."""

    reason: str | None = Field(None, max_length=1000)


class PendingPayments(BaseModel):
    """Approved posts awaiting payout."""

    posts: list[PostResponse]
    total: int
    total_pending_revenue: float
    page: int
    limit: int
    has_more: bool


class PaymentHistory(BaseModel):
    """Paid posts within a reporting window."""

    posts: list[PostResponse]
    timeframe: str
    total_paid: float
    payment_count: int
    average_payment: float
    page: int
    limit: int
    has_more: bool


class CityRevenue(BaseModel):
    city: str
    posts: int
    total_revenue: float


class AnalyticsOverview(BaseModel):
    """Moderation and revenue summary for a reporting window."""

    timeframe: str
    total_posts: int
    by_state: dict[str, int]
    total_views: int
    total_bot_views: int
    total_likes: int
    total_revenue: float
    approved_revenue: float
    top_cities: list[CityRevenue]
