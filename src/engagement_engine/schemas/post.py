"""Post-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class PostCreate(BaseModel):
    """Schema submitted by the authoring collaborator."""

    body: str = Field("", max_length=5000, description="Opaque post content")
    city: str | None = Field(None, description="Supported city; assigned randomly when omitted")


class PostResponse(BaseModel):
    """Schema for post counters, revenue and moderation state."""

    id: int
    author_id: str
    city: str
    body: str
    created_at: datetime
    view_count: int
    bot_view_count: int
    bot_like_count: int
    likes_count: int = 0
    view_revenue: float
    like_revenue: float
    total_revenue: float
    moderation_state: str
    approved: bool
    paid: bool
    approved_by: str | None = None
    approved_at: datetime | None = None
    rejected_by: str | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None
    paid_by: str | None = None
    paid_at: datetime | None = None
    paid_amount: float | None = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class PostPage(BaseModel):
    """One page of posts for the review queue."""

    posts: list[PostResponse]
    total: int
    page: int
    limit: int
    has_more: bool
