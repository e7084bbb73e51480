"""View and like schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class ClientHintsPayload(BaseModel):
    """Automation flags reported by the client."""

    webdriver: bool = False
    headless: bool = False
    is_automated: bool = False


class TrackViewRequest(BaseModel):
    """Schema for recording one post view."""

    post_id: int | None = Field(None, description="Post being viewed")
    session_id: str | None = Field(None, max_length=128)
    scroll_percentage: float = Field(0.0, description="How far the reader scrolled (0-100)")
    view_duration_ms: int = Field(0, description="Time spent on the post in milliseconds")
    device_type: str = "unknown"
    screen_resolution: str | None = Field(None, max_length=32)
    referrer: str = ""
    view_source: str = "feed"
    idempotency_key: str | None = Field(
        None, max_length=128, description="Client token de-duplicating retried submissions"
    )
    client_hints: ClientHintsPayload = Field(default_factory=ClientHintsPayload)


class TrackViewResponse(BaseModel):
    post_id: int
    views: int
    bot_views: int
    is_bot: bool
    bot_score: int
    is_valid_view: bool
    duplicate: bool = False


class LikeToggleRequest(BaseModel):
    """Optional body for the like toggle."""

    client_hints: ClientHintsPayload = Field(default_factory=ClientHintsPayload)


class LikeToggleResponse(BaseModel):
    post_id: int
    is_liked: bool
    likes_count: int


class LikeEntry(BaseModel):
    user_id: str
    created_at: datetime


class LikesPage(BaseModel):
    """One page of a post's likes, newest first."""

    post_id: int
    likes: list[LikeEntry]
    total: int
    page: int
    limit: int
    has_more: bool


class ViewAnalyticsResponse(BaseModel):
    post_id: int
    view_count: int
    bot_view_count: int
    total_views: int
    unique_viewers: int
    bot_views: int
    valid_views: int
    avg_view_duration_ms: float
    avg_scroll_percentage: float
