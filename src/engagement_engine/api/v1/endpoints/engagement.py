"""View tracking and like endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Header, Query

from engagement_engine.api.v1.dependencies import (
    CurrentPrincipalDep,
    LikeToggleDep,
    ModeratorDep,
    SessionDep,
    ViewLedgerDep,
    client_ip,
    raise_http,
)
from engagement_engine.schemas.engagement import (
    LikesPage,
    LikeToggleRequest,
    LikeToggleResponse,
    TrackViewRequest,
    TrackViewResponse,
    ViewAnalyticsResponse,
)
from engagement_engine.services.bot_classifier import ClientHints
from engagement_engine.services.errors import EngineError
from engagement_engine.services.likes import InteractionMetadata
from engagement_engine.services.view_ledger import ViewMetadata

router = APIRouter(prefix="/posts", tags=["engagement"])

ClientIpDep = Annotated[str, Depends(client_ip)]
UserAgentHeader = Annotated[str | None, Header()]


@router.post("/track-view", response_model=TrackViewResponse)
async def track_view(
    payload: TrackViewRequest,
    principal: CurrentPrincipalDep,
    db: SessionDep,
    ledger: ViewLedgerDep,
    ip_address: ClientIpDep,
    user_agent: UserAgentHeader = None,
) -> TrackViewResponse:
    """Record a view of a post and return its fresh counters."""
    hints = payload.client_hints
    metadata = ViewMetadata(
        ip_address=ip_address,
        user_agent=user_agent,
        session_id=payload.session_id or f"anon-{principal.user_id}",
        scroll_percentage=payload.scroll_percentage,
        view_duration_ms=payload.view_duration_ms,
        client_hints=ClientHints(hints.webdriver, hints.headless, hints.is_automated),
        device_type=payload.device_type,
        screen_resolution=payload.screen_resolution,
        referrer=payload.referrer,
        view_source=payload.view_source,
        idempotency_key=payload.idempotency_key,
    )
    try:
        record = await ledger.record_view(db, payload.post_id, principal.user_id, metadata)
    except EngineError as exc:
        raise_http(exc)
    return TrackViewResponse(
        post_id=payload.post_id or 0,
        views=record.views,
        bot_views=record.bot_views,
        is_bot=record.is_bot,
        bot_score=record.bot_score,
        is_valid_view=record.is_valid_view,
        duplicate=record.duplicate,
    )


@router.put("/{post_id}/like", response_model=LikeToggleResponse)
async def toggle_like(
    post_id: int,
    principal: CurrentPrincipalDep,
    db: SessionDep,
    likes: LikeToggleDep,
    ip_address: ClientIpDep,
    payload: LikeToggleRequest | None = None,
    user_agent: UserAgentHeader = None,
) -> LikeToggleResponse:
    """Like or unlike a post for the caller."""
    hints = payload.client_hints if payload is not None else None
    metadata = InteractionMetadata(
        ip_address=ip_address,
        user_agent=user_agent,
        client_hints=(
            ClientHints(hints.webdriver, hints.headless, hints.is_automated)
            if hints is not None
            else ClientHints()
        ),
    )
    try:
        result = await likes.toggle_like(db, post_id, principal.user_id, metadata)
    except EngineError as exc:
        raise_http(exc)
    return LikeToggleResponse(
        post_id=post_id, is_liked=result.is_liked, likes_count=result.likes_count
    )


@router.get("/{post_id}/likes", response_model=LikesPage)
async def get_likes(
    post_id: int,
    principal: CurrentPrincipalDep,
    db: SessionDep,
    likes: LikeToggleDep,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> LikesPage:
    """List who liked a post, newest first."""
    try:
        data = likes.get_likes(db, post_id, page=page, limit=limit)
    except EngineError as exc:
        raise_http(exc)
    return LikesPage.model_validate(data)


@router.get("/{post_id}/analytics", response_model=ViewAnalyticsResponse)
async def get_view_analytics(
    post_id: int,
    principal: ModeratorDep,
    db: SessionDep,
    ledger: ViewLedgerDep,
) -> ViewAnalyticsResponse:
    """Ledger-derived view analytics for a post."""
    try:
        figures = ledger.analytics(db, post_id)
    except EngineError as exc:
        raise_http(exc)
    return ViewAnalyticsResponse.model_validate(figures)
