"""Admin moderation endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query

from engagement_engine.api.v1.dependencies import (
    ModerationServiceDep,
    ModeratorDep,
    SessionDep,
    raise_http,
)
from engagement_engine.schemas.moderation import AnalyticsOverview, RejectRequest
from engagement_engine.schemas.post import PostPage, PostResponse
from engagement_engine.services.errors import EngineError

from .posts import post_response

router = APIRouter(prefix="/admin/posts", tags=["moderation"])


@router.get("", response_model=PostPage)
async def list_posts(
    principal: ModeratorDep,
    db: SessionDep,
    moderation: ModerationServiceDep,
    status_filter: str = Query("pending", alias="status"),
    city: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> PostPage:
    """List posts for review with freshly computed revenue."""
    try:
        data = moderation.list_posts(db, status=status_filter, city=city, page=page, limit=limit)
    except EngineError as exc:
        raise_http(exc)
    return PostPage(
        posts=[post_response(db, post) for post in data["posts"]],
        total=data["total"],
        page=data["page"],
        limit=data["limit"],
        has_more=data["has_more"],
    )


@router.get("/analytics", response_model=AnalyticsOverview)
async def analytics_overview(
    principal: ModeratorDep,
    db: SessionDep,
    moderation: ModerationServiceDep,
    timeframe: str = Query("30d"),
) -> AnalyticsOverview:
    """Moderation counts and revenue totals for a reporting window."""
    try:
        data = moderation.analytics_overview(db, timeframe=timeframe)
    except EngineError as exc:
        raise_http(exc)
    return AnalyticsOverview.model_validate(data)


@router.patch("/{post_id}/approve", response_model=PostResponse)
async def approve_post(
    post_id: int,
    principal: ModeratorDep,
    db: SessionDep,
    moderation: ModerationServiceDep,
) -> PostResponse:
    """Approve a pending post and snapshot its revenue."""
    try:
        post = await moderation.approve(
            db, post_id, principal.user_id, actor_role=principal.role.value
        )
    except EngineError as exc:
        raise_http(exc)
    return post_response(db, post)


@router.patch("/{post_id}/reject", response_model=PostResponse)
async def reject_post(
    post_id: int,
    principal: ModeratorDep,
    db: SessionDep,
    moderation: ModerationServiceDep,
    payload: RejectRequest | None = None,
) -> PostResponse:
    """Reject a pending post and deactivate it."""
    reason = payload.reason if payload is not None else None
    try:
        post = await moderation.reject(
            db, post_id, principal.user_id, reason, actor_role=principal.role.value
        )
    except EngineError as exc:
        raise_http(exc)
    return post_response(db, post)
