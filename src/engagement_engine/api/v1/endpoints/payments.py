"""Payout endpoints for finance staff."""

from __future__ import annotations

from fastapi import APIRouter, Query

from engagement_engine.api.v1.dependencies import (
    FinanceDep,
    ModerationServiceDep,
    SessionDep,
    raise_http,
)
from engagement_engine.schemas.moderation import PaymentHistory, PendingPayments
from engagement_engine.schemas.post import PostResponse
from engagement_engine.services.errors import EngineError

from .posts import post_response

router = APIRouter(prefix="/admin/payments", tags=["payments"])


@router.get("/pending", response_model=PendingPayments)
async def list_pending_payments(
    principal: FinanceDep,
    db: SessionDep,
    moderation: ModerationServiceDep,
    city: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> PendingPayments:
    """Approved posts awaiting payout, with the pending total."""
    data = moderation.list_pending_payments(db, city=city, page=page, limit=limit)
    return PendingPayments(
        posts=[post_response(db, post) for post in data["posts"]],
        total=data["total"],
        total_pending_revenue=float(data["total_pending_revenue"]),
        page=data["page"],
        limit=data["limit"],
        has_more=data["has_more"],
    )


@router.get("/history", response_model=PaymentHistory)
async def payment_history(
    principal: FinanceDep,
    db: SessionDep,
    moderation: ModerationServiceDep,
    timeframe: str = Query("30d"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> PaymentHistory:
    """Payouts made within the reporting window."""
    try:
        data = moderation.payment_history(db, timeframe=timeframe, page=page, limit=limit)
    except EngineError as exc:
        raise_http(exc)
    return PaymentHistory(
        posts=[post_response(db, post) for post in data["posts"]],
        timeframe=data["timeframe"],
        total_paid=float(data["total_paid"]),
        payment_count=data["payment_count"],
        average_payment=float(data["average_payment"]),
        page=data["page"],
        limit=data["limit"],
        has_more=data["has_more"],
    )


@router.patch("/{post_id}/pay", response_model=PostResponse)
async def pay_post(
    post_id: int,
    principal: FinanceDep,
    db: SessionDep,
    moderation: ModerationServiceDep,
) -> PostResponse:
    """Pay out an approved post at its freshly recomputed revenue."""
    try:
        post = await moderation.pay(db, post_id, principal.user_id, actor_role=principal.role.value)
    except EngineError as exc:
        raise_http(exc)
    return post_response(db, post)
