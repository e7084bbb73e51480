"""Post endpoints used by the authoring collaborator."""

from __future__ import annotations

import logging

from fastapi import APIRouter, status
from sqlalchemy.orm import Session

from engagement_engine.api.v1.dependencies import (
    CurrentPrincipalDep,
    SessionDep,
    ViewLedgerDep,
    raise_http,
)
from engagement_engine.core.cities import DEFAULT_CITY_TIERS
from engagement_engine.models import Post
from engagement_engine.repositories import PostRepository
from engagement_engine.schemas.post import PostCreate, PostResponse
from engagement_engine.services.errors import EngineValidationError, NotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["posts"])


def post_response(db: Session, post: Post) -> PostResponse:
    """Serialize a post together with the cardinality of its like set."""
    response = PostResponse.model_validate(post)
    return response.model_copy(
        update={"likes_count": PostRepository(db).likes_count(post.id)}
    )


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    post_data: PostCreate,
    principal: CurrentPrincipalDep,
    db: SessionDep,
) -> PostResponse:
    """Create a pending post with zeroed counters."""
    city = post_data.city or DEFAULT_CITY_TIERS.random_city()
    if not DEFAULT_CITY_TIERS.is_supported(city):
        raise_http(EngineValidationError(f"Unsupported city: {city}", code="INVALID_CITY"))

    post = PostRepository(db).create(author_id=principal.user_id, city=city, body=post_data.body)
    db.commit()
    db.refresh(post)
    logger.debug("Post %s created by %s in %s", post.id, principal.user_id, city)
    return post_response(db, post)


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: int,
    principal: CurrentPrincipalDep,
    db: SessionDep,
    ledger: ViewLedgerDep,
) -> PostResponse:
    """Return a post, applying any view entries still waiting to be counted."""
    ledger.reconcile(db, post_id=post_id)
    post = PostRepository(db).get_by_id(post_id, fresh=True)
    if post is None:
        raise_http(NotFoundError("Post not found", code="POST_NOT_FOUND"))
    return post_response(db, post)
