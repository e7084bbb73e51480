"""Repositories wrapping SQLAlchemy access to engine tables."""

from .post_repo import PostRepository
from .view_repo import ViewEventRepository

__all__ = ["PostRepository", "ViewEventRepository"]
