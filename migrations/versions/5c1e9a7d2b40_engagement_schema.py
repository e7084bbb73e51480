"""engagement schema

Revision ID: 5c1e9a7d2b40
Revises:
Create Date: 2026-10-19 09:12:44.318206

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c1e9a7d2b40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MONEY = sa.Numeric(14, 4)
PRICE = sa.Numeric(10, 4)


def upgrade() -> None:
    """Create posts, likes, the view ledger, pricing rules and the audit log."""
    op.create_table(
        "post",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("author_id", sa.String(length=64), nullable=False),
        sa.Column("city", sa.String(length=64), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("view_count", sa.Integer(), nullable=False),
        sa.Column("bot_view_count", sa.Integer(), nullable=False),
        sa.Column("bot_like_count", sa.Integer(), nullable=False),
        sa.Column("view_revenue", MONEY, nullable=False),
        sa.Column("like_revenue", MONEY, nullable=False),
        sa.Column("total_revenue", MONEY, nullable=False),
        sa.Column("moderation_state", sa.String(length=16), nullable=False),
        sa.Column("approved_by", sa.String(length=64), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_by", sa.String(length=64), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("paid_by", sa.String(length=64), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("paid_amount", MONEY, nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.CheckConstraint("bot_view_count <= view_count", name="ck_post_bot_views_subset"),
        sa.CheckConstraint("bot_like_count >= 0", name="ck_post_bot_likes_non_negative"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_post_author_id", "post", ["author_id"])
    op.create_index("ix_post_moderation_state", "post", ["moderation_state"])
    op.create_index("ix_post_city", "post", ["city"])
    op.create_index("ix_post_paid_at", "post", ["paid_at"])

    op.create_table(
        "post_like",
        sa.Column("post_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["post_id"], ["post.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("post_id", "user_id"),
    )
    op.create_index("ix_post_like_post_created", "post_like", ["post_id", "created_at"])

    op.create_table(
        "view_event",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("post_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("ip_address", sa.String(length=64), nullable=False),
        sa.Column("user_agent", sa.Text(), nullable=False),
        sa.Column("session_id", sa.String(length=128), nullable=False),
        sa.Column("idempotency_key", sa.String(length=128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_bot", sa.Boolean(), nullable=False),
        sa.Column("bot_score", sa.SmallInteger(), nullable=False),
        sa.Column("scroll_percentage", sa.Float(), nullable=False),
        sa.Column("view_duration_ms", sa.Integer(), nullable=False),
        sa.Column("is_valid_view", sa.Boolean(), nullable=False),
        sa.Column("device_type", sa.String(length=16), nullable=False),
        sa.Column("screen_resolution", sa.String(length=32), nullable=True),
        sa.Column("referrer", sa.Text(), nullable=False),
        sa.Column("view_source", sa.String(length=16), nullable=False),
        sa.Column("counted", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["post_id"], ["post.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "post_id", "user_id", "idempotency_key", name="uq_view_event_idempotency"
        ),
    )
    op.create_index("ix_view_event_user_created", "view_event", ["user_id", "created_at"])
    op.create_index("ix_view_event_ip_created", "view_event", ["ip_address", "created_at"])
    op.create_index("ix_view_event_post_created", "view_event", ["post_id", "created_at"])
    op.create_index("ix_view_event_counted", "view_event", ["counted"])

    op.create_table(
        "pricing_rule",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("city", sa.String(length=64), nullable=False),
        sa.Column("tier", sa.String(length=8), nullable=False),
        sa.Column("multiplier", sa.Numeric(6, 3), nullable=False),
        sa.Column("price_per_view", PRICE, nullable=False),
        sa.Column("price_per_like", PRICE, nullable=False),
        sa.Column("effective_from", sa.DateTime(timezone=True), nullable=False),
        sa.Column("effective_to", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_by", sa.String(length=64), nullable=False),
        sa.Column("updated_by", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_pricing_rule_city_window",
        "pricing_rule",
        ["city", "effective_from", "effective_to"],
    )
    op.create_index("ix_pricing_rule_active", "pricing_rule", ["is_active"])
    op.create_index("ix_pricing_rule_tier", "pricing_rule", ["tier"])

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("actor_id", sa.String(length=64), nullable=False),
        sa.Column("actor_role", sa.String(length=16), nullable=False),
        sa.Column("action", sa.String(length=32), nullable=False),
        sa.Column("resource", sa.String(length=16), nullable=False),
        sa.Column("resource_id", sa.Integer(), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_log_actor_created", "audit_log", ["actor_id", "created_at"])
    op.create_index("ix_audit_log_action_created", "audit_log", ["action", "created_at"])


def downgrade() -> None:
    """Drop the engagement schema."""
    op.drop_table("audit_log")
    op.drop_table("pricing_rule")
    op.drop_table("view_event")
    op.drop_table("post_like")
    op.drop_table("post")
