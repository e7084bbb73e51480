"""Audit trail for moderation, payment and pricing actions."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from engagement_engine.db.session import Base
from engagement_engine.db.time import utcnow

AUDIT_ACTIONS = (
    "APPROVE",
    "REJECT",
    "PROCESS_PAYMENT",
    "CREATE",
    "UPDATE",
    "DELETE",
    "INITIALIZE",
)
AUDIT_RESOURCES = ("POST", "PRICING", "PAYMENT")


class AuditLog(Base):
    """Record of a privileged action taken against a post or pricing rule."""

    __tablename__ = "audit_log"
    __table_args__ = (
        Index("ix_audit_log_actor_created", "actor_id", "created_at"),
        Index("ix_audit_log_action_created", "action", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    actor_id: Mapped[str] = mapped_column(String(64), nullable=False)
    actor_role: Mapped[str] = mapped_column(String(16), nullable=False)
    action: Mapped[str] = mapped_column(String(32), nullable=False)
    resource: Mapped[str] = mapped_column(String(16), nullable=False)
    resource_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
