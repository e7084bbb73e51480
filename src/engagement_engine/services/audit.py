"""Audit trail helpers for privileged actions."""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from engagement_engine.models.audit import AUDIT_ACTIONS, AUDIT_RESOURCES, AuditLog


def record_audit(
    db: Session,
    *,
    actor_id: str,
    actor_role: str,
    action: str,
    resource: str,
    resource_id: int | None = None,
    details: dict[str, Any] | None = None,
) -> AuditLog:
    """Stage an audit entry in the caller's transaction."""
    if action not in AUDIT_ACTIONS:
        raise ValueError(f"Unknown audit action: {action}")
    if resource not in AUDIT_RESOURCES:
        raise ValueError(f"Unknown audit resource: {resource}")
    entry = AuditLog(
        actor_id=actor_id,
        actor_role=actor_role,
        action=action,
        resource=resource,
        resource_id=resource_id,
        details=details or {},
    )
    db.add(entry)
    return entry


def list_recent(
    db: Session,
    *,
    limit: int = 50,
    resource: str | None = None,
    resource_id: int | None = None,
) -> list[AuditLog]:
    stmt = select(AuditLog)
    if resource is not None:
        stmt = stmt.where(AuditLog.resource == resource)
    if resource_id is not None:
        stmt = stmt.where(AuditLog.resource_id == resource_id)
    stmt = stmt.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit)
    return list(db.execute(stmt).scalars())
