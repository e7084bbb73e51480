"""Audit trail endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Query

from engagement_engine.api.v1.dependencies import AdminDep, SessionDep
from engagement_engine.schemas.audit import AuditEntryResponse
from engagement_engine.services.audit import list_recent

router = APIRouter(prefix="/admin/audit", tags=["audit"])


@router.get("", response_model=list[AuditEntryResponse])
async def list_audit_entries(
    principal: AdminDep,
    db: SessionDep,
    limit: int = Query(50, ge=1, le=500),
    resource: str | None = Query(None),
    resource_id: int | None = Query(None),
) -> list[AuditEntryResponse]:
    """Most recent privileged actions, newest first."""
    entries = list_recent(db, limit=limit, resource=resource, resource_id=resource_id)
    return [AuditEntryResponse.model_validate(entry) for entry in entries]
