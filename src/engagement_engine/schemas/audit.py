"""Audit trail schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class AuditEntryResponse(BaseModel):
    id: int
    actor_id: str
    actor_role: str
    action: str
    resource: str
    resource_id: int | None
    details: dict[str, Any]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
