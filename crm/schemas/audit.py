from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class AuditLogEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    actor_id: UUID | None = None
    action: str
    entity_type: str
    entity_id: str
    meta: dict[str, Any] | list[Any] | None = None
    ip: str = ""
    user_agent: str = ""
    created_at: datetime
