# medshare/schemas/audit.py
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from medshare.core.actor import ActorType


class AuditEntryResponse(BaseModel):
    id: UUID
    actor_type: ActorType
    actor_user_id: UUID | None
    actor_subsystem: str | None
    organization_id: UUID | None
    action: str
    details: str | None
    resource_type: str | None
    resource_id: str | None
    metadata: dict = Field(default_factory=dict, validation_alias="metadata_dict")
    created_at: datetime

    class Config:
        from_attributes = True
