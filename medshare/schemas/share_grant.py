# medshare/schemas/share_grant.py
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from medshare.models.record_request import RecordScope


class ShareGrantResponse(BaseModel):
    id: UUID
    patient_id: UUID
    source_organization_id: UUID
    target_organization_id: UUID
    request_id: UUID
    scope: RecordScope
    visit_count: int
    lab_result_count: int
    records_count: int
    shared_at: datetime
    source_organization_name: str | None = None

    class Config:
        from_attributes = True
