# medshare/schemas/record_request.py
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from medshare.models.record_request import RecordScope, RequestStatus


class RecordRequestCreate(BaseModel):
    patient_id: UUID
    requested_organization_id: UUID = Field(..., description="Hospital that holds the records")
    scope: RecordScope = Field(..., description="visits, lab_results or all")
    is_urgent: bool = False
    reason: str | None = Field(None, max_length=1000)


class RecordRequestResponse(BaseModel):
    id: UUID
    patient_id: UUID
    patient_name: str | None
    requesting_organization_id: UUID
    requested_organization_id: UUID
    requesting_user_id: UUID | None
    scope: RecordScope
    is_urgent: bool
    reason: str | None
    status: RequestStatus
    share_grant_id: UUID | None = None
    resolved_by_user_id: UUID | None = None
    created_at: datetime
    updated_at: datetime
    resolved_at: datetime | None = None

    class Config:
        from_attributes = True


class ShareSelection(BaseModel):
    """Records picked by the reviewer. Both lists empty is refused by the service."""

    visit_ids: list[UUID] = Field(default_factory=list)
    lab_result_ids: list[UUID] = Field(default_factory=list)
