# medshare/schemas/candidate.py
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class VisitCandidate(BaseModel):
    id: UUID
    visit_date: datetime
    visit_type: str | None
    doctor_name: str | None
    notes: str | None
    shared_to: list[UUID] = Field(default_factory=list)

    class Config:
        from_attributes = True


class LabResultCandidate(BaseModel):
    id: UUID
    test_name: str
    status: str
    result_summary: str | None
    created_at: datetime
    shared_to: list[UUID] = Field(default_factory=list)

    class Config:
        from_attributes = True


class CandidateSetResponse(BaseModel):
    visits: list[VisitCandidate] = Field(default_factory=list)
    lab_results: list[LabResultCandidate] = Field(default_factory=list)

    class Config:
        from_attributes = True
