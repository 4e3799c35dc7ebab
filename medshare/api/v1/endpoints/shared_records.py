# medshare/api/v1/endpoints/shared_records.py
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from medshare.core.database import get_db
from medshare.core.org_context import OrgContext, get_org_context
from medshare.schemas.share_grant import ShareGrantResponse
from medshare.services.share_ledger_service import get_grant, list_grants

router = APIRouter()


@router.get("", response_model=list[ShareGrantResponse], tags=["shared-records"])
def list_shared_records(
    patient_id: Optional[UUID] = Query(None, description="Only grants for this patient"),
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
) -> list[ShareGrantResponse]:
    """
    Records other hospitals have shared with the caller's hospital, newest first.
    """
    grants = list_grants(db, target_organization_id=ctx.organization.id, patient_id=patient_id)

    results = []
    for grant in grants:
        item = ShareGrantResponse.model_validate(grant)
        item.source_organization_name = grant.source_organization.name if grant.source_organization else None
        results.append(item)
    return results


@router.get("/{grant_id}", response_model=ShareGrantResponse, tags=["shared-records"])
def get_shared_record(
    grant_id: UUID,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
) -> ShareGrantResponse:
    """One grant; visible to the hospital that shared it and the one that received it."""
    grant = get_grant(db, grant_id=grant_id)
    if ctx.organization.id not in (grant.source_organization_id, grant.target_organization_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Shared record not found.",
        )

    item = ShareGrantResponse.model_validate(grant)
    item.source_organization_name = grant.source_organization.name if grant.source_organization else None
    return item
