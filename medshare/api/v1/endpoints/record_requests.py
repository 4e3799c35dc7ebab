# medshare/api/v1/endpoints/record_requests.py
import logging
from typing import Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from medshare.core.database import get_db
from medshare.core.org_context import OrgContext, get_org_context
from medshare.dependencies.authz import require_org_admin
from medshare.models.record_request import RequestStatus
from medshare.schemas.candidate import CandidateSetResponse
from medshare.schemas.record_request import (
    RecordRequestCreate,
    RecordRequestResponse,
    ShareSelection,
)
from medshare.schemas.share_grant import ShareGrantResponse
from medshare.services.record_request_service import (
    create_record_request,
    get_record_request,
    list_incoming,
    list_outgoing,
    resolve_request,
)
from medshare.services.review_service import confirm_share, list_candidates_for_request

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "",
    response_model=RecordRequestResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["record-requests"],
)
def create_record_request_endpoint(
    payload: RecordRequestCreate,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
) -> RecordRequestResponse:
    """
    Ask another hospital for a patient's records.
    The caller's hospital is the requesting side.
    """
    req = create_record_request(
        db,
        patient_id=payload.patient_id,
        requesting_organization_id=ctx.organization.id,
        requested_organization_id=payload.requested_organization_id,
        scope=payload.scope,
        is_urgent=payload.is_urgent,
        reason=payload.reason,
        requested_by=ctx.user,
    )
    return RecordRequestResponse.model_validate(req)


@router.get(
    "",
    response_model=list[RecordRequestResponse],
    tags=["record-requests"],
)
def list_record_requests(
    direction: Literal["incoming", "outgoing"] = Query("outgoing", description="'incoming' or 'outgoing'"),
    patient_id: Optional[UUID] = Query(None),
    request_status: Optional[RequestStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
) -> list[RecordRequestResponse]:
    """
    List record requests for the caller's hospital, newest first.
    - direction='outgoing': requests sent by this hospital
    - direction='incoming': requests received by this hospital
    """
    lister = list_incoming if direction == "incoming" else list_outgoing
    requests = lister(
        db,
        organization_id=ctx.organization.id,
        patient_id=patient_id,
        status=request_status,
    )
    return [RecordRequestResponse.model_validate(r) for r in requests]


@router.get(
    "/{request_id}",
    response_model=RecordRequestResponse,
    tags=["record-requests"],
)
def get_record_request_endpoint(
    request_id: UUID,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
) -> RecordRequestResponse:
    """Visible to both hospitals involved in the request."""
    req = get_record_request(db, request_id=request_id)
    if ctx.organization.id not in (req.requesting_organization_id, req.requested_organization_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Record request not found.",
        )
    return RecordRequestResponse.model_validate(req)


@router.get(
    "/{request_id}/candidates",
    response_model=CandidateSetResponse,
    tags=["record-requests"],
)
def list_request_candidates(
    request_id: UUID,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(require_org_admin()),
) -> CandidateSetResponse:
    """Records the reviewer can pick from, limited by the request scope."""
    candidates = list_candidates_for_request(db, request_id=request_id, reviewer=ctx.user)
    return CandidateSetResponse.model_validate(candidates)


@router.post(
    "/{request_id}/share",
    response_model=ShareGrantResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["record-requests"],
)
def share_records_endpoint(
    request_id: UUID,
    payload: ShareSelection,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(require_org_admin()),
) -> ShareGrantResponse:
    """
    Share the selected records with the requesting hospital and approve the request.
    """
    grant = confirm_share(
        db,
        request_id=request_id,
        visit_ids=payload.visit_ids,
        lab_result_ids=payload.lab_result_ids,
        reviewer=ctx.user,
    )
    response = ShareGrantResponse.model_validate(grant)
    response.source_organization_name = ctx.organization.name
    return response


@router.post(
    "/{request_id}/reject",
    response_model=RecordRequestResponse,
    tags=["record-requests"],
)
def reject_record_request(
    request_id: UUID,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(require_org_admin()),
) -> RecordRequestResponse:
    """Reject a pending request. Nothing is shared."""
    req = resolve_request(
        db,
        request_id=request_id,
        status=RequestStatus.REJECTED,
        reviewer=ctx.user,
    )
    return RecordRequestResponse.model_validate(req)
