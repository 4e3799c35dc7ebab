# medshare/services/review_service.py
"""
Review of an incoming record request: list candidate records, confirm a selection.

confirm_share writes the grant, tags the released records and approves the
request in a single transaction. Notification and audit follow as
best-effort writes and never undo the share.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from medshare.core.actor import UserActor
from medshare.core.exceptions import (
    EmptySelectionError,
    StorageError,
    ValidationError,
)
from medshare.models.clinical_record import LabResult, PatientVisit
from medshare.models.notification import NotificationType
from medshare.models.organization import Organization
from medshare.models.record_request import RecordRequest, RecordScope, RequestStatus
from medshare.models.share_grant import ShareGrant
from medshare.models.user import User
from medshare.services import audit_service, notification_service, share_ledger_service
from medshare.services.record_request_service import (
    apply_transition,
    ensure_reviewer,
    get_record_request,
    lock_for_review,
)

logger = logging.getLogger(__name__)


@dataclass
class CandidateSet:
    """Records a reviewer may release for one patient at one hospital."""

    visits: list[PatientVisit] = field(default_factory=list)
    lab_results: list[LabResult] = field(default_factory=list)


def list_candidates(
    db: Session,
    *,
    patient_id: UUID,
    organization_id: UUID,
    scope: RecordScope,
) -> CandidateSet:
    """
    Visits and/or lab results owned by organization_id for the patient.
    `all` runs both queries independently.
    """
    scope = RecordScope(scope)
    candidates = CandidateSet()

    if scope.includes_visits:
        candidates.visits = (
            db.query(PatientVisit)
            .filter(
                PatientVisit.patient_id == patient_id,
                PatientVisit.organization_id == organization_id,
            )
            .order_by(PatientVisit.visit_date.desc())
            .all()
        )

    if scope.includes_lab_results:
        candidates.lab_results = (
            db.query(LabResult)
            .filter(
                LabResult.patient_id == patient_id,
                LabResult.organization_id == organization_id,
            )
            .order_by(LabResult.created_at.desc())
            .all()
        )

    return candidates


def list_candidates_for_request(db: Session, *, request_id: UUID, reviewer: User) -> CandidateSet:
    req = get_record_request(db, request_id=request_id)
    ensure_reviewer(req, reviewer)
    return list_candidates(
        db,
        patient_id=req.patient_id,
        organization_id=req.requested_organization_id,
        scope=req.scope,
    )


def _unique(ids: Iterable[UUID]) -> list[UUID]:
    seen: dict[UUID, None] = {}
    for record_id in ids:
        seen.setdefault(record_id, None)
    return list(seen)


def _load_selected(db: Session, model, ids: list[UUID], req: RecordRequest, label: str) -> list:
    """
    Load the selected rows and make sure each one is a candidate of the request:
    same patient, owned by the requested hospital.
    """
    if not ids:
        return []

    rows = (
        db.query(model)
        .filter(
            model.id.in_(ids),
            model.patient_id == req.patient_id,
            model.organization_id == req.requested_organization_id,
        )
        .all()
    )
    if len(rows) != len(ids):
        found = {row.id for row in rows}
        missing = [str(record_id) for record_id in ids if record_id not in found]
        raise ValidationError(f"Selected {label} are not available for this request: {', '.join(missing)}")
    return rows


def confirm_share(
    db: Session,
    *,
    request_id: UUID,
    visit_ids: Iterable[UUID],
    lab_result_ids: Iterable[UUID],
    reviewer: User,
) -> ShareGrant:
    """
    Release the selected records to the requesting hospital.

    Raises EmptySelectionError before touching anything when both selections
    are empty, InvalidStateError when the request is no longer pending.
    """
    visit_ids = _unique(visit_ids)
    lab_result_ids = _unique(lab_result_ids)
    if not visit_ids and not lab_result_ids:
        raise EmptySelectionError()

    req = lock_for_review(db, request_id=request_id, reviewer=reviewer)

    try:
        if visit_ids and not req.scope.includes_visits:
            raise ValidationError("This request does not cover visits.")
        if lab_result_ids and not req.scope.includes_lab_results:
            raise ValidationError("This request does not cover lab results.")

        visits = _load_selected(db, PatientVisit, visit_ids, req, "visits")
        lab_results = _load_selected(db, LabResult, lab_result_ids, req, "lab results")
    except ValidationError:
        db.rollback()
        raise

    source_org = db.get(Organization, req.requested_organization_id)
    target_org = db.get(Organization, req.requesting_organization_id)
    source_name = source_org.name if source_org else "Another hospital"
    target_name = target_org.name if target_org else "unknown"

    try:
        grant = share_ledger_service.record_grant(
            db,
            patient_id=req.patient_id,
            source_organization_id=req.requested_organization_id,
            target_organization_id=req.requesting_organization_id,
            request_id=req.id,
            visit_count=len(visits),
            lab_result_count=len(lab_results),
        )

        for record in [*visits, *lab_results]:
            record.share_with(req.requesting_organization_id, grant.id)

        apply_transition(
            db,
            req,
            RequestStatus.APPROVED,
            resolved_by_user_id=reviewer.id,
            share_grant_id=grant.id,
        )

        if req.requesting_user_id:
            notification_service.notify(
                db,
                user_id=req.requesting_user_id,
                title="Patient Records Shared",
                message=(
                    f"{source_name} has shared {req.patient_name or 'a patient'}'s records "
                    f"with your hospital."
                ),
                type=NotificationType.SHARED_RECORDS,
                action_url=f"/patients/{req.patient_id}/shared-records/{grant.id}",
                metadata={
                    "patient_id": req.patient_id,
                    "patient_name": req.patient_name,
                    "shared_record_id": grant.id,
                    "request_id": req.id,
                    "source_hospital_id": req.requested_organization_id,
                    "source_hospital_name": source_name,
                },
            )

        audit_service.record(
            db,
            actor=UserActor(reviewer.id),
            action="share_patient_records",
            details=(
                f"Shared {len(visits)} visits and {len(lab_results)} lab results for patient "
                f"{req.patient_name or 'unknown'} from {source_name} to {target_name}"
            ),
            resource_type="shared_records",
            resource_id=grant.id,
            organization_id=req.requested_organization_id,
            metadata={
                "request_id": req.id,
                "patient_id": req.patient_id,
                "source_hospital_id": req.requested_organization_id,
                "target_hospital_id": req.requesting_organization_id,
                "visit_count": len(visits),
                "lab_result_count": len(lab_results),
            },
        )

        db.commit()
        db.refresh(grant)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Failed to share patient records for request %s", request_id)
        raise StorageError("Failed to share patient records. Please try again.") from e

    logger.info(
        f"Request {req.id}: shared {grant.visit_count} visit(s) and {grant.lab_result_count} "
        f"lab result(s) from {source_name} to {target_name}"
    )
    return grant
