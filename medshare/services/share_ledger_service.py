# medshare/services/share_ledger_service.py
from uuid import UUID

from sqlalchemy.orm import Session

from medshare.core.exceptions import NotFoundError, ValidationError
from medshare.models.record_request import RecordScope
from medshare.models.share_grant import ShareGrant


def derive_scope(visit_count: int, lab_result_count: int) -> RecordScope:
    """
    Scope of a grant from what was actually released:
    both kinds -> all, otherwise whichever kind is present.
    """
    if visit_count < 0 or lab_result_count < 0:
        raise ValidationError("Record counts cannot be negative.")
    if visit_count > 0 and lab_result_count > 0:
        return RecordScope.ALL
    if visit_count > 0:
        return RecordScope.VISITS
    if lab_result_count > 0:
        return RecordScope.LAB_RESULTS
    raise ValidationError("A grant must include at least one record.")


def record_grant(
    db: Session,
    *,
    patient_id: UUID,
    source_organization_id: UUID,
    target_organization_id: UUID,
    request_id: UUID,
    visit_count: int,
    lab_result_count: int,
) -> ShareGrant:
    """
    Add a grant to the ledger.

    Only flushes: the caller commits it together with record tagging and the
    request transition, or rolls everything back.
    """
    scope = derive_scope(visit_count, lab_result_count)

    grant = ShareGrant(
        patient_id=patient_id,
        source_organization_id=source_organization_id,
        target_organization_id=target_organization_id,
        request_id=request_id,
        scope=scope,
        visit_count=visit_count,
        lab_result_count=lab_result_count,
        records_count=visit_count + lab_result_count,
    )
    db.add(grant)
    db.flush()
    return grant


def list_grants(
    db: Session,
    *,
    target_organization_id: UUID,
    patient_id: UUID | None = None,
) -> list[ShareGrant]:
    """Grants received by an organization, newest first."""
    query = db.query(ShareGrant).filter(ShareGrant.target_organization_id == target_organization_id)
    if patient_id:
        query = query.filter(ShareGrant.patient_id == patient_id)
    return query.order_by(ShareGrant.shared_at.desc()).all()


def get_grant(db: Session, *, grant_id: UUID) -> ShareGrant:
    grant = db.query(ShareGrant).filter(ShareGrant.id == grant_id).first()
    if not grant:
        raise NotFoundError("Shared record not found.")
    return grant
