# medshare/services/record_request_service.py
"""
Record requests between hospitals: creation, listing and status transitions.

pending -> approved | rejected | expired; every other transition is refused.
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from medshare.core.actor import Actor, SystemActor, UserActor
from medshare.core.config import get_settings
from medshare.core.exceptions import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    RecordSharingError,
    StorageError,
    ValidationError,
)
from medshare.models.notification import NotificationType
from medshare.models.organization import Organization
from medshare.models.patient import Patient
from medshare.models.record_request import RecordRequest, RecordScope, RequestStatus
from medshare.models.share_grant import ShareGrant
from medshare.models.user import User
from medshare.services import audit_service, notification_service
from medshare.utils.datetime_utils import days_ago, utc_now

logger = logging.getLogger(__name__)

EXPIRY_SUBSYSTEM = "request_expiry"


def _organization_name(db: Session, organization_id: UUID, fallback: str = "another hospital") -> str:
    org = db.get(Organization, organization_id)
    return org.name if org else fallback


def create_record_request(
    db: Session,
    *,
    patient_id: UUID,
    requesting_organization_id: UUID,
    requested_organization_id: UUID,
    scope: RecordScope,
    is_urgent: bool = False,
    reason: str | None = None,
    requested_by: User | None = None,
) -> RecordRequest:
    """
    Create a pending request and notify the admins of the requested hospital.
    """
    if requesting_organization_id == requested_organization_id:
        raise ValidationError("Cannot request records from the same hospital.")

    patient = db.get(Patient, patient_id)
    if not patient:
        raise ValidationError("Patient not found.")

    requesting_org = db.get(Organization, requesting_organization_id)
    if not requesting_org:
        raise ValidationError("Requesting hospital not found.")
    requested_org = db.get(Organization, requested_organization_id)
    if not requested_org:
        raise ValidationError("Requested hospital not found.")

    if requested_by is not None and requested_by.organization_id != requesting_organization_id:
        raise AuthorizationError("Users can only request records on behalf of their own hospital.")

    req = RecordRequest(
        patient_id=patient.id,
        patient_name=patient.name,
        requesting_organization_id=requesting_org.id,
        requested_organization_id=requested_org.id,
        requesting_user_id=requested_by.id if requested_by else None,
        scope=RecordScope(scope),
        is_urgent=is_urgent,
        reason=reason,
        status=RequestStatus.PENDING,
    )

    try:
        db.add(req)
        db.flush()

        notification_service.notify_organization_admins(
            db,
            organization_id=requested_org.id,
            title="New Patient Records Request",
            message=f"{requesting_org.name} has requested records for patient {patient.name}.",
            type=NotificationType.RECORD_REQUEST,
            action_url="/hospital-admin/records",
            metadata={
                "request_id": req.id,
                "patient_id": patient.id,
                "patient_name": patient.name,
                "requesting_hospital_id": requesting_org.id,
                "requesting_hospital_name": requesting_org.name,
                "is_urgent": is_urgent,
            },
        )

        actor: Actor = UserActor(requested_by.id) if requested_by else SystemActor("record_requests")
        audit_service.record(
            db,
            actor=actor,
            action="create_record_request",
            details=(
                f"Requested {req.scope.value} records for patient {patient.name} "
                f"from {requested_org.name}"
            ),
            resource_type="record_request",
            resource_id=req.id,
            organization_id=requesting_org.id,
            metadata={
                "patient_id": patient.id,
                "requesting_hospital_id": requesting_org.id,
                "requested_hospital_id": requested_org.id,
                "record_type": req.scope.value,
                "is_urgent": is_urgent,
            },
        )

        db.commit()
        db.refresh(req)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Failed to create record request for patient %s", patient_id)
        raise StorageError("Failed to create record request.") from e

    logger.info(
        f"Record request {req.id} created: {requesting_org.name} -> {requested_org.name} "
        f"({req.scope.value}, urgent={is_urgent})"
    )
    return req


def _list_requests(
    db: Session,
    *,
    column,
    organization_id: UUID,
    patient_id: UUID | None = None,
    status: RequestStatus | None = None,
) -> list[RecordRequest]:
    query = db.query(RecordRequest).filter(column == organization_id)
    if patient_id:
        query = query.filter(RecordRequest.patient_id == patient_id)
    if status:
        query = query.filter(RecordRequest.status == status)
    return query.order_by(RecordRequest.created_at.desc()).all()


def list_incoming(
    db: Session,
    *,
    organization_id: UUID,
    patient_id: UUID | None = None,
    status: RequestStatus | None = None,
) -> list[RecordRequest]:
    """Requests addressed to this hospital, newest first."""
    return _list_requests(
        db,
        column=RecordRequest.requested_organization_id,
        organization_id=organization_id,
        patient_id=patient_id,
        status=status,
    )


def list_outgoing(
    db: Session,
    *,
    organization_id: UUID,
    patient_id: UUID | None = None,
    status: RequestStatus | None = None,
) -> list[RecordRequest]:
    """Requests sent by this hospital, newest first."""
    return _list_requests(
        db,
        column=RecordRequest.requesting_organization_id,
        organization_id=organization_id,
        patient_id=patient_id,
        status=status,
    )


def get_record_request(db: Session, *, request_id: UUID, for_update: bool = False) -> RecordRequest:
    query = db.query(RecordRequest).filter(RecordRequest.id == request_id)
    if for_update:
        query = query.with_for_update()
    req = query.first()
    if not req:
        raise NotFoundError("Record request not found.")
    return req


def ensure_reviewer(req: RecordRequest, reviewer: User) -> None:
    """Only an active admin of the requested hospital may review a request."""
    if (
        reviewer.organization_id != req.requested_organization_id
        or not reviewer.is_admin
        or not reviewer.is_active
    ):
        raise AuthorizationError("Only an admin of the requested hospital can review this request.")


def lock_for_review(db: Session, *, request_id: UUID, reviewer: User) -> RecordRequest:
    """
    Load the request FOR UPDATE and check that the reviewer can still act on it.
    On refusal the transaction is rolled back, releasing the row lock.
    """
    try:
        req = get_record_request(db, request_id=request_id, for_update=True)
        ensure_reviewer(req, reviewer)
        if req.status.is_terminal:
            raise InvalidStateError(f"Record request is already {req.status.value}.")
    except RecordSharingError:
        db.rollback()
        raise
    return req


def apply_transition(
    db: Session,
    req: RecordRequest,
    status: RequestStatus,
    *,
    resolved_by_user_id: UUID | None = None,
    share_grant_id: UUID | None = None,
) -> RecordRequest:
    """
    Move a pending request to a terminal status inside the caller's transaction.
    Raises InvalidStateError and leaves the row untouched if it is not pending.
    """
    if req.status.is_terminal:
        raise InvalidStateError(f"Record request is already {req.status.value}.")
    if status == RequestStatus.PENDING:
        raise ValidationError("A request cannot be moved back to pending.")

    now = utc_now()
    req.status = status
    req.resolved_at = now
    req.updated_at = now
    req.resolved_by_user_id = resolved_by_user_id
    req.share_grant_id = share_grant_id
    db.flush()
    return req


def resolve_request(
    db: Session,
    *,
    request_id: UUID,
    status: RequestStatus,
    reviewer: User,
    grant_id: UUID | None = None,
) -> RecordRequest:
    """
    Approve or reject a pending request.

    Approval needs the id of a grant already recorded for this request;
    confirm_share in review_service produces one and approves in one step.
    """
    status = RequestStatus(status)
    if status not in (RequestStatus.APPROVED, RequestStatus.REJECTED):
        raise ValidationError("Requests can only be resolved as approved or rejected.")

    req = lock_for_review(db, request_id=request_id, reviewer=reviewer)

    try:
        if status == RequestStatus.APPROVED:
            if grant_id is None:
                raise ValidationError("Approving a request requires the id of the share grant.")
            grant = db.get(ShareGrant, grant_id)
            if not grant or grant.request_id != req.id:
                raise ValidationError("Share grant does not belong to this request.")
        elif grant_id is not None:
            raise ValidationError("A rejected request cannot reference a share grant.")
    except ValidationError:
        db.rollback()
        raise

    try:
        apply_transition(
            db,
            req,
            status,
            resolved_by_user_id=reviewer.id,
            share_grant_id=grant_id,
        )
        _notify_requester_of_resolution(db, req)

        audit_service.record(
            db,
            actor=UserActor(reviewer.id),
            action=f"{status.value}_record_request",
            details=(
                f"{'Approved' if status == RequestStatus.APPROVED else 'Rejected'} "
                f"record request for patient {req.patient_name or 'unknown'}"
            ),
            resource_type="record_request",
            resource_id=req.id,
            organization_id=req.requested_organization_id,
            metadata={
                "request_id": req.id,
                "patient_id": req.patient_id,
                "status": status.value,
                "share_grant_id": grant_id,
            },
        )

        db.commit()
        db.refresh(req)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Failed to resolve record request %s", request_id)
        raise StorageError("Failed to update record request status.") from e

    logger.info(f"Record request {req.id} {status.value} by user {reviewer.id}")
    return req


def _notify_requester_of_resolution(db: Session, req: RecordRequest) -> None:
    if not req.requesting_user_id:
        return

    verb = req.status.value
    outcome = "expired without a response" if req.status == RequestStatus.EXPIRED else f"has been {verb}"
    notification_service.notify(
        db,
        user_id=req.requesting_user_id,
        title=f"Record Request {verb.capitalize()}",
        message=(
            f"Your request for {req.patient_name or 'a patient'}'s records from "
            f"{_organization_name(db, req.requested_organization_id)} {outcome}."
        ),
        type=NotificationType.RECORD_REQUEST,
        action_url=f"/patients/{req.patient_id}/records",
        metadata={
            "request_id": req.id,
            "patient_id": req.patient_id,
            "patient_name": req.patient_name,
            "status": verb,
        },
    )


def expire_stale_requests(db: Session, *, now: datetime | None = None, ttl_days: int | None = None) -> int:
    """
    Move pending requests older than the TTL to `expired`.

    Run periodically (scripts/expire_record_requests.py). Returns how many
    requests expired.
    """
    ttl = ttl_days if ttl_days is not None else get_settings().record_request_ttl_days
    cutoff = days_ago(ttl, now)

    stale = (
        db.query(RecordRequest)
        .filter(
            RecordRequest.status == RequestStatus.PENDING,
            RecordRequest.created_at < cutoff,
        )
        .with_for_update()
        .all()
    )
    if not stale:
        return 0

    actor = SystemActor(EXPIRY_SUBSYSTEM)
    try:
        for req in stale:
            apply_transition(db, req, RequestStatus.EXPIRED)
            _notify_requester_of_resolution(db, req)
            audit_service.record(
                db,
                actor=actor,
                action="expired_record_request",
                details=f"Record request for patient {req.patient_name or 'unknown'} expired after {ttl} days",
                resource_type="record_request",
                resource_id=req.id,
                organization_id=req.requested_organization_id,
                metadata={"request_id": req.id, "patient_id": req.patient_id, "ttl_days": ttl},
            )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Failed to expire stale record requests")
        raise StorageError("Failed to expire record requests.") from e

    logger.info(f"Expired {len(stale)} record request(s) older than {ttl} days")
    return len(stale)
