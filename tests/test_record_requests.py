"""
RequestStore tests: creation, incoming/outgoing queues and status transitions.

Run with: pytest tests/test_record_requests.py -v
"""

import uuid

import pytest

from medshare.core.actor import ActorType
from medshare.core.exceptions import AuthorizationError, InvalidStateError, NotFoundError, ValidationError
from medshare.models import AuditEntry, Notification, RecordScope, RequestStatus, ShareGrant
from medshare.services.record_request_service import (
    create_record_request,
    get_record_request,
    list_incoming,
    list_outgoing,
    resolve_request,
)
from medshare.services.share_ledger_service import record_grant


def make_request(db, h, scope=RecordScope.LAB_RESULTS, **kwargs):
    return create_record_request(
        db,
        patient_id=h.patient.id,
        requesting_organization_id=h.org_a.id,
        requested_organization_id=h.org_b.id,
        scope=scope,
        requested_by=h.requester,
        **kwargs,
    )


class TestCreateRecordRequest:
    """Creating a request between two hospitals."""

    def test_new_request_is_pending_and_in_both_queues(self, db, hospitals):
        req = make_request(db, hospitals, is_urgent=True, reason="pre-op clearance")

        assert req.status == RequestStatus.PENDING
        assert req.patient_name == "Meera Iyer"
        assert req.requesting_user_id == hospitals.requester.id
        assert [r.id for r in list_outgoing(db, organization_id=hospitals.org_a.id)] == [req.id]
        assert [r.id for r in list_incoming(db, organization_id=hospitals.org_b.id)] == [req.id]
        assert list_incoming(db, organization_id=hospitals.org_a.id) == []

    def test_only_admins_of_requested_hospital_are_notified(self, db, hospitals):
        req = make_request(db, hospitals)

        notifications = db.query(Notification).all()
        assert [n.user_id for n in notifications] == [hospitals.admin_b.id]
        assert notifications[0].type == "record_request"
        assert notifications[0].action_url == "/hospital-admin/records"
        assert notifications[0].metadata_dict["request_id"] == str(req.id)

    def test_creation_is_audited_with_user_actor(self, db, hospitals):
        req = make_request(db, hospitals)

        entry = db.query(AuditEntry).filter(AuditEntry.action == "create_record_request").one()
        assert entry.actor_type == ActorType.USER
        assert entry.actor_user_id == hospitals.requester.id
        assert entry.resource_id == str(req.id)
        assert entry.organization_id == hospitals.org_a.id

    def test_same_hospital_is_rejected(self, db, hospitals):
        with pytest.raises(ValidationError):
            create_record_request(
                db,
                patient_id=hospitals.patient.id,
                requesting_organization_id=hospitals.org_a.id,
                requested_organization_id=hospitals.org_a.id,
                scope=RecordScope.ALL,
            )

    def test_unknown_patient_is_rejected(self, db, hospitals):
        with pytest.raises(ValidationError):
            create_record_request(
                db,
                patient_id=uuid.uuid4(),
                requesting_organization_id=hospitals.org_a.id,
                requested_organization_id=hospitals.org_b.id,
                scope=RecordScope.ALL,
            )

    def test_unknown_hospital_is_rejected(self, db, hospitals):
        with pytest.raises(ValidationError):
            create_record_request(
                db,
                patient_id=hospitals.patient.id,
                requesting_organization_id=hospitals.org_a.id,
                requested_organization_id=uuid.uuid4(),
                scope=RecordScope.ALL,
            )

    def test_user_cannot_request_for_another_hospital(self, db, hospitals):
        with pytest.raises(AuthorizationError):
            create_record_request(
                db,
                patient_id=hospitals.patient.id,
                requesting_organization_id=hospitals.org_a.id,
                requested_organization_id=hospitals.org_b.id,
                scope=RecordScope.VISITS,
                requested_by=hospitals.doctor_b,
            )

        assert db.query(Notification).count() == 0


class TestListRequests:
    """Queue filters."""

    def test_filters_by_status_and_patient(self, db, hospitals):
        first = make_request(db, hospitals, scope=RecordScope.VISITS)
        second = make_request(db, hospitals, scope=RecordScope.ALL)
        resolve_request(db, request_id=first.id, status=RequestStatus.REJECTED, reviewer=hospitals.admin_b)

        pending = list_incoming(db, organization_id=hospitals.org_b.id, status=RequestStatus.PENDING)
        assert [r.id for r in pending] == [second.id]
        assert list_outgoing(db, organization_id=hospitals.org_a.id, patient_id=uuid.uuid4()) == []

    def test_get_unknown_request(self, db, hospitals):
        with pytest.raises(NotFoundError):
            get_record_request(db, request_id=uuid.uuid4())


class TestResolveRequest:
    """pending -> approved | rejected, and nothing else."""

    def test_reject_pending_request(self, db, hospitals):
        req = make_request(db, hospitals)

        resolved = resolve_request(db, request_id=req.id, status=RequestStatus.REJECTED, reviewer=hospitals.admin_b)

        assert resolved.status == RequestStatus.REJECTED
        assert resolved.resolved_by_user_id == hospitals.admin_b.id
        assert resolved.resolved_at is not None
        notice = db.query(Notification).filter(Notification.user_id == hospitals.requester.id).one()
        assert notice.title == "Record Request Rejected"
        assert db.query(AuditEntry).filter(AuditEntry.action == "rejected_record_request").count() == 1

    def test_rejection_shares_nothing(self, db, hospitals):
        req = make_request(db, hospitals, scope=RecordScope.ALL)

        resolve_request(db, request_id=req.id, status=RequestStatus.REJECTED, reviewer=hospitals.admin_b)

        assert db.query(ShareGrant).count() == 0
        for record in [*hospitals.visits, *hospitals.lab_results]:
            db.refresh(record)
            assert record.shared_to == []

    @pytest.mark.parametrize("status", [RequestStatus.REJECTED, RequestStatus.APPROVED])
    def test_resolving_a_closed_request_fails_and_keeps_status(self, db, hospitals, status):
        req = make_request(db, hospitals)
        resolve_request(db, request_id=req.id, status=RequestStatus.REJECTED, reviewer=hospitals.admin_b)

        with pytest.raises(InvalidStateError):
            resolve_request(db, request_id=req.id, status=status, reviewer=hospitals.admin_b)

        assert not db.in_transaction()
        db.refresh(req)
        assert req.status == RequestStatus.REJECTED

    def test_approval_needs_a_grant_of_this_request(self, db, hospitals):
        req = make_request(db, hospitals)

        with pytest.raises(ValidationError):
            resolve_request(db, request_id=req.id, status=RequestStatus.APPROVED, reviewer=hospitals.admin_b)
        with pytest.raises(ValidationError):
            resolve_request(
                db,
                request_id=req.id,
                status=RequestStatus.APPROVED,
                reviewer=hospitals.admin_b,
                grant_id=uuid.uuid4(),
            )

        db.refresh(req)
        assert req.status == RequestStatus.PENDING

    def test_approve_with_grant_of_this_request(self, db, hospitals):
        req = make_request(db, hospitals)
        grant = record_grant(
            db,
            patient_id=hospitals.patient.id,
            source_organization_id=hospitals.org_b.id,
            target_organization_id=hospitals.org_a.id,
            request_id=req.id,
            visit_count=0,
            lab_result_count=1,
        )
        db.commit()

        resolved = resolve_request(
            db,
            request_id=req.id,
            status=RequestStatus.APPROVED,
            reviewer=hospitals.admin_b,
            grant_id=grant.id,
        )

        assert resolved.status == RequestStatus.APPROVED
        assert resolved.share_grant_id == grant.id
        assert resolved.resolved_by_user_id == hospitals.admin_b.id
        notices = db.query(Notification).filter(Notification.user_id == hospitals.requester.id).all()
        assert [n.title for n in notices] == ["Record Request Approved"]
        assert db.query(AuditEntry).filter(AuditEntry.action == "approved_record_request").count() == 1

    def test_grant_of_another_request_is_refused(self, db, hospitals):
        req = make_request(db, hospitals)
        other = make_request(db, hospitals)
        grant = record_grant(
            db,
            patient_id=hospitals.patient.id,
            source_organization_id=hospitals.org_b.id,
            target_organization_id=hospitals.org_a.id,
            request_id=other.id,
            visit_count=0,
            lab_result_count=1,
        )
        db.commit()

        with pytest.raises(ValidationError):
            resolve_request(
                db,
                request_id=req.id,
                status=RequestStatus.APPROVED,
                reviewer=hospitals.admin_b,
                grant_id=grant.id,
            )

        assert not db.in_transaction()
        db.refresh(req)
        assert req.status == RequestStatus.PENDING
        assert req.share_grant_id is None

    def test_expired_is_not_a_manual_resolution(self, db, hospitals):
        req = make_request(db, hospitals)

        with pytest.raises(ValidationError):
            resolve_request(db, request_id=req.id, status=RequestStatus.EXPIRED, reviewer=hospitals.admin_b)

    @pytest.mark.parametrize("reviewer", ["doctor_b", "admin_a"])
    def test_only_admin_of_requested_hospital_can_resolve(self, db, hospitals, reviewer):
        req = make_request(db, hospitals)

        with pytest.raises(AuthorizationError):
            resolve_request(
                db,
                request_id=req.id,
                status=RequestStatus.REJECTED,
                reviewer=getattr(hospitals, reviewer),
            )

        assert not db.in_transaction()
