"""
Expiry sweep: pending requests older than the TTL become `expired`.

Run with: pytest tests/test_expiry.py -v
"""

from datetime import timedelta

import pytest

from medshare.core.actor import ActorType
from medshare.core.exceptions import InvalidStateError
from medshare.models import AuditEntry, Notification, RecordScope, RequestStatus
from medshare.services.record_request_service import (
    EXPIRY_SUBSYSTEM,
    create_record_request,
    expire_stale_requests,
    resolve_request,
)
from medshare.services.review_service import confirm_share
from medshare.utils.datetime_utils import utc_now


def make_request(db, h, age_days=0):
    req = create_record_request(
        db,
        patient_id=h.patient.id,
        requesting_organization_id=h.org_a.id,
        requested_organization_id=h.org_b.id,
        scope=RecordScope.VISITS,
        requested_by=h.requester,
    )
    if age_days:
        req.created_at = utc_now() - timedelta(days=age_days)
        db.commit()
    return req


class TestExpireStaleRequests:
    """Time-based transition pending -> expired."""

    def test_only_old_pending_requests_expire(self, db, hospitals):
        stale = make_request(db, hospitals, age_days=31)
        fresh = make_request(db, hospitals, age_days=2)

        assert expire_stale_requests(db, ttl_days=30) == 1

        db.refresh(stale)
        db.refresh(fresh)
        assert stale.status == RequestStatus.EXPIRED
        assert stale.resolved_at is not None
        assert stale.resolved_by_user_id is None
        assert fresh.status == RequestStatus.PENDING

    def test_sweep_is_repeatable(self, db, hospitals):
        make_request(db, hospitals, age_days=45)

        assert expire_stale_requests(db, ttl_days=30) == 1
        assert expire_stale_requests(db, ttl_days=30) == 0

    def test_resolved_requests_are_left_alone(self, db, hospitals):
        req = make_request(db, hospitals, age_days=60)
        resolve_request(db, request_id=req.id, status=RequestStatus.REJECTED, reviewer=hospitals.admin_b)

        assert expire_stale_requests(db, ttl_days=30) == 0
        db.refresh(req)
        assert req.status == RequestStatus.REJECTED

    def test_reference_time_can_be_supplied(self, db, hospitals):
        req = make_request(db, hospitals)

        assert expire_stale_requests(db, now=utc_now() + timedelta(days=8), ttl_days=7) == 1
        db.refresh(req)
        assert req.status == RequestStatus.EXPIRED

    def test_expiry_is_audited_as_system_and_requester_told(self, db, hospitals):
        req = make_request(db, hospitals, age_days=31)

        expire_stale_requests(db, ttl_days=30)

        entry = db.query(AuditEntry).filter(AuditEntry.action == "expired_record_request").one()
        assert entry.actor_type == ActorType.SYSTEM
        assert entry.actor_subsystem == EXPIRY_SUBSYSTEM
        assert entry.actor_user_id is None
        assert entry.resource_id == str(req.id)

        notice = db.query(Notification).filter(Notification.user_id == hospitals.requester.id).one()
        assert notice.title == "Record Request Expired"
        assert notice.message.endswith("expired without a response.")

    def test_expired_request_cannot_be_shared(self, db, hospitals):
        req = make_request(db, hospitals, age_days=31)
        expire_stale_requests(db, ttl_days=30)

        with pytest.raises(InvalidStateError):
            confirm_share(
                db,
                request_id=req.id,
                visit_ids=[hospitals.visits[0].id],
                lab_result_ids=[],
                reviewer=hospitals.admin_b,
            )
