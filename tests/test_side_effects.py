"""
NotificationRelay and AuditTrail tests.

Both are best-effort: a failing notice or audit row never undoes a share.

Run with: pytest tests/test_side_effects.py -v
"""

import uuid
from datetime import timedelta

import pytest

from medshare.core.actor import ActorType, SystemActor, UserActor
from medshare.core.config import get_settings
from medshare.core.exceptions import NotFoundError
from medshare.models import AuditEntry, Notification, NotificationType, RecordScope, RequestStatus, ShareGrant
from medshare.services import audit_service, notification_service
from medshare.services.record_request_service import create_record_request
from medshare.services.review_service import confirm_share
from medshare.utils.datetime_utils import utc_now


@pytest.fixture
def pending_request(db, hospitals):
    return create_record_request(
        db,
        patient_id=hospitals.patient.id,
        requesting_organization_id=hospitals.org_a.id,
        requested_organization_id=hospitals.org_b.id,
        scope=RecordScope.VISITS,
        requested_by=hospitals.requester,
    )


def share_visits(db, hospitals, req):
    return confirm_share(
        db,
        request_id=req.id,
        visit_ids=[v.id for v in hospitals.visits],
        lab_result_ids=[],
        reviewer=hospitals.admin_b,
    )


class TestBestEffortSideEffects:
    """Failures inside the SAVEPOINT stay inside it."""

    def test_failed_notification_does_not_undo_share(self, db, hospitals, pending_request, monkeypatch):
        real_notification = notification_service.Notification

        def notification_without_title(**kwargs):
            kwargs["title"] = None
            return real_notification(**kwargs)

        monkeypatch.setattr(notification_service, "Notification", notification_without_title)

        grant = share_visits(db, hospitals, pending_request)

        db.refresh(pending_request)
        assert pending_request.status == RequestStatus.APPROVED
        assert db.query(ShareGrant).filter(ShareGrant.id == grant.id).count() == 1
        assert db.query(Notification).filter(Notification.user_id == hospitals.requester.id).count() == 0
        assert db.query(AuditEntry).filter(AuditEntry.action == "share_patient_records").count() == 1

    def test_failed_audit_does_not_undo_share(self, db, hospitals, pending_request, monkeypatch):
        def broken_entry(**kwargs):
            raise RuntimeError("audit store unavailable")

        monkeypatch.setattr(audit_service, "AuditEntry", broken_entry)

        share_visits(db, hospitals, pending_request)

        db.refresh(pending_request)
        assert pending_request.status == RequestStatus.APPROVED
        assert db.query(Notification).filter(Notification.user_id == hospitals.requester.id).count() == 1

    def test_disabled_channels_are_skipped(self, db, hospitals, pending_request, monkeypatch):
        settings = get_settings()
        monkeypatch.setattr(settings, "notifications_enabled", False)
        monkeypatch.setattr(settings, "audit_enabled", False)

        share_visits(db, hospitals, pending_request)

        db.refresh(pending_request)
        assert pending_request.status == RequestStatus.APPROVED
        assert db.query(Notification).filter(Notification.user_id == hospitals.requester.id).count() == 0
        assert db.query(AuditEntry).filter(AuditEntry.action == "share_patient_records").count() == 0


class TestNotifications:
    """Recipient side of the relay."""

    def test_notify_truncates_long_messages(self, db, hospitals):
        notif = notification_service.notify(
            db,
            user_id=hospitals.requester.id,
            title="System notice",
            message="x" * 2500,
            type=NotificationType.SYSTEM,
        )

        assert len(notif.message) == 2000
        assert notif.message.endswith("...")
        assert notif.type == "system"

    def test_list_count_and_mark_read(self, db, hospitals):
        for index in range(3):
            notification_service.notify(
                db,
                user_id=hospitals.requester.id,
                title=f"Notice {index}",
                message="hello",
                type=NotificationType.SYSTEM,
            )
        db.commit()

        items, total = notification_service.list_notifications(db, user_id=hospitals.requester.id, limit=2)
        assert total == 3
        assert len(items) == 2
        assert notification_service.count_unread(db, user_id=hospitals.requester.id) == 3

        notification_service.mark_read(db, notification_id=items[0].id, user_id=hospitals.requester.id)
        assert notification_service.count_unread(db, user_id=hospitals.requester.id) == 2

        unread, unread_total = notification_service.list_notifications(
            db, user_id=hospitals.requester.id, unread_only=True
        )
        assert unread_total == 2
        assert items[0].id not in {n.id for n in unread}

        assert notification_service.mark_all_read(db, user_id=hospitals.requester.id) == 2
        assert notification_service.count_unread(db, user_id=hospitals.requester.id) == 0

    def test_cannot_mark_someone_elses_notification(self, db, hospitals):
        notif = notification_service.notify(
            db,
            user_id=hospitals.requester.id,
            title="Private",
            message="only for the requester",
            type=NotificationType.SYSTEM,
        )
        db.commit()

        with pytest.raises(NotFoundError):
            notification_service.mark_read(db, notification_id=notif.id, user_id=hospitals.admin_b.id)
        with pytest.raises(NotFoundError):
            notification_service.mark_read(db, notification_id=uuid.uuid4(), user_id=hospitals.requester.id)

    def test_inactive_admins_are_not_notified(self, db, hospitals):
        hospitals.admin_b.is_active = False
        db.commit()

        sent = notification_service.notify_organization_admins(
            db,
            organization_id=hospitals.org_b.id,
            title="New Patient Records Request",
            message="ping",
            type=NotificationType.RECORD_REQUEST,
        )

        assert sent == []


class TestAuditTrail:
    """Actors are explicit and reads come back newest first."""

    def test_system_actor_has_no_user(self, db, hospitals):
        entry = audit_service.record(
            db,
            actor=SystemActor("request_expiry"),
            action="expired_record_request",
            resource_type="record_request",
            resource_id=uuid.uuid4(),
        )

        assert entry.actor_type == ActorType.SYSTEM
        assert entry.actor_user_id is None
        assert entry.actor_subsystem == "request_expiry"

    def test_list_filters(self, db, hospitals):
        now = utc_now()
        for days, action in ((3, "create_record_request"), (1, "share_patient_records"), (0, "create_record_request")):
            entry = audit_service.record(
                db,
                actor=UserActor(hospitals.admin_b.id),
                action=action,
                organization_id=hospitals.org_b.id,
            )
            entry.created_at = now - timedelta(days=days)
        audit_service.record(db, actor=UserActor(hospitals.requester.id), action="create_record_request")
        db.commit()

        mine = audit_service.list_audit_entries(db, actor_user_id=hospitals.admin_b.id)
        assert [e.action for e in mine] == ["create_record_request", "share_patient_records", "create_record_request"]

        creates = audit_service.list_audit_entries(
            db, actor_user_id=hospitals.admin_b.id, action="create_record_request"
        )
        assert len(creates) == 2

        recent = audit_service.list_audit_entries(
            db, actor_user_id=hospitals.admin_b.id, start=now - timedelta(days=2)
        )
        assert len(recent) == 2

        activity = audit_service.list_organization_activity(db, organization_id=hospitals.org_b.id, limit=2)
        assert len(activity) == 2
        assert all(e.organization_id == hospitals.org_b.id for e in activity)
