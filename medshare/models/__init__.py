# medshare/models/__init__.py
from medshare.models.base import Base
from medshare.models.organization import Organization
from medshare.models.user import User
from medshare.models.patient import Patient
from medshare.models.record_request import RecordRequest, RecordScope, RequestStatus
from medshare.models.share_grant import ShareGrant
from medshare.models.clinical_record import LabResult, PatientVisit
from medshare.models.notification import Notification, NotificationType
from medshare.models.audit_entry import AuditEntry

__all__ = [
    "Base",
    "Organization",
    "User",
    "Patient",
    "RecordRequest",
    "RecordScope",
    "RequestStatus",
    "ShareGrant",
    "PatientVisit",
    "LabResult",
    "Notification",
    "NotificationType",
    "AuditEntry",
]
