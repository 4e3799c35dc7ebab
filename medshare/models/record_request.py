# medshare/models/record_request.py
import uuid
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from medshare.models.base import Base
from medshare.models.organization import Organization
from medshare.utils.datetime_utils import utc_now


class RecordScope(str, PyEnum):
    VISITS = "visits"
    LAB_RESULTS = "lab_results"
    ALL = "all"

    @property
    def includes_visits(self) -> bool:
        return self in (RecordScope.VISITS, RecordScope.ALL)

    @property
    def includes_lab_results(self) -> bool:
        return self in (RecordScope.LAB_RESULTS, RecordScope.ALL)


class RequestStatus(str, PyEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self is not RequestStatus.PENDING


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


RECORD_SCOPE_ENUM = Enum(RecordScope, name="record_scope_enum", values_callable=_enum_values)
REQUEST_STATUS_ENUM = Enum(RequestStatus, name="request_status_enum", values_callable=_enum_values)


class RecordRequest(Base):
    """
    One hospital asking another for a patient's records.

    Never deleted; only moves out of `pending` once.
    """

    __tablename__ = "record_requests"
    __table_args__ = (
        Index("idx_record_requests_requested_org", "requested_organization_id", "created_at"),
        Index("idx_record_requests_requesting_org", "requesting_organization_id", "created_at"),
    )

    # Primary Key
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # Foreign Keys
    patient_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    requesting_organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    requested_organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    requesting_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    resolved_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    share_grant_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        nullable=True,
        doc="shared_records.id produced when the request was approved",
    )

    # Request Information
    patient_name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        doc="Snapshot of the patient name for notices",
    )
    scope: Mapped[RecordScope] = mapped_column(RECORD_SCOPE_ENUM, nullable=False)
    is_urgent: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )
    reason: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    # Status
    status: Mapped[RequestStatus] = mapped_column(
        REQUEST_STATUS_ENUM,
        nullable=False,
        default=RequestStatus.PENDING,
        server_default=text("'pending'"),
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=utc_now,
    )
    resolved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    requesting_organization: Mapped["Organization"] = relationship(
        "Organization",
        foreign_keys=[requesting_organization_id],
    )
    requested_organization: Mapped["Organization"] = relationship(
        "Organization",
        foreign_keys=[requested_organization_id],
    )
