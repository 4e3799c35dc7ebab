# medshare/models/share_grant.py
import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from medshare.models.base import Base
from medshare.models.organization import Organization
from medshare.models.record_request import RECORD_SCOPE_ENUM, RecordScope
from medshare.utils.datetime_utils import utc_now


class ShareGrant(Base):
    """
    Ledger entry for records actually released to another hospital.
    Written once when a request is approved; never updated or deleted.
    """

    __tablename__ = "shared_records"
    __table_args__ = (
        Index("idx_shared_records_target_patient", "target_organization_id", "patient_id"),
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
    )
    source_organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    target_organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("record_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Grant Information
    scope: Mapped[RecordScope] = mapped_column(RECORD_SCOPE_ENUM, nullable=False)
    visit_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lab_result_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    records_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Timestamps
    shared_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=text("CURRENT_TIMESTAMP"),
        index=True,
    )

    source_organization: Mapped["Organization"] = relationship(
        "Organization",
        foreign_keys=[source_organization_id],
    )
    target_organization: Mapped["Organization"] = relationship(
        "Organization",
        foreign_keys=[target_organization_id],
    )
