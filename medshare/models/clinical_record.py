# medshare/models/clinical_record.py
"""
Records a hospital can release to another hospital: visits and lab results.

Both carry `shared_to`, the set of organization ids the record has been
released to. It only ever grows; stored as a JSON list of UUID strings.
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from medshare.models.base import Base
from medshare.utils.datetime_utils import utc_now


class SharedToMixin:
    shared_to: Mapped[list[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        doc="Organization ids this record has been shared with",
    )
    shared_grant_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("shared_records.id", ondelete="SET NULL"),
        nullable=True,
        doc="Most recent grant that released this record",
    )

    def is_shared_with(self, organization_id: uuid.UUID) -> bool:
        return str(organization_id) in (self.shared_to or [])

    def share_with(self, organization_id: uuid.UUID, grant_id: uuid.UUID) -> bool:
        """
        Add organization_id to shared_to. Returns False when it was already there.
        The list is reassigned so the JSON column is flagged dirty.
        """
        self.shared_grant_id = grant_id
        if self.is_shared_with(organization_id):
            return False
        self.shared_to = [*(self.shared_to or []), str(organization_id)]
        return True


class PatientVisit(SharedToMixin, Base):
    __tablename__ = "patient_visits"
    __table_args__ = (
        Index("idx_patient_visits_patient_org", "patient_id", "organization_id"),
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
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Visit Information
    visit_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    visit_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    doctor_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=text("CURRENT_TIMESTAMP"),
    )


class LabResult(SharedToMixin, Base):
    __tablename__ = "lab_results"
    __table_args__ = (
        Index("idx_lab_results_patient_org", "patient_id", "organization_id"),
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
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Result Information
    test_name: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="completed",
        server_default=text("'completed'"),
        doc="completed / pending; informational only",
    )
    result_summary: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=text("CURRENT_TIMESTAMP"),
    )
