# medshare/models/audit_entry.py
import json
import uuid
from datetime import datetime

from sqlalchemy import (
    DateTime,
    Enum,
    ForeignKey,
    String,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from medshare.core.actor import ActorType
from medshare.models.base import Base
from medshare.utils.datetime_utils import utc_now


class AuditEntry(Base):
    """
    Append-only compliance log of state-changing actions.

    Exactly one of actor_user_id / actor_subsystem is set, matching actor_type.
    """

    __tablename__ = "audit_entries"

    # Primary Key
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # Actor
    actor_type: Mapped[ActorType] = mapped_column(
        Enum(ActorType, name="actor_type_enum", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    actor_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    actor_subsystem: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
        doc="Platform component for system actions, e.g. request_expiry",
    )
    organization_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        doc="Hospital on whose behalf the action happened",
    )

    # Audit Information
    action: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
        doc="e.g. create_record_request, share_patient_records, rejected_record_request",
    )
    details: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    resource_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    resource_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    metadata_json: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        doc="Additional metadata (patient id, counts, organization ids)",
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=text("CURRENT_TIMESTAMP"),
        index=True,
    )

    @property
    def metadata_dict(self) -> dict:
        return json.loads(self.metadata_json) if self.metadata_json else {}
