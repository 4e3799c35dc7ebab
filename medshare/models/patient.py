import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from medshare.models.base import Base
from medshare.utils.datetime_utils import utc_now


class Patient(Base):
    """
    Patient identity shared across hospitals.
    Visits and lab results are owned per organization and point back here.
    """

    __tablename__ = "patients"

    # Primary Key
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # Foreign Keys
    registered_organization_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True,
        doc="Hospital where the patient was first registered",
    )

    # Identity
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    patient_code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
        index=True,
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=text("CURRENT_TIMESTAMP"),
    )
