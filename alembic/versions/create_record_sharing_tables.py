"""create_record_sharing_tables

Revision ID: create_record_sharing
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "create_record_sharing"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

RECORD_SCOPES = ("visits", "lab_results", "all")
REQUEST_STATUSES = ("pending", "approved", "rejected", "expired")


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "organizations",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("address", sa.String(length=500), nullable=True),
        sa.Column("contact_email", sa.String(length=255), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("organization_id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=200), nullable=False),
        sa.Column("is_admin", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", "organization_id", name="uq_users_email_organization"),
    )
    op.create_index(op.f("ix_users_organization_id"), "users", ["organization_id"])

    op.create_table(
        "patients",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("registered_organization_id", sa.Uuid(), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("patient_code", sa.String(length=50), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["registered_organization_id"], ["organizations.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_patients_patient_code"), "patients", ["patient_code"], unique=True)

    op.create_table(
        "record_requests",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("patient_id", sa.Uuid(), nullable=False),
        sa.Column("requesting_organization_id", sa.Uuid(), nullable=False),
        sa.Column("requested_organization_id", sa.Uuid(), nullable=False),
        sa.Column("requesting_user_id", sa.Uuid(), nullable=True),
        sa.Column("resolved_by_user_id", sa.Uuid(), nullable=True),
        sa.Column("share_grant_id", sa.Uuid(), nullable=True),
        sa.Column("patient_name", sa.String(length=255), nullable=True),
        sa.Column("scope", sa.Enum(*RECORD_SCOPES, name="record_scope_enum"), nullable=False),
        sa.Column("is_urgent", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("reason", sa.String(length=1000), nullable=True),
        sa.Column(
            "status",
            sa.Enum(*REQUEST_STATUSES, name="request_status_enum"),
            server_default=sa.text("'pending'"),
            nullable=False,
        ),
        _created_at(),
        _created_at("updated_at"),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["patient_id"], ["patients.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["requesting_organization_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["requested_organization_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["requesting_user_id"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["resolved_by_user_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_record_requests_patient_id"), "record_requests", ["patient_id"])
    op.create_index(
        "idx_record_requests_requested_org",
        "record_requests",
        ["requested_organization_id", "created_at"],
    )
    op.create_index(
        "idx_record_requests_requesting_org",
        "record_requests",
        ["requesting_organization_id", "created_at"],
    )

    op.create_table(
        "shared_records",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("patient_id", sa.Uuid(), nullable=False),
        sa.Column("source_organization_id", sa.Uuid(), nullable=False),
        sa.Column("target_organization_id", sa.Uuid(), nullable=False),
        sa.Column("request_id", sa.Uuid(), nullable=False),
        sa.Column("scope", sa.Enum(*RECORD_SCOPES, name="record_scope_enum", create_type=False), nullable=False),
        sa.Column("visit_count", sa.Integer(), nullable=False),
        sa.Column("lab_result_count", sa.Integer(), nullable=False),
        sa.Column("records_count", sa.Integer(), nullable=False),
        _created_at("shared_at"),
        sa.ForeignKeyConstraint(["patient_id"], ["patients.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["source_organization_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["target_organization_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["request_id"], ["record_requests.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_shared_records_request_id"), "shared_records", ["request_id"])
    op.create_index(op.f("ix_shared_records_shared_at"), "shared_records", ["shared_at"])
    op.create_index(
        "idx_shared_records_target_patient",
        "shared_records",
        ["target_organization_id", "patient_id"],
    )

    for table_name in ("patient_visits", "lab_results"):
        if table_name == "patient_visits":
            detail_columns = [
                sa.Column("visit_date", sa.DateTime(timezone=True), nullable=False),
                sa.Column("visit_type", sa.String(length=50), nullable=True),
                sa.Column("doctor_name", sa.String(length=200), nullable=True),
                sa.Column("notes", sa.Text(), nullable=True),
            ]
            index_name = "idx_patient_visits_patient_org"
        else:
            detail_columns = [
                sa.Column("test_name", sa.String(length=200), nullable=False),
                sa.Column("status", sa.String(length=50), server_default=sa.text("'completed'"), nullable=False),
                sa.Column("result_summary", sa.Text(), nullable=True),
            ]
            index_name = "idx_lab_results_patient_org"

        op.create_table(
            table_name,
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("patient_id", sa.Uuid(), nullable=False),
            sa.Column("organization_id", sa.Uuid(), nullable=False),
            *detail_columns,
            sa.Column("shared_to", sa.JSON(), nullable=False),
            sa.Column("shared_grant_id", sa.Uuid(), nullable=True),
            _created_at(),
            sa.ForeignKeyConstraint(["patient_id"], ["patients.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["shared_grant_id"], ["shared_records.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(index_name, table_name, ["patient_id", "organization_id"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.String(length=2000), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=False),
        sa.Column("action_url", sa.String(length=500), nullable=True),
        sa.Column("metadata_json", sa.Text(), nullable=True),
        sa.Column("is_read", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_notifications_user_created", "notifications", ["user_id", "created_at"])

    op.create_table(
        "audit_entries",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("actor_type", sa.Enum("user", "system", name="actor_type_enum"), nullable=False),
        sa.Column("actor_user_id", sa.Uuid(), nullable=True),
        sa.Column("actor_subsystem", sa.String(length=100), nullable=True),
        sa.Column("organization_id", sa.Uuid(), nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("details", sa.String(length=1000), nullable=True),
        sa.Column("resource_type", sa.String(length=50), nullable=True),
        sa.Column("resource_id", sa.String(length=100), nullable=True),
        sa.Column("metadata_json", sa.Text(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["actor_user_id"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_audit_entries_actor_user_id"), "audit_entries", ["actor_user_id"])
    op.create_index(op.f("ix_audit_entries_organization_id"), "audit_entries", ["organization_id"])
    op.create_index(op.f("ix_audit_entries_action"), "audit_entries", ["action"])
    op.create_index(op.f("ix_audit_entries_created_at"), "audit_entries", ["created_at"])


def downgrade() -> None:
    op.drop_table("audit_entries")
    op.drop_table("notifications")
    op.drop_table("lab_results")
    op.drop_table("patient_visits")
    op.drop_table("shared_records")
    op.drop_table("record_requests")
    op.drop_table("patients")
    op.drop_table("users")
    op.drop_table("organizations")

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        op.execute("DROP TYPE IF EXISTS actor_type_enum")
        op.execute("DROP TYPE IF EXISTS request_status_enum")
        op.execute("DROP TYPE IF EXISTS record_scope_enum")
