"""Initial compliance audit schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "status",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_index(op.f("ix_status_id"), "status", ["id"], unique=False)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=50), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_id"), "users", ["id"], unique=False)
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    op.create_table(
        "outlets",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("address", sa.String(length=500), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=True),
        sa.Column("state", sa.String(length=100), nullable=True),
        sa.Column("postal_code", sa.String(length=20), nullable=True),
        sa.Column("outlet_user_id", sa.Integer(), nullable=True),
        sa.Column("manager_id", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["outlet_user_id"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["manager_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_outlets_id"), "outlets", ["id"], unique=False)
    op.create_index(op.f("ix_outlets_name"), "outlets", ["name"], unique=False)
    op.create_index(op.f("ix_outlets_outlet_user_id"), "outlets", ["outlet_user_id"], unique=False)
    op.create_index(op.f("ix_outlets_manager_id"), "outlets", ["manager_id"], unique=False)

    op.create_table(
        "form_templates",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("structure", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_form_templates_id"), "form_templates", ["id"], unique=False)

    op.create_table(
        "compliance_requirements",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("frequency", sa.String(length=50), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_compliance_requirements_id"), "compliance_requirements", ["id"], unique=False)

    op.create_table(
        "audit",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("outlet_id", sa.Integer(), nullable=False),
        sa.Column("compliance_id", sa.Integer(), nullable=True),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("status_id", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("progress", sa.Integer(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["outlet_id"], ["outlets.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["compliance_id"], ["compliance_requirements.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["status_id"], ["status.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_audit_id"), "audit", ["id"], unique=False)
    op.create_index(op.f("ix_audit_outlet_id"), "audit", ["outlet_id"], unique=False)
    op.create_index(op.f("ix_audit_compliance_id"), "audit", ["compliance_id"], unique=False)
    op.create_index(op.f("ix_audit_user_id"), "audit", ["user_id"], unique=False)
    op.create_index(op.f("ix_audit_status_id"), "audit", ["status_id"], unique=False)

    op.create_table(
        "audit_form",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("form_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("value", sa.JSON(), nullable=True),
        sa.Column("status_id", sa.Integer(), nullable=True),
        sa.Column("ai_analysis", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["form_id"], ["form_templates.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["status_id"], ["status.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_audit_form_id"), "audit_form", ["id"], unique=False)
    op.create_index(op.f("ix_audit_form_form_id"), "audit_form", ["form_id"], unique=False)
    op.create_index(op.f("ix_audit_form_status_id"), "audit_form", ["status_id"], unique=False)

    op.create_table(
        "audit_audit_form",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("audit_id", sa.Integer(), nullable=False),
        sa.Column("audit_form_id", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["audit_id"], ["audit.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["audit_form_id"], ["audit_form.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_audit_audit_form_id"), "audit_audit_form", ["id"], unique=False)
    op.create_index(op.f("ix_audit_audit_form_audit_id"), "audit_audit_form", ["audit_id"], unique=False)
    op.create_index(op.f("ix_audit_audit_form_audit_form_id"), "audit_audit_form", ["audit_form_id"], unique=False)

    op.create_table(
        "audit_version",
        sa.Column("audit_id", sa.Integer(), nullable=False),
        sa.Column("first_audit_id", sa.Integer(), nullable=False),
        sa.Column("audit_version", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["audit_id"], ["audit.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["first_audit_id"], ["audit.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("first_audit_id", "audit_version", name="pk_audit_version"),
        sa.UniqueConstraint("audit_id", name="uq_audit_version_audit_id"),
    )
    op.create_index(op.f("ix_audit_version_first_audit_id"), "audit_version", ["first_audit_id"], unique=False)

    op.create_table(
        "issue",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("severity", sa.String(length=20), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("audit_form_id", sa.Integer(), nullable=False),
        sa.Column("status_id", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["audit_form_id"], ["audit_form.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["status_id"], ["status.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_issue_id"), "issue", ["id"], unique=False)
    op.create_index(op.f("ix_issue_audit_form_id"), "issue", ["audit_form_id"], unique=False)

    op.create_table(
        "corrective_actions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("completion_date", sa.Date(), nullable=True),
        sa.Column("verification_date", sa.Date(), nullable=True),
        sa.Column("issue_id", sa.Integer(), nullable=False),
        sa.Column("status_id", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["issue_id"], ["issue.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["status_id"], ["status.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_corrective_actions_id"), "corrective_actions", ["id"], unique=False)
    op.create_index(op.f("ix_corrective_actions_issue_id"), "corrective_actions", ["issue_id"], unique=False)

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("action_type", sa.String(length=50), nullable=False),
        sa.Column("target_type", sa.String(length=50), nullable=True),
        sa.Column("target_id", sa.Integer(), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_activity_logs_id"), "activity_logs", ["id"], unique=False)
    op.create_index(op.f("ix_activity_logs_created_at"), "activity_logs", ["created_at"], unique=False)
    op.create_index(op.f("ix_activity_logs_user_id"), "activity_logs", ["user_id"], unique=False)
    op.create_index(op.f("ix_activity_logs_action_type"), "activity_logs", ["action_type"], unique=False)
    op.create_index(op.f("ix_activity_logs_target_type"), "activity_logs", ["target_type"], unique=False)
    op.create_index(op.f("ix_activity_logs_target_id"), "activity_logs", ["target_id"], unique=False)


def downgrade() -> None:
    op.drop_table("activity_logs")
    op.drop_table("corrective_actions")
    op.drop_table("issue")
    op.drop_table("audit_version")
    op.drop_table("audit_audit_form")
    op.drop_table("audit_form")
    op.drop_table("audit")
    op.drop_table("compliance_requirements")
    op.drop_table("form_templates")
    op.drop_table("outlets")
    op.drop_table("users")
    op.drop_table("status")
