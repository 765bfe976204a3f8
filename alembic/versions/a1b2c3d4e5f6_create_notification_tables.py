"""create organizations, users, tasks, task_notifications, leads, lead_settings

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy import text
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "a1b2c3d4e5f6"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _uuid_pk(name: str) -> sa.Column:
    return sa.Column(
        name,
        postgresql.UUID(as_uuid=True),
        primary_key=True,
        server_default=sa.func.gen_random_uuid(),
    )


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "organizations",
        _uuid_pk("organization_id"),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255)),
        sa.Column("twilio_account_sid", sa.String(64)),
        sa.Column("twilio_auth_token", sa.String(128)),
        sa.Column("twilio_phone_number", sa.String(20)),
        *_timestamps(),
    )

    op.create_table(
        "users",
        _uuid_pk("user_id"),
        sa.Column(
            "organization_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("organizations.organization_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255)),
        sa.Column("phone", sa.String(20)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "tasks",
        _uuid_pk("task_id"),
        sa.Column(
            "organization_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("organizations.organization_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True)),
        sa.Column(
            "is_completed", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("deleted_at", sa.DateTime(timezone=True)),
        sa.Column(
            "assigned_to_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.user_id", ondelete="SET NULL"),
        ),
        *_timestamps(),
    )
    op.create_index("idx_tasks_assigned_to", "tasks", ["assigned_to_id"])

    op.create_table(
        "task_notifications",
        _uuid_pk("notification_id"),
        sa.Column(
            "task_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("tasks.task_id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.user_id", ondelete="SET NULL"),
        ),
        sa.Column(
            "organization_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("organizations.organization_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("notification_type", sa.String(20), nullable=False),
        sa.Column("hours_before_due", sa.Integer(), nullable=False),
        sa.Column("subject", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("scheduled_for", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("is_email_sent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_sms_sent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "is_realtime_sent", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("failure_reason", sa.Text()),
        sa.Column("sent_at", sa.DateTime(timezone=True)),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('pending', 'sent', 'failed', 'cancelled')",
            name="ck_notification_status",
        ),
        sa.CheckConstraint("hours_before_due > 0", name="ck_hours_before_due_positive"),
    )
    # At most one pending reminder per (task, lead time)
    op.create_index(
        "uq_task_notifications_pending_offset",
        "task_notifications",
        ["task_id", "hours_before_due"],
        unique=True,
        postgresql_where=text("status = 'pending'"),
    )
    op.create_index(
        "idx_task_notifications_due",
        "task_notifications",
        ["status", "scheduled_for"],
    )
    op.create_index(
        "idx_task_notifications_org", "task_notifications", ["organization_id"]
    )

    op.create_table(
        "leads",
        _uuid_pk("lead_id"),
        sa.Column(
            "organization_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("organizations.organization_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255)),
        sa.Column("phone", sa.String(20)),
        sa.Column("service_description", sa.Text()),
        sa.Column(
            "automatic_follow_up_enabled",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column(
            "automatic_follow_up_interval",
            sa.Integer(),
            nullable=False,
            server_default=text("1"),
        ),
        sa.Column("automatic_follow_up_template", sa.Text()),
        sa.Column("next_automatic_follow_up", sa.DateTime(timezone=True)),
        sa.Column("last_automatic_follow_up", sa.DateTime(timezone=True)),
        sa.Column(
            "automatic_follow_up_count", sa.Integer(), nullable=False, server_default=text("0")
        ),
        sa.Column(
            "automatic_follow_up_email_count",
            sa.Integer(),
            nullable=False,
            server_default=text("0"),
        ),
        sa.Column(
            "automatic_follow_up_sms_count",
            sa.Integer(),
            nullable=False,
            server_default=text("0"),
        ),
        *_timestamps(),
        sa.CheckConstraint(
            "automatic_follow_up_interval >= 1", name="ck_follow_up_interval_min"
        ),
        sa.CheckConstraint(
            "(automatic_follow_up_enabled AND next_automatic_follow_up IS NOT NULL) "
            "OR (NOT automatic_follow_up_enabled AND next_automatic_follow_up IS NULL)",
            name="ck_follow_up_schedule_consistent",
        ),
    )
    op.create_index(
        "idx_leads_follow_up_due",
        "leads",
        ["next_automatic_follow_up"],
        postgresql_where=text("automatic_follow_up_enabled"),
    )

    op.create_table(
        "lead_settings",
        sa.Column(
            "organization_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("organizations.organization_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("email_subject", sa.String(255)),
        sa.Column("email_template", sa.Text()),
        sa.Column("sms_template", sa.Text()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("lead_settings")
    op.drop_index("idx_leads_follow_up_due", table_name="leads")
    op.drop_table("leads")
    op.drop_index("idx_task_notifications_org", table_name="task_notifications")
    op.drop_index("idx_task_notifications_due", table_name="task_notifications")
    op.drop_index(
        "uq_task_notifications_pending_offset", table_name="task_notifications"
    )
    op.drop_table("task_notifications")
    op.drop_index("idx_tasks_assigned_to", table_name="tasks")
    op.drop_table("tasks")
    op.drop_table("users")
    op.drop_table("organizations")
