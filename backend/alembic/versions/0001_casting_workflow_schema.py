"""casting workflow and automation schema

Revision ID: 0001_casting_workflow_schema
Revises:
Create Date: 2026-10-12 09:00:00
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_casting_workflow_schema"
down_revision = None
branch_labels = None
depends_on = None


def _uuid() -> postgresql.UUID:
    return postgresql.UUID(as_uuid=True)


def _jsonb_column(name: str) -> sa.Column:
    return sa.Column(
        name,
        postgresql.JSONB(astext_type=sa.Text()),
        nullable=False,
        server_default=sa.text("'{}'::jsonb"),
    )


def _timestamp(name: str) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()"))


def upgrade() -> None:
    op.create_table(
        "clients",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("company_name", sa.String(length=255), nullable=False),
        sa.Column("contact_email", sa.String(length=255), nullable=True),
        sa.Column("drive_folder_id", sa.String(length=255), nullable=True),
        sa.Column("drive_folder_url", sa.String(length=1024), nullable=True),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "creators",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("first_name", sa.String(length=120), nullable=False),
        sa.Column("last_name", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("primary_language", sa.String(length=16), nullable=True),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_creators_email"),
    )

    op.create_table(
        "users",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("external_id", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False),
        sa.Column("client_id", _uuid(), nullable=True),
        sa.Column("creator_id", _uuid(), nullable=True),
        _timestamp("created_at"),
        sa.CheckConstraint("role IN ('social_bubble', 'client', 'creator')", name="ck_users_role_values"),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["creator_id"], ["creators.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("external_id", name="uq_users_external_id"),
    )
    op.create_index("ix_users_client_id", "users", ["client_id"], unique=False)
    op.create_index("ix_users_creator_id", "users", ["creator_id"], unique=False)

    op.create_table(
        "castings",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("client_id", _uuid(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="draft"),
        sa.Column("max_creators", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("compensation", sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column("created_by", _uuid(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.CheckConstraint(
            "status IN ('draft', 'inviting', 'check_intern', 'send_client_feedback', "
            "'approved_by_client', 'shooting', 'done')",
            name="ck_castings_status_values",
        ),
        sa.CheckConstraint("max_creators > 0", name="ck_castings_max_creators_positive"),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_castings_client_id", "castings", ["client_id"], unique=False)
    op.create_index("ix_castings_status", "castings", ["status"], unique=False)

    op.create_table(
        "casting_invitations",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("casting_id", _uuid(), nullable=False),
        sa.Column("creator_id", _uuid(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        _timestamp("invited_at"),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN ('pending', 'accepted', 'rejected')",
            name="ck_casting_invitations_status_values",
        ),
        sa.ForeignKeyConstraint(["casting_id"], ["castings.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["creator_id"], ["creators.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("casting_id", "creator_id", name="uq_casting_invitations_casting_creator"),
    )
    op.create_index("ix_casting_invitations_casting_id", "casting_invitations", ["casting_id"], unique=False)
    op.create_index("ix_casting_invitations_creator_id", "casting_invitations", ["creator_id"], unique=False)

    op.create_table(
        "casting_selections",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("casting_id", _uuid(), nullable=False),
        sa.Column("creator_id", _uuid(), nullable=False),
        sa.Column("selected_by", _uuid(), nullable=True),
        sa.Column("selected_by_role", sa.String(length=32), nullable=False),
        _timestamp("created_at"),
        sa.CheckConstraint(
            "selected_by_role IN ('social_bubble', 'client')",
            name="ck_casting_selections_role_values",
        ),
        sa.ForeignKeyConstraint(["casting_id"], ["castings.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["creator_id"], ["creators.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["selected_by"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_casting_selections_casting_id", "casting_selections", ["casting_id"], unique=False)
    op.create_index("ix_casting_selections_creator_id", "casting_selections", ["creator_id"], unique=False)

    op.create_table(
        "briefings",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("client_id", _uuid(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        _jsonb_column("content"),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="draft"),
        sa.Column("created_by", _uuid(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.CheckConstraint(
            "status IN ('draft', 'waiting_internal_feedback', 'internal_feedback_given', "
            "'sent_client_feedback', 'client_feedback_given', 'approved')",
            name="ck_briefings_status_values",
        ),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_briefings_client_id", "briefings", ["client_id"], unique=False)

    op.create_table(
        "casting_briefing_links",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("casting_id", _uuid(), nullable=False),
        sa.Column("briefing_id", _uuid(), nullable=False),
        sa.Column("linked_by", _uuid(), nullable=True),
        _timestamp("linked_at"),
        sa.ForeignKeyConstraint(["casting_id"], ["castings.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["briefing_id"], ["briefings.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["linked_by"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("casting_id", "briefing_id", name="uq_casting_briefing_links_pair"),
    )
    op.create_index("ix_casting_briefing_links_casting_id", "casting_briefing_links", ["casting_id"], unique=False)
    op.create_index("ix_casting_briefing_links_briefing_id", "casting_briefing_links", ["briefing_id"], unique=False)

    op.create_table(
        "creator_submissions",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("casting_id", _uuid(), nullable=False),
        sa.Column("creator_id", _uuid(), nullable=False),
        sa.Column("submission_status", sa.String(length=32), nullable=False, server_default="pending"),
        sa.Column("content_upload_link", sa.String(length=1024), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("feedback", sa.Text(), nullable=True),
        sa.Column("feedback_by", _uuid(), nullable=True),
        sa.Column("feedback_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_by", _uuid(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("drive_folder_id", sa.String(length=255), nullable=True),
        sa.Column("drive_folder_url", sa.String(length=1024), nullable=True),
        sa.Column("drive_folder_created_at", sa.DateTime(timezone=True), nullable=True),
        _timestamp("created_at"),
        sa.CheckConstraint(
            "submission_status IN ('pending', 'pending_review', 'revision_requested', 'approved')",
            name="ck_creator_submissions_status_values",
        ),
        sa.ForeignKeyConstraint(["casting_id"], ["castings.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["creator_id"], ["creators.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["feedback_by"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["approved_by"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("casting_id", "creator_id", name="uq_creator_submissions_casting_creator"),
    )
    op.create_index("ix_creator_submissions_casting_id", "creator_submissions", ["casting_id"], unique=False)
    op.create_index("ix_creator_submissions_creator_id", "creator_submissions", ["creator_id"], unique=False)

    op.create_table(
        "automation_rules",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("trigger_name", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _jsonb_column("conditions_json"),
        sa.Column("execution_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_enabled", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_by", _uuid(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_automation_rules_trigger_name", "automation_rules", ["trigger_name"], unique=False)

    op.create_table(
        "automation_actions",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("rule_id", _uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("action_type", sa.String(length=32), nullable=False),
        _jsonb_column("configuration_json"),
        sa.Column("execution_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_enabled", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.CheckConstraint(
            "action_type IN ('slack_notification', 'email', 'webhook')",
            name="ck_automation_actions_type_values",
        ),
        sa.ForeignKeyConstraint(["rule_id"], ["automation_rules.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_automation_actions_rule_id", "automation_actions", ["rule_id"], unique=False)

    op.create_table(
        "automation_logs",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("trigger_name", sa.String(length=64), nullable=False),
        sa.Column("rule_id", _uuid(), nullable=True),
        sa.Column("action_id", _uuid(), nullable=True),
        _jsonb_column("parameters_json"),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("executed_by", _uuid(), nullable=True),
        _timestamp("executed_at"),
        sa.CheckConstraint(
            "status IN ('success', 'failed', 'test', 'skipped')",
            name="ck_automation_logs_status_values",
        ),
        sa.ForeignKeyConstraint(["rule_id"], ["automation_rules.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["action_id"], ["automation_actions.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["executed_by"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_automation_logs_trigger_name", "automation_logs", ["trigger_name"], unique=False)
    op.create_index("ix_automation_logs_rule_id", "automation_logs", ["rule_id"], unique=False)
    op.create_index("ix_automation_logs_executed_at", "automation_logs", ["executed_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_automation_logs_executed_at", table_name="automation_logs")
    op.drop_index("ix_automation_logs_rule_id", table_name="automation_logs")
    op.drop_index("ix_automation_logs_trigger_name", table_name="automation_logs")
    op.drop_table("automation_logs")
    op.drop_index("ix_automation_actions_rule_id", table_name="automation_actions")
    op.drop_table("automation_actions")
    op.drop_index("ix_automation_rules_trigger_name", table_name="automation_rules")
    op.drop_table("automation_rules")
    op.drop_index("ix_creator_submissions_creator_id", table_name="creator_submissions")
    op.drop_index("ix_creator_submissions_casting_id", table_name="creator_submissions")
    op.drop_table("creator_submissions")
    op.drop_index("ix_casting_briefing_links_briefing_id", table_name="casting_briefing_links")
    op.drop_index("ix_casting_briefing_links_casting_id", table_name="casting_briefing_links")
    op.drop_table("casting_briefing_links")
    op.drop_index("ix_briefings_client_id", table_name="briefings")
    op.drop_table("briefings")
    op.drop_index("ix_casting_selections_creator_id", table_name="casting_selections")
    op.drop_index("ix_casting_selections_casting_id", table_name="casting_selections")
    op.drop_table("casting_selections")
    op.drop_index("ix_casting_invitations_creator_id", table_name="casting_invitations")
    op.drop_index("ix_casting_invitations_casting_id", table_name="casting_invitations")
    op.drop_table("casting_invitations")
    op.drop_index("ix_castings_status", table_name="castings")
    op.drop_index("ix_castings_client_id", table_name="castings")
    op.drop_table("castings")
    op.drop_index("ix_users_creator_id", table_name="users")
    op.drop_index("ix_users_client_id", table_name="users")
    op.drop_table("users")
    op.drop_table("creators")
    op.drop_table("clients")
