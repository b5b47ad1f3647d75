"""E-filing workflow core: directory, teams, files, signatures, workflow states

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "a1b2c3d4e5f6"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "efiling_roles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(80), nullable=False, unique=True),
        sa.Column("name", sa.String(200), nullable=False),
    )
    op.create_table(
        "efiling_departments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
    )
    op.create_table(
        "efiling_users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(255)),
        sa.Column("role_id", sa.Integer(), sa.ForeignKey("efiling_roles.id", ondelete="SET NULL")),
        sa.Column("department_id", sa.Integer(), sa.ForeignKey("efiling_departments.id", ondelete="SET NULL")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "efiling_user_teams",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("manager_id", sa.Integer(), sa.ForeignKey("efiling_users.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("team_member_id", sa.Integer(), sa.ForeignKey("efiling_users.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("team_role", sa.String(50), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("manager_id", "team_member_id", name="uq_team_manager_member"),
    )

    op.create_table(
        "efiling_files",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("file_number", sa.String(100), unique=True),
        sa.Column("subject", sa.String(500), nullable=False, server_default=""),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("efiling_users.id", ondelete="RESTRICT"), nullable=False, index=True),
        sa.Column("assigned_to", sa.Integer(), sa.ForeignKey("efiling_users.id", ondelete="SET NULL"), index=True),
        sa.Column("workflow_state_id", sa.Integer()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_table(
        "efiling_file_movements",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("file_id", sa.Integer(), sa.ForeignKey("efiling_files.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("from_user_id", sa.Integer(), sa.ForeignKey("efiling_users.id", ondelete="SET NULL")),
        sa.Column("to_user_id", sa.Integer(), sa.ForeignKey("efiling_users.id", ondelete="SET NULL")),
        sa.Column("action_type", sa.String(30), nullable=False, server_default="forward"),
        sa.Column("is_return_to_creator", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_team_internal", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("remarks", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "action_type IN ('forward', 'return_to_creator')",
            name="ck_movement_action_type",
        ),
    )
    op.create_table(
        "efiling_document_signatures",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("file_id", sa.Integer(), sa.ForeignKey("efiling_files.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("efiling_users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("signature_type", sa.String(30), nullable=False, server_default="e-signature"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("signed_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_signature_file_user", "efiling_document_signatures", ["file_id", "user_id"])

    op.create_table(
        "efiling_file_workflow_states",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("file_id", sa.Integer(), sa.ForeignKey("efiling_files.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("creator_id", sa.Integer(), sa.ForeignKey("efiling_users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("current_assigned_to", sa.Integer(), sa.ForeignKey("efiling_users.id", ondelete="SET NULL")),
        sa.Column("current_state", sa.String(30), nullable=False, server_default="TEAM_INTERNAL"),
        sa.Column("is_within_team", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("tat_started", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("tat_started_at", sa.DateTime(timezone=True)),
        sa.Column("last_external_mark_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade():
    op.drop_table("efiling_file_workflow_states")
    op.drop_index("ix_signature_file_user", table_name="efiling_document_signatures")
    op.drop_table("efiling_document_signatures")
    op.drop_table("efiling_file_movements")
    op.drop_table("efiling_files")
    op.drop_table("efiling_user_teams")
    op.drop_table("efiling_users")
    op.drop_table("efiling_departments")
    op.drop_table("efiling_roles")
