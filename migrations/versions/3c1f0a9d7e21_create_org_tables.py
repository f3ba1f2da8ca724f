"""Create role, user, audit_log and org_save_log tables

The org tree itself is not stored locally: defaults are compiled in
and overrides live in the hosted ``org_metadata`` table.  These tables
hold who may edit, what they changed, and how each save went.

Revision ID: 3c1f0a9d7e21
Revises:
Create Date: 2026-10-19 09:14:02.511204

"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3c1f0a9d7e21"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create the four application tables."""
    op.create_table(
        "role",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("role_name", sa.String(50), nullable=False, unique=True),
        sa.Column("description", sa.String(200), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
    )

    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(200), nullable=False, unique=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("role_id", sa.Integer(), sa.ForeignKey("role.id"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("last_login", sa.DateTime(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
    )

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id"), nullable=True),
        sa.Column("action_type", sa.String(50), nullable=False),
        sa.Column("entity_type", sa.String(100), nullable=False),
        sa.Column("entity_id", sa.String(100), nullable=True),
        sa.Column("previous_value", sa.Text(), nullable=True),
        sa.Column("new_value", sa.Text(), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.String(500), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
        sa.CheckConstraint(
            "action_type IN ('UPDATE', 'SYNC', 'LOGIN', 'LOGOUT')",
            name="CK_audit_log_action_type",
        ),
    )
    op.create_index(
        "IX_audit_log_entity", "audit_log", ["entity_type", "entity_id"]
    )

    op.create_table(
        "org_save_log",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "triggered_by", sa.Integer(), sa.ForeignKey("user.id"), nullable=True
        ),
        sa.Column("node_id", sa.String(100), nullable=True),
        sa.Column("records_attempted", sa.Integer(), nullable=False),
        sa.Column("records_saved", sa.Integer(), nullable=False),
        sa.Column("records_failed", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint(
            "status IN ('started', 'completed', 'partial', 'failed')",
            name="CK_org_save_log_status",
        ),
    )


def downgrade() -> None:
    """Drop the application tables."""
    op.drop_table("org_save_log")
    op.drop_index("IX_audit_log_entity", table_name="audit_log")
    op.drop_table("audit_log")
    op.drop_table("user")
    op.drop_table("role")
