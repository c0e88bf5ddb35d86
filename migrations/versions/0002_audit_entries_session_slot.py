"""audit entries and one session per branch, shift and day

Revision ID: 0002_audit_entries_session_slot
Revises: 0001_initial
Create Date: 2025-03-10 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "0002_audit_entries_session_slot"
down_revision = "0001_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "audit_entries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("actor_id", sa.Integer(), nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("resource_type", sa.String(length=100), nullable=True),
        sa.Column("resource_id", sa.Integer(), nullable=True),
        sa.Column("detail", sa.Text(), nullable=True),
        sa.Column("ip", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_audit_entries_actor_id", "audit_entries", ["actor_id"], unique=False)
    op.create_index("ix_audit_entries_action", "audit_entries", ["action"], unique=False)
    op.create_index("ix_audit_entries_created_at", "audit_entries", ["created_at"], unique=False)

    with op.batch_alter_table("cash_sessions") as batch_op:
        batch_op.create_unique_constraint(
            "uq_cash_sessions_slot",
            ["branch_key", "shift", "business_date"],
        )


def downgrade() -> None:
    with op.batch_alter_table("cash_sessions") as batch_op:
        batch_op.drop_constraint("uq_cash_sessions_slot", type_="unique")

    op.drop_index("ix_audit_entries_created_at", table_name="audit_entries")
    op.drop_index("ix_audit_entries_action", table_name="audit_entries")
    op.drop_index("ix_audit_entries_actor_id", table_name="audit_entries")
    op.drop_table("audit_entries")
