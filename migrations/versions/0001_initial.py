"""reference data and cash sessions

Revision ID: 0001_initial
Revises:
Create Date: 2025-03-03 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

MONEY = sa.Numeric(14, 2)


def upgrade() -> None:
    op.create_table(
        "branches",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False, unique=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "agreements",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False, unique=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(length=150), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=True),
        sa.Column("role", sa.String(length=50), nullable=False, server_default="CASHIER"),
        sa.Column("branch_id", sa.Integer(), sa.ForeignKey("branches.id"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "cash_sessions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("branch_id", sa.Integer(), sa.ForeignKey("branches.id"), nullable=True),
        sa.Column("branch_name", sa.String(length=255), nullable=True),
        sa.Column("branch_key", sa.String(length=300), nullable=False),
        sa.Column("shift", sa.String(length=1), nullable=False),
        sa.Column("session_at", sa.DateTime(), nullable=False),
        sa.Column("business_date", sa.Date(), nullable=False),
        sa.Column("declared_total_sales", MONEY, nullable=False, server_default="0"),
        sa.Column("cash_on_hand", MONEY, nullable=False, server_default="0"),
        sa.Column("card_amount", MONEY, nullable=False, server_default="0"),
        sa.Column("card_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("agreement_amount", MONEY, nullable=False, server_default="0"),
        sa.Column("agreement_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("voucher_amount", MONEY, nullable=False, server_default="0"),
        sa.Column("voucher_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("internal_amount", MONEY, nullable=False, server_default="0"),
        sa.Column("internal_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("amount_to_deposit", MONEY, nullable=False, server_default="0"),
        sa.Column("registered_total", MONEY, nullable=False, server_default="0"),
        sa.Column("variance", MONEY, nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=255), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("cashier_name", sa.String(length=255), nullable=False),
        sa.Column("cashier_id", sa.String(length=50), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_cash_sessions_branch_id", "cash_sessions", ["branch_id"], unique=False)
    op.create_index("ix_cash_sessions_branch_name", "cash_sessions", ["branch_name"], unique=False)
    op.create_index("ix_cash_sessions_business_date", "cash_sessions", ["business_date"], unique=False)
    op.create_index("ix_cash_sessions_cashier_id", "cash_sessions", ["cashier_id"], unique=False)
    op.create_index("ix_cash_sessions_cashier", "cash_sessions", ["cashier_id", "cashier_name"], unique=False)
    op.create_index("ix_cash_sessions_session_at", "cash_sessions", ["session_at"], unique=False)

    op.create_table(
        "agreement_line_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("session_id", sa.Integer(), sa.ForeignKey("cash_sessions.id"), nullable=False),
        sa.Column("agreement_id", sa.Integer(), sa.ForeignKey("agreements.id"), nullable=True),
        sa.Column("agreement_name", sa.String(length=255), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("amount", MONEY, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_agreement_line_items_session_id", "agreement_line_items", ["session_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_agreement_line_items_session_id", table_name="agreement_line_items")
    op.drop_table("agreement_line_items")
    for index_name in (
        "ix_cash_sessions_session_at",
        "ix_cash_sessions_cashier",
        "ix_cash_sessions_cashier_id",
        "ix_cash_sessions_business_date",
        "ix_cash_sessions_branch_name",
        "ix_cash_sessions_branch_id",
    ):
        op.drop_index(index_name, table_name="cash_sessions")
    op.drop_table("cash_sessions")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
    op.drop_table("agreements")
    op.drop_table("branches")
