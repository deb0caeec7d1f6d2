"""partnership ledger schema

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


project_status = postgresql.ENUM("planning", "active", "completed", name="project_status", create_type=False)
task_status = postgresql.ENUM("BACKLOG", "IN_PROGRESS", "REVIEW", "DONE", name="task_status", create_type=False)
transaction_type = postgresql.ENUM("INCOME", "EXPENSE", name="transaction_type", create_type=False)


def _uuid_fk(name: str, target: str, *, nullable: bool = False) -> sa.Column:
    return sa.Column(name, postgresql.UUID(as_uuid=True), sa.ForeignKey(target), nullable=nullable)


def upgrade() -> None:
    project_status.create(op.get_bind(), checkfirst=True)
    task_status.create(op.get_bind(), checkfirst=True)
    transaction_type.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("display_name", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "partners",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False, unique=True),
        sa.Column("equity_percentage", sa.Numeric(9, 4), nullable=False, server_default=sa.text("0")),
        sa.Column("total_capital_contributed", sa.Numeric(14, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("total_earnings", sa.Numeric(14, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "equity_percentage >= 0 AND equity_percentage <= 100",
            name="ck_partners_equity_percentage_range",
        ),
        sa.CheckConstraint("total_capital_contributed >= 0", name="ck_partners_capital_non_negative"),
        sa.CheckConstraint("total_earnings >= 0", name="ck_partners_earnings_non_negative"),
    )

    op.create_table(
        "projects",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("client_name", sa.String(length=255), nullable=True),
        sa.Column("total_value", sa.Numeric(14, 2), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "weights",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("status", project_status, nullable=False),
        sa.Column("is_locked", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("net_profit", sa.Numeric(14, 2), nullable=True),
        _uuid_fk("project_lead_id", "partners.id", nullable=True),
        _uuid_fk("tech_lead_id", "partners.id", nullable=True),
        _uuid_fk("comms_lead_id", "partners.id", nullable=True),
        _uuid_fk("qa_lead_id", "partners.id", nullable=True),
        _uuid_fk("sales_owner_id", "partners.id", nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("total_value >= 0", name="ck_projects_total_value_non_negative"),
    )

    op.create_table(
        "tasks",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        _uuid_fk("project_id", "projects.id"),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=128), nullable=True),
        sa.Column("effort_weight", sa.Numeric(10, 2), nullable=False, server_default=sa.text("1")),
        _uuid_fk("assigned_partner_id", "partners.id", nullable=True),
        sa.Column("status", task_status, nullable=False),
        _uuid_fk("completed_by_id", "users.id", nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("effort_weight > 0", name="ck_tasks_effort_weight_positive"),
    )
    op.create_index("ix_tasks_project_id", "tasks", ["project_id"])

    op.create_table(
        "contributions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        _uuid_fk("project_id", "projects.id"),
        _uuid_fk("partner_id", "partners.id"),
        sa.Column("percentage", sa.Numeric(5, 2), nullable=False),
        sa.Column("sequence_no", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.CheckConstraint("percentage >= 0 AND percentage <= 100", name="ck_contributions_percentage_range"),
        sa.UniqueConstraint("project_id", "partner_id", name="uq_contributions_project_partner"),
    )
    op.create_index("ix_contributions_project_id", "contributions", ["project_id"])

    op.create_table(
        "transactions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        _uuid_fk("project_id", "projects.id"),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("type", transaction_type, nullable=False),
        sa.Column("category", sa.String(length=128), nullable=True),
        sa.Column("method", sa.String(length=64), nullable=True),
        sa.Column("description", sa.String(length=2000), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
    )
    op.create_index("ix_transactions_project_date", "transactions", ["project_id", "date"])

    op.create_table(
        "financials",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("projects.id"), nullable=False, unique=True),
        sa.Column("total_value", sa.Numeric(14, 2), nullable=False),
        sa.Column("actual_balance", sa.Numeric(14, 2), nullable=False),
        sa.Column("business_reserve", sa.Numeric(14, 2), nullable=True),
        sa.Column("religious_allocation", sa.Numeric(14, 2), nullable=True),
        sa.Column("net_distributable", sa.Numeric(14, 2), nullable=True),
        sa.Column("base_pool", sa.Numeric(14, 2), nullable=True),
        sa.Column("performance_pool", sa.Numeric(14, 2), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "capital_injections",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        _uuid_fk("partner_id", "partners.id"),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("equity_delta", sa.Numeric(9, 4), nullable=False),
        sa.Column("post_equity", sa.Numeric(9, 4), nullable=False),
        sa.Column("notes", sa.String(length=2000), nullable=True),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_capital_injections_amount_positive"),
    )
    op.create_index("ix_capital_injections_partner_id", "capital_injections", ["partner_id"])

    op.create_table(
        "payouts",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        _uuid_fk("project_id", "projects.id"),
        _uuid_fk("partner_id", "partners.id"),
        sa.Column("base_share", sa.Numeric(14, 2), nullable=False),
        sa.Column("performance_share", sa.Numeric(14, 2), nullable=False),
        sa.Column("total_payout", sa.Numeric(14, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("project_id", "partner_id", name="uq_payouts_project_partner"),
    )
    op.create_index("ix_payouts_partner_id", "payouts", ["partner_id"])


def downgrade() -> None:
    op.drop_index("ix_payouts_partner_id", table_name="payouts")
    op.drop_table("payouts")

    op.drop_index("ix_capital_injections_partner_id", table_name="capital_injections")
    op.drop_table("capital_injections")

    op.drop_table("financials")

    op.drop_index("ix_transactions_project_date", table_name="transactions")
    op.drop_table("transactions")

    op.drop_index("ix_contributions_project_id", table_name="contributions")
    op.drop_table("contributions")

    op.drop_index("ix_tasks_project_id", table_name="tasks")
    op.drop_table("tasks")

    op.drop_table("projects")
    op.drop_table("partners")
    op.drop_table("users")

    transaction_type.drop(op.get_bind(), checkfirst=True)
    task_status.drop(op.get_bind(), checkfirst=True)
    project_status.drop(op.get_bind(), checkfirst=True)
