"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-02-14 00:00:00+00:00
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        "tasks",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("request", sa.Text(), nullable=False),
        sa.Column("budget_ibwt", sa.Integer(), nullable=False),
        sa.Column("user_address", sa.String(64), nullable=False),
        sa.Column("requirements", JSONType, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="open"),
        sa.Column("accepted_bid_id", sa.String(36), nullable=True),
        sa.Column("escrow_tx_id", sa.String(128), nullable=True),
        sa.Column("lock_tx_id", sa.String(128), nullable=True),
        sa.Column("approve_tx_id", sa.String(128), nullable=True),
        sa.Column("decline_tx_id", sa.String(128), nullable=True),
        sa.Column("review_deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("budget_ibwt > 0", name="ck_tasks_positive_budget"),
    )
    op.create_index("idx_tasks_status", "tasks", ["status"])
    op.create_index("idx_tasks_user_address", "tasks", ["user_address"])
    op.create_index("idx_tasks_created_at", "tasks", ["created_at"])

    op.create_table(
        "bids",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "task_id",
            sa.String(36),
            sa.ForeignKey("tasks.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("agent_id", sa.String(64), nullable=False),
        sa.Column("agent_address", sa.String(64), nullable=False),
        sa.Column("agent_fee", sa.Integer(), nullable=False),
        sa.Column("mcp_plan", JSONType, nullable=False),
        sa.Column("total", sa.Integer(), nullable=False),
        sa.Column("eta_minutes", sa.Integer(), nullable=True),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "status IN ('pending', 'accepted', 'rejected')",
            name="ck_bids_valid_status",
        ),
    )
    op.create_index("idx_bids_task", "bids", ["task_id"])
    op.create_index("idx_bids_agent", "bids", ["agent_id"])

    with op.batch_alter_table("tasks") as batch_op:
        batch_op.create_foreign_key(
            "fk_tasks_accepted_bid_id", "bids", ["accepted_bid_id"], ["id"]
        )

    op.create_table(
        "results",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "task_id",
            sa.String(36),
            sa.ForeignKey("tasks.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("agent_id", sa.String(64), nullable=False),
        sa.Column("outputs", JSONType, nullable=False),
        sa.Column("mcp_calls_log", JSONType, nullable=True),
        sa.Column("revision_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "task_events",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "task_id",
            sa.String(36),
            sa.ForeignKey("tasks.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("event_type", sa.String(40), nullable=False),
        sa.Column("old_status", sa.String(20), nullable=True),
        sa.Column("new_status", sa.String(20), nullable=False),
        sa.Column("actor", sa.String(64), nullable=False, server_default="SYSTEM"),
        sa.Column("metadata", JSONType, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_task_events_task", "task_events", ["task_id"])
    op.create_index("idx_task_events_type", "task_events", ["event_type"])

    op.create_table(
        "waitlist_entries",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="user"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "role IN ('user', 'agent_provider', 'mcp_provider', 'other')",
            name="ck_waitlist_valid_role",
        ),
    )

    op.create_table(
        "contact_messages",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("subject", sa.String(50), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("contact_messages")
    op.drop_table("waitlist_entries")
    op.drop_index("idx_task_events_type", table_name="task_events")
    op.drop_index("idx_task_events_task", table_name="task_events")
    op.drop_table("task_events")
    op.drop_table("results")
    with op.batch_alter_table("tasks") as batch_op:
        batch_op.drop_constraint("fk_tasks_accepted_bid_id", type_="foreignkey")
    op.drop_index("idx_bids_agent", table_name="bids")
    op.drop_index("idx_bids_task", table_name="bids")
    op.drop_table("bids")
    op.drop_index("idx_tasks_created_at", table_name="tasks")
    op.drop_index("idx_tasks_user_address", table_name="tasks")
    op.drop_index("idx_tasks_status", table_name="tasks")
    op.drop_table("tasks")
