"""agents and mcp registry

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19 00:00:00+00:00
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "0002"
down_revision: str | None = "0001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")
PriceType = sa.Numeric(12, 6, asdecimal=False)


def upgrade() -> None:
    agents = op.create_table(
        "agents",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("owner_address", sa.String(64), nullable=False),
        sa.Column("wallet_address", sa.String(64), nullable=False),
        sa.Column("webhook_url", sa.String(500), nullable=True),
        sa.Column("capabilities", JSONType, nullable=False),
        sa.Column("supported_mcps", JSONType, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="available"),
        sa.Column("rating", sa.Float(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "status IN ('available', 'busy', 'offline')",
            name="ck_agents_valid_status",
        ),
    )
    op.create_index("idx_agents_owner", "agents", ["owner_address"])

    # Bids placed before the registry existed get a placeholder agent
    # owned by, and paying out to, the wallet recorded on the bid.
    bids = sa.table(
        "bids",
        sa.column("agent_id", sa.String),
        sa.column("agent_address", sa.String),
        sa.column("created_at", sa.DateTime(timezone=True)),
    )
    legacy = op.get_bind().execute(
        sa.select(
            bids.c.agent_id,
            sa.func.min(bids.c.agent_address),
            sa.func.min(bids.c.created_at),
        ).group_by(bids.c.agent_id)
    )
    rows = [
        {
            "id": agent_id,
            "name": agent_id,
            "owner_address": address,
            "wallet_address": address,
            "capabilities": [],
            "supported_mcps": [],
            "status": "available",
            "rating": 0.0,
            "created_at": first_bid_at,
            "updated_at": first_bid_at,
        }
        for agent_id, address, first_bid_at in legacy
    ]
    if rows:
        op.bulk_insert(agents, rows)
    with op.batch_alter_table("bids") as batch_op:
        batch_op.create_foreign_key("fk_bids_agent_id", "agents", ["agent_id"], ["id"])

    op.create_table(
        "mcp_servers",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("provider_address", sa.String(64), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("endpoint_url", sa.String(500), nullable=True),
        sa.Column("documentation_url", sa.String(500), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column(
            "default_pricing_model", sa.String(20), nullable=False, server_default="free"
        ),
        sa.Column("default_price_usd", PriceType, nullable=True),
        sa.Column("total_calls", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "status IN ('active', 'inactive')", name="ck_mcp_servers_valid_status"
        ),
    )
    op.create_index("idx_mcp_servers_provider", "mcp_servers", ["provider_address"])

    op.create_table(
        "mcp_tools",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "server_id",
            sa.String(36),
            sa.ForeignKey("mcp_servers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("input_schema", JSONType, nullable=True),
        sa.Column("output_schema", JSONType, nullable=True),
        sa.Column("pricing_model", sa.String(20), nullable=False, server_default="free"),
        sa.Column("price_usd", PriceType, nullable=True),
        sa.Column("dynamic_config", JSONType, nullable=True),
        sa.Column("total_calls", sa.Integer(), nullable=False, server_default="0"),
        sa.CheckConstraint(
            "pricing_model IN ('free', 'per_call', 'dynamic')",
            name="ck_mcp_tools_valid_pricing",
        ),
    )
    op.create_index("idx_mcp_tools_server", "mcp_tools", ["server_id"])


def downgrade() -> None:
    op.drop_index("idx_mcp_tools_server", table_name="mcp_tools")
    op.drop_table("mcp_tools")
    op.drop_index("idx_mcp_servers_provider", table_name="mcp_servers")
    op.drop_table("mcp_servers")
    with op.batch_alter_table("bids") as batch_op:
        batch_op.drop_constraint("fk_bids_agent_id", type_="foreignkey")
    op.drop_index("idx_agents_owner", table_name="agents")
    op.drop_table("agents")
