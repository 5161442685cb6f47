"""Pydantic schemas for the agent registry, the MCP registry and the overview.

Response models are filled from the service dataclasses, so the computed
fields (``earned``, ``completedTasks``, ``totalRevenue``) sit beside the
stored ones.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from ibwt_marketplace.schemas.tasks import CamelModel, OrmCamelModel

# ---------------------------------------------------------------------------
# Agents
# ---------------------------------------------------------------------------


class RegisterAgentRequest(CamelModel):
    """Request body for registering an agent."""

    name: str = Field(..., min_length=1, max_length=100)
    wallet_address: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="Solana wallet that receives payouts",
    )
    owner_address: str | None = Field(
        default=None,
        max_length=64,
        description="Wallet of the registering user; defaults to walletAddress",
    )
    description: str | None = Field(default=None, max_length=5000)
    webhook_url: str | None = Field(default=None, max_length=500)
    capabilities: list[str] = Field(default_factory=list)
    supported_mcps: list[str] = Field(default_factory=list)


class AgentResponse(OrmCamelModel):
    id: str
    name: str
    description: str | None
    wallet_address: str
    owner_address: str
    webhook_url: str | None
    capabilities: list[str]
    supported_mcps: list[str]
    status: str
    rating: float
    completed_tasks: int = 0
    earned: int = 0
    created_at: datetime


class AgentListResponse(CamelModel):
    agents: list[AgentResponse]


class AgentEnvelope(CamelModel):
    agent: AgentResponse


# ---------------------------------------------------------------------------
# MCP servers
# ---------------------------------------------------------------------------


class McpToolRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    input_schema: dict | None = None
    output_schema: dict | None = None
    pricing_model: str | None = Field(
        default=None,
        description="free, per_call or dynamic; inherits the server default when omitted",
    )
    price_usd: float | None = Field(default=None, ge=0)
    dynamic_config: dict | None = None


class RegisterMcpRequest(CamelModel):
    """Request body for publishing an MCP server."""

    provider_address: str = Field(..., min_length=1, max_length=64)
    name: str = Field(default="", max_length=100)
    description: str | None = None
    endpoint_url: str | None = Field(default=None, max_length=500)
    documentation_url: str | None = Field(default=None, max_length=500)
    default_pricing_model: str | None = None
    default_price_usd: float | None = Field(default=None, ge=0)
    tools: list[McpToolRequest] = Field(default_factory=list)


class McpToolResponse(OrmCamelModel):
    id: str
    name: str
    description: str | None
    input_schema: dict | None
    output_schema: dict | None
    pricing_model: str
    price_usd: float | None
    total_calls: int


class McpServerResponse(OrmCamelModel):
    """A server as listed in the public catalogue."""

    id: str
    name: str
    description: str | None
    provider_address: str
    endpoint_url: str | None
    documentation_url: str | None
    status: str
    default_pricing_model: str
    default_price_usd: float | None
    total_calls: int
    tools: list[McpToolResponse]
    created_at: datetime


class McpServerDetailResponse(McpServerResponse):
    total_revenue: float = 0.0


class PaginationResponse(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class McpListResponse(CamelModel):
    data: list[McpServerResponse]
    pagination: PaginationResponse


class McpEnvelope(CamelModel):
    mcp: McpServerDetailResponse


class ProviderMcpResponse(CamelModel):
    """A row of the provider dashboard."""

    id: str
    name: str
    description: str | None
    status: str
    tool_count: int
    total_calls: int
    earned: float
    tools: list[McpToolResponse]
    created_at: datetime


class ProviderMcpListResponse(CamelModel):
    mcps: list[ProviderMcpResponse]


# ---------------------------------------------------------------------------
# Overview
# ---------------------------------------------------------------------------


class OverviewStats(CamelModel):
    active_tasks: int
    completed_tasks: int
    total_spent: int
    total_earned: int


class ActivityResponse(OrmCamelModel):
    kind: str = Field(serialization_alias="type")
    title: str
    amount: float
    date: datetime
    href: str


class OverviewResponse(CamelModel):
    period: str
    stats: OverviewStats
    activities: list[ActivityResponse]
