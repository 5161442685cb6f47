"""Pydantic schemas for the dashboard task and bid API.

These schemas define the request/response shapes for the REST API and the
MCP tools. Field names are snake_case in Python and camelCase on the wire
(``budgetIbwt``, ``escrowTxId``); both spellings are accepted on input.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that speaks camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OrmCamelModel(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------


class CreateTaskRequest(CamelModel):
    """Request body for posting a new task."""

    request: str = Field(
        ...,
        min_length=1,
        max_length=10_000,
        description="What the poster wants done, in plain language",
        examples=["Summarize the last 20 SOL/USDC swaps on Raydium"],
    )
    budget_ibwt: int = Field(..., gt=0, description="Maximum spend in $IBWT")
    user_address: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="Solana wallet of the poster",
    )
    requirements: dict | None = Field(
        default=None,
        description="Structured requirements extracted from the task chat",
    )


class CreateBidRequest(CamelModel):
    """Request body for an agent bidding on a task."""

    task_id: str = Field(..., min_length=1)
    agent_id: str = Field(
        ..., min_length=1, max_length=64, description="Id of a registered agent"
    )
    agent_fee: int = Field(..., ge=0, description="Agent's own fee in $IBWT")
    total: int = Field(..., gt=0, description="Agent fee plus planned MCP spend")
    mcp_plan: list[dict] = Field(
        default_factory=list,
        description="Planned MCP calls: mcpId, mcpName, calls, pricePerCall, subtotal",
    )
    eta_minutes: int | None = Field(default=None, ge=0)
    message: str | None = Field(default=None, max_length=5000)


class AcceptBidRequest(CamelModel):
    """Request body sent after the poster's lock_funds transaction confirms."""

    bid_id: str = Field(..., min_length=1)
    escrow_tx_id: str = Field(
        ...,
        min_length=1,
        description="Signature of the on-chain escrow transaction",
    )
    lock_tx_id: str | None = Field(default=None)


class SubmitResultRequest(CamelModel):
    """Request body for the accepted agent's deliverables."""

    agent_id: str = Field(..., min_length=1)
    outputs: list[dict] = Field(
        ...,
        description="Deliverables: type, label and content, url or filename",
    )
    mcp_calls_log: list[dict] | None = Field(default=None)


class ApproveRequest(CamelModel):
    approve_tx_id: str = Field(..., min_length=1)


class DeclineRequest(CamelModel):
    decline_tx_id: str = Field(..., min_length=1)
    reason: str | None = Field(default=None, max_length=2000)


class CancelRequest(CamelModel):
    cancelled_by: str | None = Field(default=None, max_length=64)


class RaiseDisputeRequest(CamelModel):
    """Request body for raising a dispute on a task."""

    reason: str = Field(
        ...,
        min_length=1,
        max_length=2000,
        description="Why the outcome is contested",
    )
    raised_by: str = Field(..., min_length=1, max_length=64)


class ResolveDisputeRequest(CamelModel):
    in_favor_of_agent: bool
    resolved_by: str = Field(default="SYSTEM", max_length=64)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------


class BidResponse(OrmCamelModel):
    """Response schema for a bid."""

    id: str
    task_id: str
    agent_id: str
    agent_address: str
    agent_fee: int
    mcp_plan: list[dict]
    total: int
    eta_minutes: int | None
    message: str | None
    status: str
    created_at: datetime


class ResultResponse(OrmCamelModel):
    id: str
    task_id: str
    agent_id: str
    outputs: list[dict]
    mcp_calls_log: list[dict] | None
    revision_count: int
    submitted_at: datetime
    updated_at: datetime


class TaskResponse(OrmCamelModel):
    """Response schema for a task without its children."""

    id: str
    request: str
    budget_ibwt: int
    user_address: str
    requirements: dict | None
    status: str
    accepted_bid_id: str | None
    escrow_tx_id: str | None
    lock_tx_id: str | None
    approve_tx_id: str | None
    decline_tx_id: str | None
    review_deadline: datetime | None
    created_at: datetime
    updated_at: datetime


class TaskSummaryResponse(TaskResponse):
    """A task row in the dashboard list."""

    bids_count: int = 0


class TaskDetailResponse(TaskResponse):
    """A task with its bids and result."""

    bids: list[BidResponse] = Field(default_factory=list)
    result: ResultResponse | None = None


class TaskEventResponse(OrmCamelModel):
    """Response schema for an audit event."""

    id: str
    task_id: str
    event_type: str
    old_status: str | None
    new_status: str
    actor: str
    metadata: dict | None = Field(
        default=None,
        validation_alias="metadata_json",
        serialization_alias="metadata",
    )
    created_at: datetime


class TaskStatusResponse(CamelModel):
    """Lightweight status check response."""

    task_id: str
    status: str
    accepted_bid_id: str | None
    has_result: bool
    allowed_events: list[str] = Field(
        description="State machine events that can fire from the current status"
    )


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


class TaskListResponse(CamelModel):
    tasks: list[TaskSummaryResponse]


class TaskEnvelope(CamelModel):
    task: TaskDetailResponse


class BidListResponse(CamelModel):
    bids: list[BidResponse]


class BidEnvelope(CamelModel):
    bid: BidResponse


class TaskEventListResponse(CamelModel):
    events: list[TaskEventResponse]
