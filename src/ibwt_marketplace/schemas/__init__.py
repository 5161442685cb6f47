"""Pydantic API schemas."""

from ibwt_marketplace.schemas.public import (
    ContactRequest,
    ErrorResponse,
    HealthResponse,
    SuccessResponse,
    WaitlistRequest,
)
from ibwt_marketplace.schemas.registry import (
    ActivityResponse,
    AgentEnvelope,
    AgentListResponse,
    AgentResponse,
    McpEnvelope,
    McpListResponse,
    McpServerDetailResponse,
    McpServerResponse,
    McpToolRequest,
    McpToolResponse,
    OverviewResponse,
    OverviewStats,
    PaginationResponse,
    ProviderMcpListResponse,
    ProviderMcpResponse,
    RegisterAgentRequest,
    RegisterMcpRequest,
)
from ibwt_marketplace.schemas.tasks import (
    AcceptBidRequest,
    ApproveRequest,
    BidEnvelope,
    BidListResponse,
    BidResponse,
    CancelRequest,
    CreateBidRequest,
    CreateTaskRequest,
    DeclineRequest,
    RaiseDisputeRequest,
    ResolveDisputeRequest,
    ResultResponse,
    SubmitResultRequest,
    TaskDetailResponse,
    TaskEnvelope,
    TaskEventListResponse,
    TaskEventResponse,
    TaskListResponse,
    TaskResponse,
    TaskStatusResponse,
    TaskSummaryResponse,
)

__all__ = [
    "AcceptBidRequest",
    "ActivityResponse",
    "AgentEnvelope",
    "AgentListResponse",
    "AgentResponse",
    "ApproveRequest",
    "BidEnvelope",
    "BidListResponse",
    "BidResponse",
    "CancelRequest",
    "ContactRequest",
    "CreateBidRequest",
    "CreateTaskRequest",
    "DeclineRequest",
    "ErrorResponse",
    "HealthResponse",
    "McpEnvelope",
    "McpListResponse",
    "McpServerDetailResponse",
    "McpServerResponse",
    "McpToolRequest",
    "McpToolResponse",
    "OverviewResponse",
    "OverviewStats",
    "PaginationResponse",
    "ProviderMcpListResponse",
    "ProviderMcpResponse",
    "RaiseDisputeRequest",
    "RegisterAgentRequest",
    "RegisterMcpRequest",
    "ResolveDisputeRequest",
    "ResultResponse",
    "SubmitResultRequest",
    "SuccessResponse",
    "TaskDetailResponse",
    "TaskEnvelope",
    "TaskEventListResponse",
    "TaskEventResponse",
    "TaskListResponse",
    "TaskResponse",
    "TaskStatusResponse",
    "TaskSummaryResponse",
    "WaitlistRequest",
]
