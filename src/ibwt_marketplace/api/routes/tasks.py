"""Dashboard task and bid REST API routes.

These endpoints back the poster dashboard. The MCP tools in
mcp_server/tools.py call the same service layer, so agents and posters see
identical rules.

Routes:
    GET    /api/dashboard/tasks                       - List tasks (?status=)
    POST   /api/dashboard/tasks                       - Post a task
    GET    /api/dashboard/tasks/{id}                  - Task with bids and result
    GET    /api/dashboard/tasks/{id}/status           - Lightweight status check
    GET    /api/dashboard/tasks/{id}/events           - Audit trail
    POST   /api/dashboard/tasks/{id}/accept-bid       - Record escrow lock, accept bid
    POST   /api/dashboard/tasks/{id}/submit-result    - Agent delivers
    POST   /api/dashboard/tasks/{id}/approve          - Poster approves (pays agent)
    POST   /api/dashboard/tasks/{id}/decline          - Poster declines (refund)
    POST   /api/dashboard/tasks/{id}/cancel           - Withdraw an open task
    POST   /api/dashboard/tasks/{id}/dispute          - Raise a dispute
    POST   /api/dashboard/tasks/{id}/resolve          - Resolve a dispute
    GET    /api/dashboard/bids?taskId=                - Bids for a task
    POST   /api/dashboard/bids                        - Place a bid
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Query

from ibwt_marketplace.api.deps import get_task_service
from ibwt_marketplace.schemas.public import ErrorResponse
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
from ibwt_marketplace.services.task_service import TaskService

if TYPE_CHECKING:
    from ibwt_marketplace.infrastructure.database.orm_models import Task

router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"])

_ERRORS = {
    400: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


def _envelope(task: Task) -> TaskEnvelope:
    return TaskEnvelope(task=TaskDetailResponse.model_validate(task))


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


@router.get("/tasks", response_model=TaskListResponse, responses=_ERRORS, summary="List tasks")
async def list_tasks(
    status: str | None = Query(default=None, description="Canonical or legacy status"),
    svc: TaskService = Depends(get_task_service),
) -> TaskListResponse:
    """List tasks newest first, each with its bid count."""
    rows = await svc.list_tasks(status)
    return TaskListResponse(
        tasks=[
            TaskSummaryResponse(
                **TaskResponse.model_validate(task).model_dump(),
                bids_count=count,
            )
            for task, count in rows
        ]
    )


@router.post(
    "/tasks",
    response_model=TaskEnvelope,
    status_code=201,
    responses=_ERRORS,
    summary="Post a new task",
)
async def create_task(
    request: CreateTaskRequest,
    svc: TaskService = Depends(get_task_service),
) -> TaskEnvelope:
    task = await svc.create_task(
        request=request.request,
        budget_ibwt=request.budget_ibwt,
        user_address=request.user_address,
        requirements=request.requirements,
    )
    return _envelope(task)


@router.get(
    "/tasks/{task_id}",
    response_model=TaskEnvelope,
    responses=_ERRORS,
    summary="Get task details",
)
async def get_task(
    task_id: str,
    svc: TaskService = Depends(get_task_service),
) -> TaskEnvelope:
    return _envelope(await svc.get_task(task_id))


@router.get(
    "/tasks/{task_id}/status",
    response_model=TaskStatusResponse,
    responses=_ERRORS,
    summary="Get task status and allowed transitions",
)
async def get_task_status(
    task_id: str,
    svc: TaskService = Depends(get_task_service),
) -> TaskStatusResponse:
    return TaskStatusResponse(**await svc.get_status(task_id))


@router.get(
    "/tasks/{task_id}/events",
    response_model=TaskEventListResponse,
    responses=_ERRORS,
    summary="Get the audit trail",
)
async def get_task_events(
    task_id: str,
    svc: TaskService = Depends(get_task_service),
) -> TaskEventListResponse:
    """Lifecycle events in chronological order."""
    events = await svc.get_events(task_id)
    return TaskEventListResponse(
        events=[TaskEventResponse.model_validate(evt) for evt in events]
    )


# ---------------------------------------------------------------------------
# Lifecycle actions
# ---------------------------------------------------------------------------


@router.post(
    "/tasks/{task_id}/accept-bid",
    response_model=TaskEnvelope,
    responses=_ERRORS,
    summary="Accept a bid after the escrow lock",
)
async def accept_bid(
    task_id: str,
    request: AcceptBidRequest,
    svc: TaskService = Depends(get_task_service),
) -> TaskEnvelope:
    """Record the escrow transaction and move the task to working."""
    task = await svc.accept_bid(
        task_id=task_id,
        bid_id=request.bid_id,
        escrow_tx_id=request.escrow_tx_id,
        lock_tx_id=request.lock_tx_id,
    )
    return _envelope(task)


@router.post(
    "/tasks/{task_id}/submit-result",
    response_model=TaskEnvelope,
    responses=_ERRORS,
    summary="Submit deliverables",
)
async def submit_result(
    task_id: str,
    request: SubmitResultRequest,
    svc: TaskService = Depends(get_task_service),
) -> TaskEnvelope:
    task = await svc.submit_result(
        task_id=task_id,
        agent_id=request.agent_id,
        outputs=request.outputs,
        mcp_calls_log=request.mcp_calls_log,
    )
    return _envelope(task)


@router.post(
    "/tasks/{task_id}/approve",
    response_model=TaskEnvelope,
    responses=_ERRORS,
    summary="Approve the result",
)
async def approve(
    task_id: str,
    request: ApproveRequest,
    svc: TaskService = Depends(get_task_service),
) -> TaskEnvelope:
    return _envelope(await svc.approve(task_id, approve_tx_id=request.approve_tx_id))


@router.post(
    "/tasks/{task_id}/decline",
    response_model=TaskEnvelope,
    responses=_ERRORS,
    summary="Decline the result",
)
async def decline(
    task_id: str,
    request: DeclineRequest,
    svc: TaskService = Depends(get_task_service),
) -> TaskEnvelope:
    task = await svc.decline(
        task_id, decline_tx_id=request.decline_tx_id, reason=request.reason
    )
    return _envelope(task)


@router.post(
    "/tasks/{task_id}/cancel",
    response_model=TaskEnvelope,
    responses=_ERRORS,
    summary="Cancel an open task",
)
async def cancel(
    task_id: str,
    request: CancelRequest | None = None,
    svc: TaskService = Depends(get_task_service),
) -> TaskEnvelope:
    cancelled_by = request.cancelled_by if request else None
    return _envelope(await svc.cancel(task_id, cancelled_by=cancelled_by))


@router.post(
    "/tasks/{task_id}/dispute",
    response_model=TaskEnvelope,
    responses=_ERRORS,
    summary="Raise a dispute",
)
async def raise_dispute(
    task_id: str,
    request: RaiseDisputeRequest,
    svc: TaskService = Depends(get_task_service),
) -> TaskEnvelope:
    task = await svc.raise_dispute(task_id, reason=request.reason, raised_by=request.raised_by)
    return _envelope(task)


@router.post(
    "/tasks/{task_id}/resolve",
    response_model=TaskEnvelope,
    responses=_ERRORS,
    summary="Resolve a dispute",
)
async def resolve_dispute(
    task_id: str,
    request: ResolveDisputeRequest,
    svc: TaskService = Depends(get_task_service),
) -> TaskEnvelope:
    task = await svc.resolve_dispute(
        task_id,
        in_favor_of_agent=request.in_favor_of_agent,
        resolved_by=request.resolved_by,
    )
    return _envelope(task)


# ---------------------------------------------------------------------------
# Bids
# ---------------------------------------------------------------------------


@router.get("/bids", response_model=BidListResponse, responses=_ERRORS, summary="List bids")
async def list_bids(
    task_id: str = Query(..., alias="taskId", min_length=1),
    svc: TaskService = Depends(get_task_service),
) -> BidListResponse:
    bids = await svc.list_bids(task_id)
    return BidListResponse(bids=[BidResponse.model_validate(bid) for bid in bids])


@router.post(
    "/bids",
    response_model=BidEnvelope,
    status_code=201,
    responses=_ERRORS,
    summary="Place a bid",
)
async def create_bid(
    request: CreateBidRequest,
    svc: TaskService = Depends(get_task_service),
) -> BidEnvelope:
    """Place a bid on an open task."""
    bid = await svc.create_bid(
        task_id=request.task_id,
        agent_id=request.agent_id,
        agent_fee=request.agent_fee,
        total=request.total,
        mcp_plan=request.mcp_plan,
        eta_minutes=request.eta_minutes,
        message=request.message,
    )
    return BidEnvelope(bid=BidResponse.model_validate(bid))
