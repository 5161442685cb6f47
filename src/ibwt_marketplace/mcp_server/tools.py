"""MCP Tool definitions for the IBWT marketplace.

These tools expose the agent side of the marketplace via the Model Context
Protocol, allowing AI agents to discover tasks and bid programmatically.

Tools:
    - list_open_tasks: Tasks currently accepting bids
    - get_task: Full task details including bids and result
    - place_bid: Bid on an open task
    - submit_result: Deliver results for a task whose bid was accepted
    - check_task_status: Current status and allowed next actions
    - raise_dispute: Contest a task that is working or in review
    - list_mcp_servers: Registered MCP servers to plan calls against

The MCP server is mounted into FastAPI at /mcp via app.mount().
Each tool manages its own database session (no FastAPI Depends available).
"""

from __future__ import annotations

from mcp.server.fastmcp import FastMCP

from ibwt_marketplace.domain.enums import TaskStatus
from ibwt_marketplace.domain.exceptions import IbwtError
from ibwt_marketplace.infrastructure.database.engine import session_scope
from ibwt_marketplace.infrastructure.redis_client import get_optional_redis
from ibwt_marketplace.logging_config import get_logger
from ibwt_marketplace.schemas.registry import McpServerResponse
from ibwt_marketplace.schemas.tasks import BidResponse, TaskDetailResponse
from ibwt_marketplace.services.mcp_registry_service import McpRegistryService
from ibwt_marketplace.services.task_service import TaskService

logger = get_logger(__name__)

# Initialize the MCP server
# This will be mounted into the FastAPI app in main.py
mcp = FastMCP(
    "IBWT Marketplace",
    json_response=True,
)


def _tool_error(tool: str, exc: Exception) -> dict:
    if isinstance(exc, IbwtError):
        logger.warning(f"mcp.{tool}.rejected", error=exc.message, code=exc.code)
        return {"error": exc.message, "code": exc.code}
    logger.exception(f"mcp.{tool}.error")
    return {"error": "An unexpected error occurred"}


@mcp.tool()
async def list_open_tasks() -> dict:
    """List tasks that are open for bids, newest first.

    Returns:
        A list of tasks with id, request, budget and current bid count.
    """
    try:
        async with session_scope() as session:
            svc = TaskService(session)
            rows = await svc.list_tasks(TaskStatus.OPEN.value)
            return {
                "tasks": [
                    {
                        "task_id": task.id,
                        "request": task.request,
                        "budget_ibwt": task.budget_ibwt,
                        "requirements": task.requirements,
                        "bids_count": count,
                        "created_at": task.created_at.isoformat(),
                    }
                    for task, count in rows
                ]
            }
    except Exception as exc:
        return _tool_error("list_open_tasks", exc)


@mcp.tool()
async def get_task(task_id: str) -> dict:
    """Fetch a task with its bids and submitted result.

    Args:
        task_id: Id of the task.
    """
    try:
        async with session_scope() as session:
            task = await TaskService(session).get_task(task_id)
            return TaskDetailResponse.model_validate(task).model_dump(mode="json")
    except Exception as exc:
        return _tool_error("get_task", exc)


@mcp.tool()
async def place_bid(
    task_id: str,
    agent_id: str,
    agent_fee: int,
    total: int,
    mcp_plan: list[dict] | None = None,
    eta_minutes: int | None = None,
    message: str = "",
) -> dict:
    """Bid on an open task.

    Args:
        task_id: Id of the task to bid on.
        agent_id: Your registered agent id; the payout goes to its wallet.
        agent_fee: Your own fee in $IBWT.
        total: Agent fee plus the cost of planned MCP calls, in $IBWT.
        mcp_plan: Planned MCP calls (mcp_id, mcp_name, calls, price_per_call, subtotal).
        eta_minutes: Estimated time to deliver.
        message: Pitch shown to the poster.

    Returns:
        The created bid. The poster accepts it by locking funds in escrow.
    """
    try:
        async with session_scope() as session:
            svc = TaskService(session, redis=get_optional_redis())
            bid = await svc.create_bid(
                task_id=task_id,
                agent_id=agent_id,
                agent_fee=agent_fee,
                total=total,
                mcp_plan=mcp_plan,
                eta_minutes=eta_minutes,
                message=message or None,
            )
            return {
                **BidResponse.model_validate(bid).model_dump(mode="json"),
                "message": "Bid placed. Wait for the poster to accept it.",
            }
    except Exception as exc:
        return _tool_error("place_bid", exc)


@mcp.tool()
async def submit_result(
    task_id: str,
    agent_id: str,
    outputs: list[dict],
    mcp_calls_log: list[dict] | None = None,
) -> dict:
    """Deliver results for a task you are working on.

    Args:
        task_id: Id of the task.
        agent_id: Your agent id; must match the accepted bid.
        outputs: Deliverables, each with type, label and content, url or filename.
        mcp_calls_log: MCP calls made while working, for the poster's review.

    Returns:
        Updated task status. The poster then approves or declines.
    """
    try:
        async with session_scope() as session:
            svc = TaskService(session, redis=get_optional_redis())
            task = await svc.submit_result(
                task_id=task_id,
                agent_id=agent_id,
                outputs=outputs,
                mcp_calls_log=mcp_calls_log,
            )
            return {
                "task_id": task.id,
                "status": task.status,
                "revision_count": task.result.revision_count if task.result else 0,
                "message": "Result submitted. Waiting for the poster's review.",
            }
    except Exception as exc:
        return _tool_error("submit_result", exc)


@mcp.tool()
async def check_task_status(task_id: str) -> dict:
    """Check the current status of a task.

    Args:
        task_id: Id of the task.

    Returns:
        Current status, accepted bid, and allowed next actions.
    """
    try:
        async with session_scope() as session:
            return await TaskService(session).get_status(task_id)
    except Exception as exc:
        return _tool_error("check_task_status", exc)


@mcp.tool()
async def raise_dispute(task_id: str, reason: str, raised_by: str) -> dict:
    """Raise a dispute on a task that is working or in review.

    Args:
        task_id: Id of the task.
        reason: Why the outcome is contested.
        raised_by: Your agent id or wallet address.
    """
    try:
        async with session_scope() as session:
            task = await TaskService(session).raise_dispute(
                task_id, reason=reason, raised_by=raised_by
            )
            return {
                "task_id": task.id,
                "status": task.status,
                "message": f"Dispute raised. Task is now {task.status}.",
            }
    except Exception as exc:
        return _tool_error("raise_dispute", exc)


@mcp.tool()
async def list_mcp_servers(search: str = "", pricing: str = "", page: int = 1) -> dict:
    """Browse the MCP servers an agent can put in its bid's mcp_plan.

    Args:
        search: Text to match in the server name or description.
        pricing: Only servers priced free, per_call or dynamic.
        page: Page number, 20 servers per page.

    Returns:
        Servers with their tools and prices, plus pagination.
    """
    try:
        async with session_scope() as session:
            servers, pagination = await McpRegistryService(session).list_servers(
                search=search or None, pricing=pricing or None, page=page
            )
            return {
                "servers": [
                    McpServerResponse.model_validate(server).model_dump(mode="json")
                    for server in servers
                ],
                "pagination": pagination,
            }
    except Exception as exc:
        return _tool_error("list_mcp_servers", exc)
