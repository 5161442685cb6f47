"""Agent registry routes for the dashboard.

Routes:
    GET    /api/dashboard/agents          - Agents with earnings (?wallet= owner filter)
    POST   /api/dashboard/agents          - Register an agent
    GET    /api/dashboard/agents/{id}     - One agent
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ibwt_marketplace.api.deps import get_agent_service
from ibwt_marketplace.schemas.public import ErrorResponse
from ibwt_marketplace.schemas.registry import (
    AgentEnvelope,
    AgentListResponse,
    AgentResponse,
    RegisterAgentRequest,
)
from ibwt_marketplace.services.agent_service import AgentService

router = APIRouter(prefix="/api/dashboard", tags=["Agents"])

_ERRORS = {400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}


@router.get("/agents", response_model=AgentListResponse, summary="List agents")
async def list_agents(
    wallet: str | None = Query(default=None, description="Only agents registered by this wallet"),
    svc: AgentService = Depends(get_agent_service),
) -> AgentListResponse:
    """Agents newest first with settled earnings and completed task counts."""
    rows = await svc.list_with_earnings(owner_address=wallet or None)
    return AgentListResponse(
        agents=[
            AgentResponse.model_validate(row.agent).model_copy(
                update={"earned": row.earned, "completed_tasks": row.completed_tasks}
            )
            for row in rows
        ]
    )


@router.post(
    "/agents",
    response_model=AgentEnvelope,
    status_code=201,
    responses=_ERRORS,
    summary="Register an agent",
)
async def register_agent(
    request: RegisterAgentRequest,
    svc: AgentService = Depends(get_agent_service),
) -> AgentEnvelope:
    agent = await svc.register_agent(
        name=request.name,
        wallet_address=request.wallet_address,
        owner_address=request.owner_address,
        description=request.description,
        webhook_url=request.webhook_url,
        capabilities=request.capabilities,
        supported_mcps=request.supported_mcps,
    )
    return AgentEnvelope(agent=AgentResponse.model_validate(agent))


@router.get(
    "/agents/{agent_id}",
    response_model=AgentEnvelope,
    responses=_ERRORS,
    summary="Get an agent",
)
async def get_agent(
    agent_id: str,
    svc: AgentService = Depends(get_agent_service),
) -> AgentEnvelope:
    return AgentEnvelope(agent=AgentResponse.model_validate(await svc.get_agent(agent_id)))
