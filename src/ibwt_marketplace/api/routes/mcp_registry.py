"""MCP registry routes: the public catalogue and the provider dashboard.

Routes:
    POST   /api/mcp/register          - Publish an MCP server with its tools
    GET    /api/mcp/list              - Active servers (?search=&pricing=&page=&limit=)
    GET    /api/mcp/{id}              - Server detail with revenue
    GET    /api/dashboard/mcps        - A provider's servers with earnings (?wallet=)

These live under /api; the MCP protocol endpoint for agents is mounted at /mcp.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ibwt_marketplace.api.deps import get_mcp_registry_service
from ibwt_marketplace.schemas.public import ErrorResponse
from ibwt_marketplace.schemas.registry import (
    McpEnvelope,
    McpListResponse,
    McpServerDetailResponse,
    McpServerResponse,
    McpToolResponse,
    PaginationResponse,
    ProviderMcpListResponse,
    ProviderMcpResponse,
    RegisterMcpRequest,
)
from ibwt_marketplace.services.mcp_registry_service import McpRegistryService

router = APIRouter(prefix="/api", tags=["MCP Registry"])

_ERRORS = {400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}


@router.post(
    "/mcp/register",
    response_model=McpEnvelope,
    status_code=201,
    responses=_ERRORS,
    summary="Register an MCP server",
)
async def register_mcp(
    request: RegisterMcpRequest,
    svc: McpRegistryService = Depends(get_mcp_registry_service),
) -> McpEnvelope:
    """Tools without their own pricing inherit the server default."""
    server = await svc.register_server(
        provider_address=request.provider_address,
        name=request.name,
        tools=[tool.model_dump() for tool in request.tools],
        description=request.description,
        endpoint_url=request.endpoint_url,
        documentation_url=request.documentation_url,
        default_pricing_model=request.default_pricing_model,
        default_price_usd=request.default_price_usd,
    )
    return McpEnvelope(mcp=McpServerDetailResponse.model_validate(server))


@router.get(
    "/mcp/list",
    response_model=McpListResponse,
    responses=_ERRORS,
    summary="Browse MCP servers",
)
async def list_mcps(
    search: str | None = Query(default=None),
    pricing: str | None = Query(default=None, description="free, per_call or dynamic"),
    page: int = Query(default=1),
    limit: int = Query(default=20),
    svc: McpRegistryService = Depends(get_mcp_registry_service),
) -> McpListResponse:
    servers, pagination = await svc.list_servers(
        search=search, pricing=pricing, page=page, limit=limit
    )
    return McpListResponse(
        data=[McpServerResponse.model_validate(server) for server in servers],
        pagination=PaginationResponse(**pagination),
    )


@router.get(
    "/mcp/{server_id}",
    response_model=McpEnvelope,
    responses=_ERRORS,
    summary="Get an MCP server",
)
async def get_mcp(
    server_id: str,
    svc: McpRegistryService = Depends(get_mcp_registry_service),
) -> McpEnvelope:
    usage = await svc.get_server(server_id)
    detail = McpServerDetailResponse.model_validate(usage.server).model_copy(
        update={"total_calls": usage.total_calls, "total_revenue": usage.earned}
    )
    return McpEnvelope(mcp=detail)


@router.get(
    "/dashboard/mcps",
    response_model=ProviderMcpListResponse,
    responses=_ERRORS,
    summary="A provider's MCP servers",
)
async def provider_mcps(
    wallet: str | None = Query(default=None),
    svc: McpRegistryService = Depends(get_mcp_registry_service),
) -> ProviderMcpListResponse:
    rows = await svc.list_for_provider(wallet)
    return ProviderMcpListResponse(
        mcps=[
            ProviderMcpResponse(
                id=row.server.id,
                name=row.server.name,
                description=row.server.description,
                status=row.server.status,
                tool_count=row.tool_count,
                total_calls=row.total_calls,
                earned=row.earned,
                tools=[McpToolResponse.model_validate(tool) for tool in row.server.tools],
                created_at=row.server.created_at,
            )
            for row in rows
        ]
    )
