"""MCP Registry Service: providers publish MCP servers that agents plan to call.

A server carries a list of tools. Each tool is priced ``free``, ``per_call``
or ``dynamic``; a tool without its own pricing inherits the server default.

Provider earnings come from the ``mcp_plan`` of settled bids: every plan
entry names the server it calls (``mcp_id``), how many calls, and the
subtotal charged for them.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ibwt_marketplace.domain.enums import PricingModel
from ibwt_marketplace.domain.exceptions import McpServerNotFoundError, ValidationError
from ibwt_marketplace.infrastructure.database.orm_models import McpServer, McpTool
from ibwt_marketplace.infrastructure.database.repositories import (
    BidRepository,
    McpServerRepository,
)
from ibwt_marketplace.logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class PlanUsage:
    """One entry of a bid's MCP plan."""

    mcp_id: str | None
    mcp_name: str
    calls: int
    subtotal: float


@dataclass(frozen=True)
class ServerUsage:
    """A server with what settled bids spent on it."""

    server: McpServer
    calls: int = 0
    earned: float = 0.0

    @property
    def tool_count(self) -> int:
        return len(self.server.tools)

    @property
    def total_calls(self) -> int:
        return self.server.total_calls + self.calls


def _pick(entry: dict, snake: str, camel: str) -> Any:
    return entry.get(snake, entry.get(camel))


def _as_number(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def iter_plan_usage(mcp_plan: Iterable[Any] | None) -> Iterator[PlanUsage]:
    """Normalize plan entries written in either snake_case or camelCase.

    Entries that are not objects are skipped. A missing subtotal is
    ``calls * price_per_call``.
    """
    for entry in mcp_plan or []:
        if not isinstance(entry, dict):
            continue
        calls = int(_as_number(entry.get("calls")))
        subtotal = entry.get("subtotal")
        if subtotal is None:
            subtotal = calls * _as_number(_pick(entry, "price_per_call", "pricePerCall"))
        mcp_id = _pick(entry, "mcp_id", "mcpId")
        yield PlanUsage(
            mcp_id=str(mcp_id) if mcp_id is not None else None,
            mcp_name=str(_pick(entry, "mcp_name", "mcpName") or "MCP"),
            calls=calls,
            subtotal=_as_number(subtotal),
        )


def _pricing_model(value: str | None, default: PricingModel) -> PricingModel:
    if value is None or value == "":
        return default
    try:
        return PricingModel(value)
    except ValueError as err:
        raise ValidationError(f"Invalid pricing model: '{value}'") from err


class McpRegistryService:
    """Registers MCP servers, lists them, and reports provider earnings."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._server_repo = McpServerRepository(session)
        self._bid_repo = BidRepository(session)

    async def register_server(
        self,
        provider_address: str,
        name: str,
        tools: list[dict],
        description: str | None = None,
        endpoint_url: str | None = None,
        documentation_url: str | None = None,
        default_pricing_model: str | None = None,
        default_price_usd: float | None = None,
    ) -> McpServer:
        """Register a server with at least one tool.

        Args:
            provider_address: Wallet of the provider; earnings are reported per wallet.
            tools: Dicts with ``name`` and optional description, input_schema,
                output_schema, pricing_model, price_usd, dynamic_config.
        """
        if not provider_address or not provider_address.strip():
            raise ValidationError("Wallet address required")
        if not name or not name.strip():
            raise ValidationError("MCP server name is required")
        if not tools:
            raise ValidationError("At least one tool is required")

        server_pricing = _pricing_model(default_pricing_model, PricingModel.FREE)
        server = McpServer(
            provider_address=provider_address.strip(),
            name=name.strip(),
            description=description,
            endpoint_url=endpoint_url or None,
            documentation_url=documentation_url or None,
            default_pricing_model=server_pricing.value,
            default_price_usd=default_price_usd,
        )
        for tool in tools:
            tool_name = str(tool.get("name") or "").strip()
            if not tool_name:
                raise ValidationError("Tool name is required")
            price = tool.get("price_usd")
            server.tools.append(
                McpTool(
                    name=tool_name,
                    description=tool.get("description"),
                    input_schema=tool.get("input_schema"),
                    output_schema=tool.get("output_schema"),
                    pricing_model=_pricing_model(tool.get("pricing_model"), server_pricing).value,
                    price_usd=default_price_usd if price is None else price,
                    dynamic_config=tool.get("dynamic_config"),
                )
            )

        await self._server_repo.create(server)
        logger.info(
            "mcp.registered",
            server_id=server.id,
            provider=server.provider_address,
            tools=len(server.tools),
        )
        return server

    async def get_server(self, server_id: str) -> ServerUsage:
        """A server with its tools and the revenue settled bids brought it."""
        server = await self._server_repo.get_by_id(server_id)
        if server is None:
            raise McpServerNotFoundError(server_id)
        usage = await self._usage_by_server()
        calls, earned = usage.get(server.id, (0, 0.0))
        return ServerUsage(server=server, calls=calls, earned=earned)

    async def list_servers(
        self,
        search: str | None = None,
        pricing: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[McpServer], dict[str, int]]:
        """One page of active servers and its pagination block."""
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)
        if pricing:
            pricing = _pricing_model(pricing, PricingModel.FREE).value

        servers, total = await self._server_repo.search(
            search=search or None,
            pricing_model=pricing or None,
            offset=(page - 1) * limit,
            limit=limit,
        )
        pagination = {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": math.ceil(total / limit),
        }
        return servers, pagination

    async def list_for_provider(self, provider_address: str | None) -> list[ServerUsage]:
        """The provider's servers, newest first, with settled usage."""
        if not provider_address:
            raise ValidationError("Wallet address required")
        servers = await self._server_repo.list_by_provider(provider_address)
        usage = await self._usage_by_server()
        results = []
        for server in servers:
            calls, earned = usage.get(server.id, (0, 0.0))
            results.append(ServerUsage(server=server, calls=calls, earned=earned))
        return results

    async def _usage_by_server(self) -> dict[str, tuple[int, float]]:
        usage: dict[str, tuple[int, float]] = {}
        for bid, _task in await self._bid_repo.list_settled():
            for entry in iter_plan_usage(bid.mcp_plan):
                if entry.mcp_id is None:
                    continue
                calls, earned = usage.get(entry.mcp_id, (0, 0.0))
                usage[entry.mcp_id] = (calls + entry.calls, earned + entry.subtotal)
        return usage
