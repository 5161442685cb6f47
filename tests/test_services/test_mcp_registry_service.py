"""Tests for McpRegistryService: registration, catalogue and provider earnings."""

from __future__ import annotations

import pytest

from ibwt_marketplace.domain.enums import McpStatus, PricingModel
from ibwt_marketplace.domain.exceptions import McpServerNotFoundError, ValidationError
from ibwt_marketplace.services.mcp_registry_service import McpRegistryService, iter_plan_usage

PROVIDER = "ProviderWallet11111111111111111111111111111"


@pytest.fixture
def registry(session) -> McpRegistryService:
    return McpRegistryService(session)


async def _register(registry, name: str = "dex-data", **overrides):
    kwargs = {
        "provider_address": PROVIDER,
        "name": name,
        "description": "On-chain swap history",
        "endpoint_url": "https://mcp.example.com/dex",
        "default_pricing_model": "per_call",
        "default_price_usd": 0.02,
        "tools": [{"name": "get_swaps"}, {"name": "get_pools", "pricing_model": "free"}],
        **overrides,
    }
    return await registry.register_server(**kwargs)


class TestRegister:
    @pytest.mark.asyncio
    async def test_tools_inherit_server_pricing(self, registry) -> None:
        server = await _register(registry)

        assert server.status == McpStatus.ACTIVE
        tools = {t.name: t for t in server.tools}
        assert tools["get_swaps"].pricing_model == PricingModel.PER_CALL
        assert tools["get_swaps"].price_usd == 0.02
        assert tools["get_pools"].pricing_model == PricingModel.FREE

    @pytest.mark.asyncio
    async def test_defaults_to_free(self, registry) -> None:
        server = await _register(registry, default_pricing_model=None, default_price_usd=None)
        assert server.default_pricing_model == PricingModel.FREE
        assert {t.pricing_model for t in server.tools} == {"free"}

    @pytest.mark.asyncio
    async def test_name_required(self, registry) -> None:
        with pytest.raises(ValidationError, match="MCP server name is required"):
            await _register(registry, name=" ")

    @pytest.mark.asyncio
    async def test_tool_required(self, registry) -> None:
        with pytest.raises(ValidationError, match="At least one tool is required"):
            await _register(registry, tools=[])

    @pytest.mark.asyncio
    async def test_unknown_pricing_model(self, registry) -> None:
        with pytest.raises(ValidationError, match="Invalid pricing model"):
            await _register(registry, default_pricing_model="subscription")

    @pytest.mark.asyncio
    async def test_unnamed_tool(self, registry) -> None:
        with pytest.raises(ValidationError, match="Tool name is required"):
            await _register(registry, tools=[{"description": "nameless"}])


class TestCatalogue:
    @pytest.mark.asyncio
    async def test_search_and_pagination(self, registry) -> None:
        await _register(registry, name="dex-data")
        await _register(registry, name="nft-floor", description="NFT floor prices")
        await _register(registry, name="weather", default_pricing_model="free")

        page, pagination = await registry.list_servers(search="dex")
        assert [s.name for s in page] == ["dex-data"]
        assert pagination == {"page": 1, "limit": 20, "total": 1, "total_pages": 1}

        page, pagination = await registry.list_servers(pricing="per_call", limit=1, page=2)
        assert len(page) == 1
        assert pagination["total"] == 2
        assert pagination["total_pages"] == 2

    @pytest.mark.asyncio
    async def test_page_size_clamped(self, registry) -> None:
        _, pagination = await registry.list_servers(page=0, limit=1000)
        assert pagination["page"] == 1
        assert pagination["limit"] == 100

    @pytest.mark.asyncio
    async def test_missing_server(self, registry) -> None:
        with pytest.raises(McpServerNotFoundError, match="MCP server not found"):
            await registry.get_server("nope")


class TestProviderEarnings:
    @pytest.mark.asyncio
    async def test_rollup_from_settled_plans(self, registry, settle_task) -> None:
        server = await _register(registry)
        other = await _register(registry, name="other", provider_address="someone-else")
        plan = [
            {"mcp_id": server.id, "mcp_name": "dex-data", "calls": 4, "subtotal": 8},
            {"mcpId": other.id, "mcpName": "other", "calls": 1, "pricePerCall": 5},
        ]
        await settle_task(mcp_plan=plan)
        await settle_task(mcp_plan=plan)

        [row] = await registry.list_for_provider(PROVIDER)

        assert row.server.id == server.id
        assert row.tool_count == 2
        assert row.total_calls == 8
        assert row.earned == 16

        detail = await registry.get_server(other.id)
        assert detail.earned == 10

    @pytest.mark.asyncio
    async def test_unsettled_plans_ignored(self, registry, working_task) -> None:
        await _register(registry)
        [row] = await registry.list_for_provider(PROVIDER)
        assert row.earned == 0

    @pytest.mark.asyncio
    async def test_wallet_required(self, registry) -> None:
        with pytest.raises(ValidationError, match="Wallet address required"):
            await registry.list_for_provider(None)


class TestPlanUsage:
    def test_malformed_entries(self) -> None:
        usage = list(iter_plan_usage(["junk", {"calls": "x", "mcp_id": 7}, {"calls": 2}]))

        assert [(u.mcp_id, u.calls, u.subtotal) for u in usage] == [("7", 0, 0.0), (None, 2, 0.0)]
