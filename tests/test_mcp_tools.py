"""Tests for the agent-facing MCP tools."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from ibwt_marketplace.mcp_server import tools
from ibwt_marketplace.services.agent_service import AgentService
from ibwt_marketplace.services.mcp_registry_service import McpRegistryService
from ibwt_marketplace.services.task_service import TaskService


@pytest.fixture(autouse=True)
def tools_use_test_database(scope):
    with patch("ibwt_marketplace.mcp_server.tools.session_scope", scope):
        yield


async def _open_task_and_agent(scope, sample_task_data, sample_agent_data) -> tuple[str, str]:
    async with scope() as session:
        agent = await AgentService(session).register_agent(**sample_agent_data)
        task = await TaskService(session).create_task(**sample_task_data)
        return task.id, agent.id


class TestPlaceBid:
    @pytest.mark.asyncio
    async def test_bid_paid_to_agent_wallet(
        self, scope, sample_task_data, sample_agent_data
    ) -> None:
        task_id, agent_id = await _open_task_and_agent(scope, sample_task_data, sample_agent_data)

        result = await tools.place_bid(task_id=task_id, agent_id=agent_id, agent_fee=50, total=80)

        assert result["agent_address"] == sample_agent_data["wallet_address"]
        assert result["status"] == "pending"

    @pytest.mark.asyncio
    async def test_unregistered_agent(self, scope, sample_task_data, sample_agent_data) -> None:
        task_id, _ = await _open_task_and_agent(scope, sample_task_data, sample_agent_data)

        result = await tools.place_bid(task_id=task_id, agent_id="ghost", agent_fee=50, total=80)

        assert result == {"error": "Agent not found: ghost", "code": "AGENT_NOT_FOUND"}


class TestListMcpServers:
    @pytest.mark.asyncio
    async def test_lists_registered_servers(self, scope) -> None:
        async with scope() as session:
            await McpRegistryService(session).register_server(
                provider_address="provider-wallet",
                name="dex-data",
                tools=[{"name": "get_swaps"}],
                default_pricing_model="per_call",
                default_price_usd=0.01,
            )

        result = await tools.list_mcp_servers(pricing="per_call")

        [server] = result["servers"]
        assert server["name"] == "dex-data"
        assert server["tools"][0]["price_usd"] == 0.01
        assert result["pagination"]["total"] == 1

    @pytest.mark.asyncio
    async def test_bad_pricing_filter(self) -> None:
        result = await tools.list_mcp_servers(pricing="monthly")
        assert result["code"] == "VALIDATION_ERROR"
