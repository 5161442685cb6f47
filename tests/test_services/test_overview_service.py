"""Tests for OverviewService: dashboard stats and the activity feed."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from ibwt_marketplace.services.mcp_registry_service import McpRegistryService
from ibwt_marketplace.services.overview_service import OverviewService

POSTER = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"


@pytest.fixture
def overview_service(session) -> OverviewService:
    return OverviewService(session)


class TestStats:
    @pytest.mark.asyncio
    async def test_empty_marketplace(self, overview_service) -> None:
        overview = await overview_service.overview()

        assert overview.period == "24h"
        assert (overview.active_tasks, overview.completed_tasks) == (0, 0)
        assert (overview.total_spent, overview.total_earned) == (0, 0)
        assert overview.activities == []

    @pytest.mark.asyncio
    async def test_counts_active_and_completed(
        self, overview_service, open_task, settle_task
    ) -> None:
        await settle_task(total=250)

        overview = await overview_service.overview("7d")

        assert overview.period == "7d"
        assert overview.active_tasks == 1
        assert overview.completed_tasks == 1
        assert overview.total_spent == 250
        assert overview.total_earned == 250

    @pytest.mark.asyncio
    async def test_unknown_period_falls_back(self, overview_service) -> None:
        assert (await overview_service.overview("1y")).period == "24h"

    @pytest.mark.asyncio
    async def test_period_window(self, overview_service, settle_task) -> None:
        await settle_task()

        later = datetime.now(UTC) + timedelta(days=2)
        assert (await overview_service.overview("24h", now=later)).completed_tasks == 0
        assert (await overview_service.overview("7d", now=later)).completed_tasks == 1

    @pytest.mark.asyncio
    async def test_wallet_splits_spent_and_earned(
        self, overview_service, settle_task, sample_agent_data
    ) -> None:
        await settle_task(total=300)
        await settle_task(total=200, user_address="another-poster")

        poster = await overview_service.overview(wallet=POSTER)
        owner = await overview_service.overview(wallet=sample_agent_data["owner_address"])

        assert (poster.total_spent, poster.total_earned) == (300, 0)
        assert (owner.total_spent, owner.total_earned) == (0, 500)


class TestActivities:
    @pytest.mark.asyncio
    async def test_feed_for_poster_wallet(
        self, session, overview_service, settle_task
    ) -> None:
        server = await McpRegistryService(session).register_server(
            provider_address=POSTER, name="dex-data", tools=[{"name": "get_swaps"}]
        )
        await settle_task(
            total=420,
            mcp_plan=[{"mcp_id": server.id, "mcp_name": "dex-data", "calls": 3, "subtotal": 6}],
        )

        overview = await overview_service.overview(wallet=POSTER)

        by_kind = {a.kind: a for a in overview.activities}
        assert set(by_kind) == {"task", "mcp"}
        assert by_kind["task"].amount == -420
        assert by_kind["task"].href.startswith("/dashboard/tasks/")
        assert by_kind["mcp"].title == "dex-data used (3 calls)"
        assert by_kind["mcp"].amount == 6

    @pytest.mark.asyncio
    async def test_agent_entry_and_order(self, overview_service, settle_task) -> None:
        await settle_task()

        overview = await overview_service.overview()

        kinds = [a.kind for a in overview.activities]
        assert sorted(kinds) == ["agent", "task"]
        agent = next(a for a in overview.activities if a.kind == "agent")
        assert agent.title.startswith("Alpha Analyst earned from: ")
        dates = [a.date for a in overview.activities]
        assert dates == sorted(dates, reverse=True)

    @pytest.mark.asyncio
    async def test_open_task_shows_budget(self, overview_service, open_task) -> None:
        [activity] = (await overview_service.overview()).activities
        assert activity.amount == -open_task.budget_ibwt

    @pytest.mark.asyncio
    async def test_feed_capped_at_ten(
        self, overview_service, task_service, sample_task_data
    ) -> None:
        for _ in range(12):
            await task_service.create_task(**sample_task_data)

        assert len((await overview_service.overview()).activities) == 10
